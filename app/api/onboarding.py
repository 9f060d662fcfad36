"""
Onboarding Routes Blueprint

Saves onboarding progress for the caller's business.
"""

from flask import Blueprint, request, jsonify, current_app
import logging

import auth
from auth import tenant_required
from app.utils import error_response
from database import get_db_session
from services import BusinessRepository, EmailService, NotFoundError
from validators import ValidationError

logger = logging.getLogger(__name__)

onboarding_bp = Blueprint('onboarding_bp', __name__)


@onboarding_bp.route('/api/business/onboarding', methods=['POST'])
@tenant_required()
def save_onboarding():
    """
    Save an onboarding step.

    Body:
        step: int, always stored
        completed: truthy marks onboarding as done (cannot be undone)
        businessData: serviceTypes, businessEmail, location, serviceArea
    """
    try:
        data = request.get_json(silent=True) or {}
        step = data.get('step')
        completed = bool(data.get('completed'))
        business_data = data.get('businessData') or {}

        if isinstance(step, bool) or not isinstance(step, int):
            return error_response('Step is required', 400)
        if not isinstance(business_data, dict):
            return error_response('businessData must be an object', 400)

        with get_db_session() as db:
            result = BusinessRepository(db, auth.current_business_id(), auth.current_user_id()).update_onboarding(
                step, completed=completed, business_data=business_data
            )
            if result['completed']:
                EmailService(db, auth.current_business_id(), current_app.config).create_default_templates()

        if result['completed']:
            auth.refresh_session(onboarding_completed=True)

        return jsonify({
            'success': True,
            'message': 'Onboarding completed' if completed else 'Progress saved',
            'step': result['step'],
            'completed': result['completed'],
        })

    except ValidationError as e:
        return error_response(e.message, 400, e.field)
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Onboarding error: {e}", exc_info=True)
        return error_response('Internal server error', 500)
