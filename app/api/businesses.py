"""
Business Routes Blueprint

Business settings, team management, email templates and follow-up
schedules. Every route carries the business id in the URL and is only
served to a session of that same business.
"""

from flask import Blueprint, request, jsonify
import logging

import auth
from auth import tenant_required
from app.utils import error_response
from database import get_db_session
from services import BusinessRepository, UsersRepository, AutomationRepository, NotFoundError
from validators import ValidationError

logger = logging.getLogger(__name__)

businesses_bp = Blueprint('businesses_bp', __name__)


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ============================================================================
# BUSINESS
# ============================================================================

@businesses_bp.route('/api/businesses/<business_id>', methods=['GET'])
@tenant_required(business_arg='business_id')
def get_business(business_id):
    """Business settings with its team"""
    try:
        with get_db_session() as db:
            business = BusinessRepository(db, business_id).get_business()
            if not business:
                return error_response('Business not found', 404)
            data = business.to_dict()
            data['team'] = UsersRepository(db).list_team_members(business_id)

        return jsonify({'success': True, 'business': data})

    except Exception as e:
        logger.error(f"Error getting business {business_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@businesses_bp.route('/api/businesses/<business_id>', methods=['PATCH'])
@tenant_required(business_arg='business_id')
def update_business(business_id):
    """Update name, email, service types and qualification settings"""
    try:
        data = _json_body()

        with get_db_session() as db:
            BusinessRepository(db, business_id, auth.current_user_id()).update_business(data)

        return jsonify({'success': True, 'message': 'Business updated'})

    except ValidationError as e:
        return error_response(e.message, 400, e.field)
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error updating business {business_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)


# ============================================================================
# TEAM
# ============================================================================

@businesses_bp.route('/api/businesses/<business_id>/team/<user_id>', methods=['DELETE'])
@tenant_required(role='owner', business_arg='business_id')
def remove_team_member(business_id, user_id):
    """Remove a member; owners cannot remove themselves or the default owner"""
    try:
        with get_db_session() as db:
            BusinessRepository(db, business_id, auth.current_user_id()).remove_team_member(user_id)

        return jsonify({'success': True, 'message': 'Team member removed'})

    except ValidationError as e:
        return error_response(e.message, 400)
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error removing team member {user_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)


# ============================================================================
# EMAIL TEMPLATES
# ============================================================================

@businesses_bp.route('/api/businesses/<business_id>/email-templates', methods=['GET'])
@tenant_required(business_arg='business_id')
def list_email_templates(business_id):
    try:
        with get_db_session() as db:
            templates = AutomationRepository(db, business_id).list_templates()
        return jsonify({'success': True, 'templates': templates})
    except Exception as e:
        logger.error(f"Error listing email templates: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@businesses_bp.route('/api/businesses/<business_id>/email-templates', methods=['POST'])
@tenant_required(business_arg='business_id')
def create_email_template(business_id):
    try:
        with get_db_session() as db:
            template = AutomationRepository(db, business_id).create_template(_json_body())
        return jsonify({'success': True, 'template': template}), 201
    except ValidationError as e:
        return error_response(e.message, 400, e.field)
    except Exception as e:
        logger.error(f"Error creating email template: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@businesses_bp.route('/api/businesses/<business_id>/email-templates/<template_id>', methods=['GET'])
@tenant_required(business_arg='business_id')
def get_email_template(business_id, template_id):
    try:
        with get_db_session() as db:
            template = AutomationRepository(db, business_id).get_template(template_id)
        return jsonify({'success': True, 'template': template})
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error getting email template {template_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@businesses_bp.route('/api/businesses/<business_id>/email-templates/<template_id>', methods=['PATCH'])
@tenant_required(business_arg='business_id')
def update_email_template(business_id, template_id):
    try:
        with get_db_session() as db:
            template = AutomationRepository(db, business_id).update_template(template_id, _json_body())
        return jsonify({'success': True, 'template': template})
    except ValidationError as e:
        return error_response(e.message, 400, e.field)
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error updating email template {template_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@businesses_bp.route('/api/businesses/<business_id>/email-templates/<template_id>', methods=['DELETE'])
@tenant_required(business_arg='business_id')
def delete_email_template(business_id, template_id):
    try:
        with get_db_session() as db:
            AutomationRepository(db, business_id).delete_template(template_id)
        return jsonify({'success': True, 'message': 'Template deleted'})
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error deleting email template {template_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)


# ============================================================================
# FOLLOW-UP SCHEDULES
# ============================================================================

@businesses_bp.route('/api/businesses/<business_id>/followup-schedules', methods=['GET'])
@tenant_required(business_arg='business_id')
def list_followup_schedules(business_id):
    try:
        with get_db_session() as db:
            schedules = AutomationRepository(db, business_id).list_schedules()
        return jsonify({'success': True, 'schedules': schedules})
    except Exception as e:
        logger.error(f"Error listing follow-up schedules: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@businesses_bp.route('/api/businesses/<business_id>/followup-schedules', methods=['POST'])
@tenant_required(business_arg='business_id')
def create_followup_schedule(business_id):
    try:
        with get_db_session() as db:
            schedule = AutomationRepository(db, business_id).create_schedule(_json_body())
        return jsonify({'success': True, 'schedule': schedule}), 201
    except ValidationError as e:
        return error_response(e.message, 400, e.field)
    except Exception as e:
        logger.error(f"Error creating follow-up schedule: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@businesses_bp.route('/api/businesses/<business_id>/followup-schedules/<schedule_id>', methods=['GET'])
@tenant_required(business_arg='business_id')
def get_followup_schedule(business_id, schedule_id):
    try:
        with get_db_session() as db:
            schedule = AutomationRepository(db, business_id).get_schedule(schedule_id)
        return jsonify({'success': True, 'schedule': schedule})
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error getting follow-up schedule {schedule_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@businesses_bp.route('/api/businesses/<business_id>/followup-schedules/<schedule_id>', methods=['PATCH'])
@tenant_required(business_arg='business_id')
def update_followup_schedule(business_id, schedule_id):
    try:
        with get_db_session() as db:
            schedule = AutomationRepository(db, business_id).update_schedule(schedule_id, _json_body())
        return jsonify({'success': True, 'schedule': schedule})
    except ValidationError as e:
        return error_response(e.message, 400, e.field)
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error updating follow-up schedule {schedule_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@businesses_bp.route('/api/businesses/<business_id>/followup-schedules/<schedule_id>', methods=['DELETE'])
@tenant_required(business_arg='business_id')
def delete_followup_schedule(business_id, schedule_id):
    try:
        with get_db_session() as db:
            AutomationRepository(db, business_id).delete_schedule(schedule_id)
        return jsonify({'success': True, 'message': 'Schedule deleted'})
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error deleting follow-up schedule {schedule_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)
