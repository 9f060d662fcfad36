"""
Cron Routes Blueprint

Entry point for the external scheduler. Guarded by the shared cron secret
instead of a user session.
"""

from flask import Blueprint, jsonify, current_app
import logging

from app.utils import error_response, utc_timestamp
from security import require_cron_secret
from services import run_followup_sweep

logger = logging.getLogger(__name__)

cron_bp = Blueprint('cron_bp', __name__)


@cron_bp.route('/api/cron/followups', methods=['GET'])
@require_cron_secret
def run_followups():
    """Schedule and execute follow-ups for every onboarded business"""
    try:
        logger.info("Starting follow-up cron job")
        result = run_followup_sweep(current_app.config)

        return jsonify({
            'success': True,
            'message': f"Processed {result['processed']} businesses, {result['errors']} errors",
            'processed': result['processed'],
            'errors': result['errors'],
            'timestamp': utc_timestamp(),
        })

    except Exception as e:
        logger.error(f"Follow-up cron job failed: {e}", exc_info=True)
        return error_response('Internal server error', 500)
