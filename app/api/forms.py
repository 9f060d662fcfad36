"""
Public Form Routes Blueprint

Unauthenticated lead capture: a prospect submits the form of a business
by its slug. The lead is scored, stored, and the team is notified.
"""

from flask import Blueprint, request, jsonify, current_app
import logging

from app.utils import error_response
from database import get_db_session
from services import BusinessRepository, LeadRepository, NotificationService, EmailService, auto_qualify_lead
from validators import validate_lead_form

logger = logging.getLogger(__name__)

forms_bp = Blueprint('forms_bp', __name__)


def _lead_variables(business, lead, qualification):
    return {
        'business_name': business['name'],
        'lead_name': lead['name'],
        'lead_email': lead['email'],
        'lead_phone': lead['phone'],
        'service_type': lead['service_type'],
        'lead_location': lead['location'],
        'lead_message': lead['message'] or '',
        'lead_priority': lead['priority'],
        'lead_score': qualification['score'],
        'lead_tags': ', '.join(lead['tags']),
        'lead_url': f"{current_app.config['APP_URL']}/dashboard/leads/{lead['id']}",
    }


def _after_submission(business, lead, qualification):
    """
    Team notification plus confirmation and owner emails. Runs after the
    lead is committed; a failure here is logged and never undoes the lead.
    """
    try:
        with get_db_session() as db:
            NotificationService(db, business['id']).create_lead_notification(lead, 'new')
    except Exception as e:
        logger.error(f"Failed to notify team of lead {lead['id']}: {e}")

    try:
        with get_db_session() as db:
            emails = EmailService(db, business['id'], current_app.config)
            variables = _lead_variables(business, lead, qualification)

            emails.send_template_email(
                'confirmation', {'email': lead['email'], 'name': lead['name']},
                variables, trigger_event='lead_created', lead_id=lead['id']
            )
            if business['email']:
                emails.send_template_email(
                    'notification', {'email': business['email'], 'name': business['name']},
                    variables, trigger_event='lead_created', lead_id=lead['id']
                )
    except Exception as e:
        logger.error(f"Failed to send lead emails for {lead['id']}: {e}")


@forms_bp.route('/api/public/form/<slug>/submit', methods=['POST'])
def submit_form(slug):
    """Create a lead for the business behind the slug"""
    try:
        data = request.get_json(silent=True) or {}

        with get_db_session() as db:
            business = BusinessRepository(db).get_business_by_slug(slug)
            if not business:
                return error_response('Business not found', 404)

            is_valid, error = validate_lead_form(data)
            if not is_valid:
                return error_response(error, 400)

            qualification = auto_qualify_lead(data, business.settings)
            lead = LeadRepository(db, business.id).create_lead(data, qualification)

            business_info = {'id': business.id, 'name': business.name, 'email': business.email}
            lead_info = lead.to_dict()

        _after_submission(business_info, lead_info, qualification)

        return jsonify({
            'success': True,
            'message': 'Lead submitted successfully',
            'leadId': lead_info['id'],
        })

    except Exception as e:
        logger.error(f"Form submission error: {e}", exc_info=True)
        return error_response('Internal server error', 500)
