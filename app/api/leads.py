"""
Lead Routes Blueprint

Lead listing and detail, status transitions (single and bulk), user notes
and internal notes. All queries are scoped to the caller's business.
"""

from flask import Blueprint, request, jsonify
import logging

import auth
from auth import tenant_required
from app.utils import error_response, int_arg
from database import get_db_session
from services import LeadRepository, NotificationService, NotFoundError
from validators import ValidationError

logger = logging.getLogger(__name__)

leads_bp = Blueprint('leads_bp', __name__)


def _repo(db):
    return LeadRepository(db, auth.current_business_id(), auth.current_user_id())


def _notify_converted(lead_id):
    """Tell the team a lead was booked; never fails the request"""
    try:
        with get_db_session() as db:
            lead = _repo(db).get_lead(lead_id)
            NotificationService(db, auth.current_business_id()).create_lead_notification(lead, 'converted')
    except Exception as e:
        logger.error(f"Failed to send converted notification for lead {lead_id}: {e}")


# ============================================================================
# READS
# ============================================================================

@leads_bp.route('/api/leads', methods=['GET'])
@tenant_required()
def list_leads():
    """List leads with optional status, priority and search filters"""
    try:
        with get_db_session() as db:
            leads = _repo(db).list_leads(
                status=request.args.get('status'),
                priority=request.args.get('priority'),
                search=request.args.get('search'),
                limit=int_arg(request.args.get('limit'), 200)
            )
        return jsonify({'success': True, 'leads': leads, 'total': len(leads)})

    except Exception as e:
        logger.error(f"Error listing leads: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@leads_bp.route('/api/leads/<lead_id>', methods=['GET'])
@tenant_required()
def get_lead(lead_id):
    """Get a lead with its notes"""
    try:
        with get_db_session() as db:
            lead = _repo(db).get_lead(lead_id)
        return jsonify({'success': True, 'lead': lead})

    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error getting lead {lead_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)


# ============================================================================
# STATUS
# ============================================================================

@leads_bp.route('/api/leads/<lead_id>/status', methods=['POST'])
@tenant_required()
def update_lead_status(lead_id):
    """Move one lead to a new status"""
    try:
        data = request.get_json(silent=True) or {}

        with get_db_session() as db:
            result = _repo(db).update_status(lead_id, data.get('status'))

        if result['newStatus'] == 'booked' and result['oldStatus'] != 'booked':
            _notify_converted(lead_id)

        rows_updated = result.pop('rowsUpdated')
        return jsonify({
            'success': True,
            'message': 'Status updated',
            'rowsUpdated': rows_updated,
            'data': result,
        })

    except ValidationError as e:
        return error_response(e.message, 400, e.field)
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error updating status of lead {lead_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@leads_bp.route('/api/leads/bulk/status', methods=['PATCH'])
@tenant_required()
def bulk_update_status():
    """Move many leads to one status"""
    try:
        data = request.get_json(silent=True) or {}

        with get_db_session() as db:
            updated = _repo(db).bulk_update_status(data.get('leadIds'), data.get('status'))

        return jsonify({
            'success': True,
            'message': f"{updated} leads updated",
            'rowsUpdated': updated,
        })

    except ValidationError as e:
        return error_response(e.message, 400, e.field)
    except Exception as e:
        logger.error(f"Error in bulk status update: {e}", exc_info=True)
        return error_response('Internal server error', 500)


# ============================================================================
# NOTES
# ============================================================================

@leads_bp.route('/api/leads/<lead_id>/notes', methods=['POST'])
@tenant_required()
def add_lead_note(lead_id):
    """Append a note by the current user"""
    try:
        data = request.get_json(silent=True) or {}

        with get_db_session() as db:
            note = _repo(db).add_note(lead_id, data.get('note'))

        return jsonify(note)

    except ValidationError as e:
        return error_response(e.message, 400, e.field)
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error adding note to lead {lead_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@leads_bp.route('/api/leads/<lead_id>/internal-notes', methods=['PATCH'])
@tenant_required()
def update_internal_notes(lead_id):
    """Replace the internal notes field"""
    try:
        data = request.get_json(silent=True) or {}

        with get_db_session() as db:
            result = _repo(db).update_internal_notes(lead_id, data.get('internalNotes'))

        return jsonify({
            'success': True,
            'message': 'Internal notes updated',
            'data': result,
        })

    except ValidationError as e:
        return error_response(e.message, 400, e.field)
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error updating internal notes of lead {lead_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)
