"""
Calendar Routes Blueprint

Calendar events of the caller's business, plus the backfill that books an
appointment for every booked lead without one.
"""

from flask import Blueprint, request, jsonify
import logging

import auth
from auth import tenant_required
from app.utils import error_response, parse_datetime
from database import get_db_session
from services import CalendarService, NotFoundError
from validators import ValidationError

logger = logging.getLogger(__name__)

calendar_bp = Blueprint('calendar_bp', __name__)

DATETIME_FIELDS = ('start_time', 'end_time')


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _parse_times(data):
    """Replace ISO strings in the datetime fields with datetimes; raises ValidationError"""
    parsed = dict(data)
    for field in DATETIME_FIELDS:
        if parsed.get(field):
            try:
                parsed[field] = parse_datetime(parsed[field])
            except (ValueError, OverflowError):
                raise ValidationError(f"Invalid {field}", field)
    return parsed


def _query_datetime(name):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return parse_datetime(value)
    except (ValueError, OverflowError):
        raise ValidationError(f"Invalid {name} date", name)


@calendar_bp.route('/api/calendar/events', methods=['GET'])
@tenant_required()
def list_events():
    """Events between optional ?start= and ?end= bounds"""
    try:
        start = _query_datetime('start')
        end = _query_datetime('end')

        with get_db_session() as db:
            events = CalendarService(db, auth.current_business_id()).list_events(start, end)

        return jsonify(events)

    except ValidationError as e:
        return error_response(e.message, 400, e.field)
    except Exception as e:
        logger.error(f"Error listing calendar events: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@calendar_bp.route('/api/calendar/events', methods=['POST'])
@tenant_required()
def create_event():
    """Create an event, optionally linked to a lead"""
    try:
        data = _parse_times(_json_body())

        with get_db_session() as db:
            event = CalendarService(db, auth.current_business_id()).create_event(data)

        return jsonify(event)

    except ValidationError as e:
        return error_response(e.message, 400, e.field)
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error creating calendar event: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@calendar_bp.route('/api/calendar/events/<event_id>', methods=['PATCH'])
@tenant_required()
def update_event(event_id):
    try:
        data = _parse_times(_json_body())

        with get_db_session() as db:
            event = CalendarService(db, auth.current_business_id()).update_event(event_id, data)

        return jsonify(event)

    except ValidationError as e:
        return error_response(e.message, 400, e.field)
    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error updating calendar event {event_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@calendar_bp.route('/api/calendar/events/<event_id>', methods=['DELETE'])
@tenant_required()
def cancel_event(event_id):
    """Soft delete: the event is marked cancelled"""
    try:
        with get_db_session() as db:
            CalendarService(db, auth.current_business_id()).cancel_event(event_id)

        return jsonify({'success': True, 'message': 'Event cancelled'})

    except NotFoundError as e:
        return error_response(e.message, 404)
    except Exception as e:
        logger.error(f"Error cancelling calendar event {event_id}: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@calendar_bp.route('/api/calendar/auto-create-events', methods=['POST'])
@tenant_required()
def auto_create_events():
    """Book an appointment for every booked lead that has no event yet"""
    try:
        with get_db_session() as db:
            created = CalendarService(db, auth.current_business_id()).auto_create_events()

        return jsonify({
            'success': True,
            'message': f"Created {len(created)} calendar events",
            'createdEvents': created,
        })

    except Exception as e:
        logger.error(f"Error auto-creating calendar events: {e}", exc_info=True)
        return error_response('Internal server error', 500)
