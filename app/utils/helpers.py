"""
Helper utility functions shared by the route handlers.
"""

from datetime import datetime, timezone

from dateutil import parser as date_parser
from flask import jsonify


def utc_timestamp():
    """ISO timestamp used in API response envelopes."""
    return datetime.utcnow().isoformat() + 'Z'


def parse_datetime(value):
    """
    Parse a date/time string into a naive UTC datetime.

    Args:
        value: ISO 8601 string (or datetime, returned normalized)

    Raises:
        ValueError: value cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        parsed = date_parser.parse(value)
    else:
        raise ValueError("Expected a date/time string")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def error_response(message, status=400, field=None):
    """Standard error envelope: {'success': False, 'error': message}."""
    body = {'success': False, 'error': message}
    if field:
        body['field'] = field
    return jsonify(body), status


def int_arg(value, default):
    """Query-string integer with a fallback for missing or malformed values."""
    try:
        return int(value) if value not in (None, '') else default
    except (TypeError, ValueError):
        return default
