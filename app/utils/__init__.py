"""
Utilities Package

Shared helper functions used by the route handlers.
"""

from app.utils.helpers import (
    utc_timestamp,
    parse_datetime,
    error_response,
    int_arg,
)

__all__ = [
    'utc_timestamp',
    'parse_datetime',
    'error_response',
    'int_arg',
]
