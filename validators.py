"""
Input Validation Utilities
Provides validation for API request bodies and user input
"""
import re
from typing import Dict, Any, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

# Allowed vocabularies
LEAD_STATUSES = ('new', 'contacted', 'quoted', 'booked', 'lost')
LEAD_PRIORITIES = ('low', 'medium', 'high')
TEMPLATE_TYPES = ('confirmation', 'notification', 'followup', 'reminder')
FOLLOWUP_ACTION_TYPES = ('email', 'notification', 'task')
LEAD_FORM_FIELDS = ('name', 'email', 'phone', 'serviceType', 'location')

# Regex patterns
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

MIN_PASSWORD_LENGTH = 8


class ValidationError(Exception):
    """Custom exception for validation errors"""
    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that all required fields are present in the data

    Args:
        data: Dictionary of input data
        required_fields: List of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    missing_fields = [field for field in required_fields if field not in data or data[field] is None or data[field] == '']

    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    return True, None


def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email or not isinstance(email, str):
        return False, "Email must be a non-empty string"

    if not EMAIL_PATTERN.match(email):
        return False, "Invalid email format"

    if len(email) > 254:  # RFC 5321
        return False, "Email address too long"

    return True, None


def validate_string_length(value: str, min_length: int = 0, max_length: int = 1000) -> Tuple[bool, Optional[str]]:
    """
    Validate string length is within acceptable range

    Args:
        value: String to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, "Value must be a string"

    if len(value) < min_length:
        return False, f"Value too short (minimum {min_length} characters)"

    if len(value) > max_length:
        return False, f"Value too long (maximum {max_length} characters)"

    return True, None


def validate_password(password: str) -> Tuple[bool, Optional[str]]:
    """Validate a new password"""
    is_valid, error = validate_string_length(password, min_length=MIN_PASSWORD_LENGTH, max_length=256)
    if not is_valid:
        return False, f"Invalid password: {error}"
    return True, None


def validate_lead_status(status: Any) -> Tuple[bool, Optional[str]]:
    """Validate a lead status against the five-state lifecycle"""
    if status not in LEAD_STATUSES:
        return False, "Invalid status"
    return True, None


def validate_lead_ids(lead_ids: Any) -> Tuple[bool, Optional[str]]:
    """Validate a bulk selection: must be a non-empty list of ids"""
    if not isinstance(lead_ids, list) or len(lead_ids) == 0:
        return False, "No leads selected"

    if not all(isinstance(lead_id, str) and lead_id for lead_id in lead_ids):
        return False, "Lead ids must be non-empty strings"

    return True, None


def validate_signup_request(data: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate signup request data

    Args:
        data: Request data dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    is_valid, error = validate_required_fields(data, ['name', 'email', 'password', 'businessName'])
    if not is_valid:
        return False, error

    is_valid, error = validate_email(data['email'])
    if not is_valid:
        return False, error

    is_valid, error = validate_string_length(data['businessName'], min_length=1, max_length=255)
    if not is_valid:
        return False, f"Invalid businessName: {error}"

    return validate_password(data['password'])


def validate_lead_form(data: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """Validate a public lead form submission"""
    for field in LEAD_FORM_FIELDS:
        if not data.get(field):
            return False, f"Missing required field: {field}"

    for field in LEAD_FORM_FIELDS:
        is_valid, error = validate_string_length(data[field], min_length=1, max_length=255)
        if not is_valid:
            return False, f"Invalid {field}: {error}"

    if not EMAIL_PATTERN.match(data['email']):
        return False, "Invalid email format"

    source = data.get('source')
    if source is not None:
        is_valid, error = validate_string_length(source, max_length=100)
        if not is_valid:
            return False, f"Invalid source: {error}"

    message = data.get('message')
    if message is not None:
        is_valid, error = validate_string_length(message, max_length=5000)
        if not is_valid:
            return False, f"Invalid message: {error}"

    return True, None


def validate_email_template(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """
    Validate an email template body.

    With partial=True only the fields present are checked (PATCH semantics).
    """
    if not partial:
        is_valid, _ = validate_required_fields(data, ['name', 'subject', 'body', 'type'])
        if not is_valid:
            return False, "Missing required fields: name, subject, body, type"

    if 'type' in data and data['type'] not in TEMPLATE_TYPES:
        return False, "Invalid template type"

    if 'variables' in data and not isinstance(data['variables'], list):
        return False, "variables must be an array"

    return True, None


def validate_followup_schedule(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """
    Validate a follow-up schedule body.

    With partial=True only the fields present are checked (PATCH semantics).
    """
    if not partial:
        is_valid, _ = validate_required_fields(data, ['name', 'trigger_condition', 'actions'])
        if not is_valid:
            return False, "Missing required fields: name, trigger_condition, actions"

    if 'trigger_condition' in data:
        condition = data['trigger_condition']
        if (not isinstance(condition, dict) or not condition.get('status')
                or not condition.get('priority') or not condition.get('days_without_contact')):
            return False, "trigger_condition must include status, priority, and days_without_contact"

    if 'actions' in data:
        actions = data['actions']
        if not isinstance(actions, list) or len(actions) == 0:
            return False, "Actions must be a non-empty array"
        for idx, action in enumerate(actions):
            if not isinstance(action, dict) or action.get('type') not in FOLLOWUP_ACTION_TYPES:
                return False, f"Action {idx} has an invalid type"

    return True, None
