"""
Lead qualification - score an inbound form submission.

A submission starts at 50 points. Businesses with custom rules in
settings['qualification'] are scored only by those rules; everyone else gets
the default heuristics. The score maps to a priority through the high/medium
thresholds (80/60 unless overridden).
"""

import re
import logging
from datetime import datetime
from typing import Dict, List, Any, Optional

logger = logging.getLogger(__name__)

BASE_SCORE = 50
DEFAULT_THRESHOLDS = {'high': 80, 'medium': 60}

URGENCY_KEYWORDS = ['urgent', 'asap', 'immediate', 'today', 'tomorrow', 'now']
PRICE_KEYWORDS = ['free', 'cheap', 'lowest', 'budget', 'price']


def contact_completeness(lead_data: Dict[str, Any]) -> int:
    """How many of name, email, phone and location look filled in (0-4)."""
    checks = [
        len(lead_data.get('name') or '') > 2,
        '@' in (lead_data.get('email') or ''),
        len(lead_data.get('phone') or '') >= 10,
        len(lead_data.get('location') or '') > 2,
    ]
    return sum(1 for check in checks if check)


def _field_value(lead_data: Dict[str, Any], field: str, now: datetime):
    if field == 'serviceType':
        return (lead_data.get('serviceType') or '').lower()
    if field == 'location':
        return (lead_data.get('location') or '').lower()
    if field == 'message':
        return (lead_data.get('message') or '').lower()
    if field == 'contactCompleteness':
        return contact_completeness(lead_data)
    if field == 'timeOfDay':
        return now.hour
    return None


def evaluate_rule(lead_data: Dict[str, Any], rule: Dict[str, Any], now: datetime = None) -> bool:
    """
    Check one custom rule against a submission.

    Args:
        lead_data: Form fields (name, email, phone, serviceType, location, message)
        rule: {'field', 'condition', 'value', 'score', 'tag'?}
        now: Submission time, for timeOfDay rules

    Returns:
        True if the rule matches
    """
    now = now or datetime.now()
    field_value = _field_value(lead_data, rule.get('field'), now)
    if field_value is None:
        return False

    rule_value = rule.get('value')
    if isinstance(rule_value, str):
        rule_value = rule_value.lower()

    condition = rule.get('condition')
    text = str(field_value)

    if condition == 'equals':
        return text == str(rule_value)
    if condition == 'contains':
        return str(rule_value) in text
    if condition == 'startsWith':
        return text.startswith(str(rule_value))
    if condition == 'endsWith':
        return text.endswith(str(rule_value))
    if condition == 'regex':
        try:
            return re.search(str(rule_value), text, re.IGNORECASE) is not None
        except re.error:
            logger.warning(f"Invalid qualification regex: {rule_value}")
            return False
    if condition == 'in':
        if isinstance(rule_value, list):
            return text in [str(v) for v in rule_value]
        return text in [v.strip() for v in str(rule_value).split(',')]
    if condition == 'notEmpty':
        return len(text.strip()) > 0
    return False


def _priority_for(score: int, thresholds: Dict[str, int]) -> str:
    if score >= thresholds['high']:
        return 'high'
    if score >= thresholds['medium']:
        return 'medium'
    return 'low'


def _result(score: int, tags: List[str], notes: List[str], thresholds: Dict[str, int]) -> Dict[str, Any]:
    priority = _priority_for(score, thresholds)
    priority_tag = f"{priority}-priority"
    if priority_tag not in tags:
        tags.append(priority_tag)

    return {
        'priority': priority,
        'tags': tags,
        'score': score,
        'notes': ' | '.join(notes),
        'shouldAutoContact': priority == 'high' or 'emergency' in tags,
    }


def _apply_custom_rules(lead_data, rules, thresholds, now) -> Dict[str, Any]:
    score = BASE_SCORE
    tags: List[str] = []
    notes: List[str] = []

    for rule in rules:
        if not evaluate_rule(lead_data, rule, now):
            continue
        score += int(rule.get('score') or 0)
        tag = rule.get('tag')
        if tag and tag not in tags:
            tags.append(tag)
        notes.append(f"Rule matched: {rule.get('field')} {rule.get('condition')} {rule.get('value')}")

    return _result(score, tags, notes, thresholds)


def _apply_default_rules(lead_data, settings, now) -> Dict[str, Any]:
    score = BASE_SCORE
    tags: List[str] = []
    notes: List[str] = []

    service_type = lead_data.get('serviceType') or ''
    if service_type in (settings.get('preferredServices') or []):
        score += 20
        tags.append('preferred-service')
        notes.append('Service matches business preferences')

    if 'emergency' in service_type.lower():
        score += 30
        tags.append('emergency')
        notes.append('Emergency service requested')

    message = (lead_data.get('message') or '').lower()
    if message:
        if any(keyword in message for keyword in URGENCY_KEYWORDS):
            score += 15
            tags.append('urgent')
            notes.append('Message indicates urgency')

        if len(message) > 100:
            score += 10
            tags.append('detailed')
            notes.append('Detailed message provided')

        if any(keyword in message for keyword in PRICE_KEYWORDS):
            score -= 10
            tags.append('price-sensitive')
            notes.append('Price-sensitive inquiry')

    if contact_completeness(lead_data) == 4:
        score += 15
        tags.append('complete-contact')
        notes.append('Complete contact information provided')

    if settings.get('serviceArea') and settings.get('location'):
        business_city = str(settings['location']).lower()
        lead_city = (lead_data.get('location') or '').lower()
        if lead_city in business_city or business_city in lead_city:
            score += 20
            tags.append('local')
            notes.append('Lead is in service area')
        else:
            score -= 15
            tags.append('out-of-area')
            notes.append('Lead is outside service area')

    if 9 <= now.hour <= 17:
        tags.append('business-hours')
    else:
        score += 5
        tags.append('after-hours')
        notes.append('Submitted outside business hours')

    return _result(score, tags, notes, dict(DEFAULT_THRESHOLDS))


def auto_qualify_lead(lead_data: Dict[str, Any], settings: Optional[Dict[str, Any]] = None,
                      now: datetime = None) -> Dict[str, Any]:
    """
    Score a form submission.

    Args:
        lead_data: Form fields (name, email, phone, serviceType, location, message)
        settings: Business settings document
        now: Submission time (defaults to local now)

    Returns:
        Dict with priority, tags, score, notes and shouldAutoContact
    """
    settings = settings or {}
    now = now or datetime.now()

    qualification = settings.get('qualification') or {}
    rules = qualification.get('rules') or []

    if rules:
        custom = qualification.get('priorityThresholds') or {}
        thresholds = {
            'high': custom.get('high') or DEFAULT_THRESHOLDS['high'],
            'medium': custom.get('medium') or DEFAULT_THRESHOLDS['medium'],
        }
        logger.debug(f"Qualifying lead with {len(rules)} custom rule(s)")
        return _apply_custom_rules(lead_data, rules, thresholds, now)

    logger.debug("Qualifying lead with default rules")
    return _apply_default_rules(lead_data, settings, now)
