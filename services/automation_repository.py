"""
Automation Repository - email templates and follow-up schedules of a business.
"""

import logging
from datetime import datetime
from typing import List, Dict, Any
from sqlalchemy.orm import Session

from database.models import EmailTemplate, FollowupSchedule
from services.errors import NotFoundError
from validators import ValidationError, validate_email_template, validate_followup_schedule

logger = logging.getLogger(__name__)

# request key -> column
TEMPLATE_FIELDS = {
    'name': 'name',
    'subject': 'subject',
    'body': 'body',
    'type': 'template_type',
    'trigger_event': 'trigger_event',
    'days_after_trigger': 'days_after_trigger',
    'is_active': 'is_active',
    'variables': 'variables',
}

SCHEDULE_FIELDS = (
    'name', 'description', 'trigger_condition', 'actions',
    'delay_days', 'delay_hours', 'is_active',
)


class AutomationRepository:
    """CRUD for the automation settings of one business."""

    def __init__(self, session: Session, business_id: str):
        self.session = session
        self.business_id = business_id

    # =========================================================================
    # EMAIL TEMPLATES
    # =========================================================================

    def _template(self, template_id: str) -> EmailTemplate:
        template = self.session.query(EmailTemplate).filter(
            EmailTemplate.id == template_id,
            EmailTemplate.business_id == self.business_id
        ).first()
        if not template:
            raise NotFoundError("Template not found")
        return template

    def _template_name_taken(self, name: str, exclude_id: str = None) -> bool:
        query = self.session.query(EmailTemplate.id).filter(
            EmailTemplate.business_id == self.business_id,
            EmailTemplate.name == name
        )
        if exclude_id:
            query = query.filter(EmailTemplate.id != exclude_id)
        return query.first() is not None

    def list_templates(self) -> List[Dict]:
        templates = self.session.query(EmailTemplate).filter(
            EmailTemplate.business_id == self.business_id
        ).order_by(EmailTemplate.created_at.desc()).all()
        return [t.to_dict() for t in templates]

    def get_template(self, template_id: str) -> Dict:
        return self._template(template_id).to_dict()

    def create_template(self, data: Dict[str, Any]) -> Dict:
        is_valid, error = validate_email_template(data)
        if not is_valid:
            raise ValidationError(error)

        if self._template_name_taken(data['name']):
            raise ValidationError("Template with this name already exists", 'name')

        template = EmailTemplate(
            business_id=self.business_id,
            name=data['name'],
            subject=data['subject'],
            body=data['body'],
            template_type=data['type'],
            trigger_event=data.get('trigger_event') or None,
            days_after_trigger=data.get('days_after_trigger', 0),
            is_active=data.get('is_active', True),
            variables=data.get('variables', [])
        )
        self.session.add(template)
        self.session.flush()

        logger.info(f"Created email template {template.id} for business {self.business_id}")
        return template.to_dict()

    def update_template(self, template_id: str, data: Dict[str, Any]) -> Dict:
        template = self._template(template_id)

        updates = {key: data[key] for key in TEMPLATE_FIELDS if key in data}
        if not updates:
            raise ValidationError("No updates provided")

        is_valid, error = validate_email_template(updates, partial=True)
        if not is_valid:
            raise ValidationError(error)

        if 'name' in updates and self._template_name_taken(updates['name'], exclude_id=template.id):
            raise ValidationError("Template with this name already exists", 'name')

        for key, value in updates.items():
            setattr(template, TEMPLATE_FIELDS[key], value)
        template.updated_at = datetime.utcnow()

        self.session.flush()
        return template.to_dict()

    def delete_template(self, template_id: str) -> None:
        template = self._template(template_id)
        self.session.delete(template)
        self.session.flush()
        logger.info(f"Deleted email template {template_id}")

    # =========================================================================
    # FOLLOW-UP SCHEDULES
    # =========================================================================

    def _schedule(self, schedule_id: str) -> FollowupSchedule:
        schedule = self.session.query(FollowupSchedule).filter(
            FollowupSchedule.id == schedule_id,
            FollowupSchedule.business_id == self.business_id
        ).first()
        if not schedule:
            raise NotFoundError("Schedule not found")
        return schedule

    def _schedule_name_taken(self, name: str, exclude_id: str = None) -> bool:
        query = self.session.query(FollowupSchedule.id).filter(
            FollowupSchedule.business_id == self.business_id,
            FollowupSchedule.name == name
        )
        if exclude_id:
            query = query.filter(FollowupSchedule.id != exclude_id)
        return query.first() is not None

    def list_schedules(self) -> List[Dict]:
        schedules = self.session.query(FollowupSchedule).filter(
            FollowupSchedule.business_id == self.business_id
        ).order_by(FollowupSchedule.created_at.desc()).all()
        return [s.to_dict() for s in schedules]

    def get_schedule(self, schedule_id: str) -> Dict:
        return self._schedule(schedule_id).to_dict()

    def create_schedule(self, data: Dict[str, Any]) -> Dict:
        is_valid, error = validate_followup_schedule(data)
        if not is_valid:
            raise ValidationError(error)

        if self._schedule_name_taken(data['name']):
            raise ValidationError("Schedule with this name already exists", 'name')

        schedule = FollowupSchedule(
            business_id=self.business_id,
            name=data['name'],
            description=data.get('description') or None,
            trigger_condition=data['trigger_condition'],
            actions=data['actions'],
            delay_days=data.get('delay_days', 0),
            delay_hours=data.get('delay_hours', 0),
            is_active=data.get('is_active', True)
        )
        self.session.add(schedule)
        self.session.flush()

        logger.info(f"Created follow-up schedule {schedule.id} for business {self.business_id}")
        return schedule.to_dict()

    def update_schedule(self, schedule_id: str, data: Dict[str, Any]) -> Dict:
        schedule = self._schedule(schedule_id)

        updates = {key: data[key] for key in SCHEDULE_FIELDS if key in data}
        if not updates:
            raise ValidationError("No updates provided")

        is_valid, error = validate_followup_schedule(updates, partial=True)
        if not is_valid:
            raise ValidationError(error)

        if 'name' in updates and self._schedule_name_taken(updates['name'], exclude_id=schedule.id):
            raise ValidationError("Schedule with this name already exists", 'name')

        for key, value in updates.items():
            setattr(schedule, key, value)
        schedule.updated_at = datetime.utcnow()

        self.session.flush()
        return schedule.to_dict()

    def delete_schedule(self, schedule_id: str) -> None:
        schedule = self._schedule(schedule_id)
        self.session.delete(schedule)
        self.session.flush()
        logger.info(f"Deleted follow-up schedule {schedule_id}")
