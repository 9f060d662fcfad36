"""
Follow-up Service - stale-lead follow-ups for one business.

A follow-up schedule matches leads by status, priority and time since last
contact. Each match becomes a pending execution; executions that come due
run the schedule's actions (email, notification, task) once and end up
'sent' or 'failed'.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Dict, Any
from sqlalchemy import select
from sqlalchemy.orm import Session

from database import get_db_session
from database.models import Business, Lead, FollowupSchedule, FollowupExecution
from services.business_repository import BusinessRepository
from services.calendar_service import CalendarService
from services.email_service import EmailService
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)

MAX_EXECUTIONS_PER_RUN = 50

DEFAULT_SCHEDULES = [
    {
        'name': 'Initial Follow-up',
        'trigger_condition': {
            'status': ['new'],
            'priority': ['high', 'medium'],
            'days_without_contact': 1,
            'exclude_tags': ['do-not-contact', 'spam'],
        },
        'actions': [
            {'type': 'notification', 'delay_days': 0},
            {'type': 'email', 'template': 'reminder', 'delay_days': 0},
        ],
        'delay_days': 1,
        'delay_hours': 0,
    },
    {
        'name': '7-Day Follow-up',
        'trigger_condition': {
            'status': ['contacted'],
            'priority': ['high', 'medium'],
            'days_without_contact': 7,
            'exclude_tags': ['do-not-contact', 'lost'],
        },
        'actions': [
            {'type': 'notification', 'delay_days': 0},
            {'type': 'email', 'template': 'reminder', 'delay_days': 0},
            {'type': 'task', 'delay_days': 0},
        ],
        'delay_days': 7,
        'delay_hours': 0,
    },
    {
        'name': '14-Day Final Follow-up',
        'trigger_condition': {
            'status': ['contacted', 'quoted'],
            'priority': ['high', 'medium', 'low'],
            'days_without_contact': 14,
            'exclude_tags': ['do-not-contact', 'spam', 'lost'],
        },
        'actions': [
            {'type': 'notification', 'delay_days': 0},
            {'type': 'email', 'template': 'reminder', 'delay_days': 0},
        ],
        'delay_days': 14,
        'delay_hours': 0,
    },
]


def days_since_contact(lead: Lead, now: datetime) -> int:
    reference = lead.last_contacted_at or lead.created_at or now
    return max((now - reference).days, 0)


class FollowupService:
    """Follow-up scheduling and execution for one business."""

    def __init__(self, session: Session, business_id: str, config: Dict[str, Any]):
        self.session = session
        self.business_id = business_id
        self.config = config
        self.emails = EmailService(session, business_id, config)
        self.notifications = NotificationService(session, business_id)
        self.calendar = CalendarService(session, business_id)

    def create_default_schedules(self) -> int:
        """Insert the default schedules this business does not have yet."""
        existing = {
            row[0] for row in self.session.query(FollowupSchedule.name).filter(
                FollowupSchedule.business_id == self.business_id
            ).all()
        }

        created = 0
        for schedule in DEFAULT_SCHEDULES:
            if schedule['name'] in existing:
                continue
            self.session.add(FollowupSchedule(
                business_id=self.business_id,
                name=schedule['name'],
                trigger_condition=dict(schedule['trigger_condition']),
                actions=[dict(action) for action in schedule['actions']],
                delay_days=schedule['delay_days'],
                delay_hours=schedule['delay_hours'],
                is_active=True
            ))
            created += 1

        if created:
            self.session.flush()
            logger.info(f"Created {created} default follow-up schedule(s) for business {self.business_id}")
        return created

    def get_active_schedules(self) -> List[FollowupSchedule]:
        return self.session.query(FollowupSchedule).filter(
            FollowupSchedule.business_id == self.business_id,
            FollowupSchedule.is_active == True  # noqa: E712
        ).order_by(FollowupSchedule.delay_days, FollowupSchedule.delay_hours).all()

    # =========================================================================
    # MATCHING
    # =========================================================================

    def find_matching_leads(self, schedule: FollowupSchedule, now: datetime = None) -> List[Lead]:
        """Leads the schedule applies to that have no pending/sent execution for it."""
        now = now or datetime.utcnow()
        condition = schedule.trigger_condition or {}
        cutoff = now - timedelta(days=int(condition.get('days_without_contact') or 0))
        exclude_tags = set(condition.get('exclude_tags') or [])

        already = select(FollowupExecution.lead_id).where(
            FollowupExecution.schedule_id == schedule.id,
            FollowupExecution.status.in_(['pending', 'sent'])
        )

        candidates = self.session.query(Lead).filter(
            Lead.business_id == self.business_id,
            Lead.status.in_(condition.get('status') or []),
            Lead.priority.in_(condition.get('priority') or []),
            (Lead.last_contacted_at.is_(None)) | (Lead.last_contacted_at < cutoff),
            ~Lead.id.in_(already)
        ).all()

        return [lead for lead in candidates if not exclude_tags.intersection(lead.tags or [])]

    def check_and_schedule_followups(self, now: datetime = None) -> int:
        """Create pending executions for every match of every active schedule."""
        now = now or datetime.utcnow()
        scheduled = 0

        for schedule in self.get_active_schedules():
            leads = self.find_matching_leads(schedule, now)
            logger.info(f"Found {len(leads)} lead(s) for schedule: {schedule.name}")

            delay = timedelta(days=schedule.delay_days or 0, hours=schedule.delay_hours or 0)
            for lead in leads:
                self.session.add(FollowupExecution(
                    business_id=self.business_id,
                    schedule_id=schedule.id,
                    lead_id=lead.id,
                    status='pending',
                    scheduled_for=now + delay
                ))
                scheduled += 1

        self.session.flush()
        return scheduled

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def execute_pending_followups(self, now: datetime = None) -> Dict[str, int]:
        """Run due executions, oldest first. Returns sent/failed counts."""
        now = now or datetime.utcnow()
        pending = self.session.query(FollowupExecution).filter(
            FollowupExecution.business_id == self.business_id,
            FollowupExecution.status == 'pending',
            FollowupExecution.scheduled_for <= now
        ).order_by(FollowupExecution.scheduled_for).limit(MAX_EXECUTIONS_PER_RUN).all()

        logger.info(f"Executing {len(pending)} pending follow-up(s) for business {self.business_id}")

        counts = {'sent': 0, 'failed': 0}
        for execution in pending:
            try:
                # A failed execution's writes roll back to this savepoint
                with self.session.begin_nested():
                    self._execute(execution, now)
                execution.status = 'sent'
                execution.executed_at = datetime.utcnow()
                counts['sent'] += 1
            except Exception as e:
                logger.error(f"Failed to execute follow-up {execution.id}: {e}")
                execution.status = 'failed'
                execution.result = {'error': str(e)}
                counts['failed'] += 1

        self.session.flush()
        return counts

    def _execute(self, execution: FollowupExecution, now: datetime) -> None:
        lead = execution.lead
        for action in execution.schedule.actions or []:
            action_type = action.get('type')
            if action_type == 'email':
                self._send_email(lead, action, now)
            elif action_type == 'notification':
                self.notifications.create_lead_notification(lead.to_dict(), 'stale')
            elif action_type == 'task':
                self.calendar.create_task(
                    lead,
                    title=f"Follow-up: {lead.name}",
                    description=(
                        f"Follow up with {lead.name} about {lead.service_type}. "
                        f"Last contacted: {days_since_contact(lead, now)} days ago."
                    )
                )
            else:
                logger.warning(f"Skipping unknown follow-up action: {action_type}")

    def _send_email(self, lead: Lead, action: Dict[str, Any], now: datetime) -> None:
        business = self.session.get(Business, self.business_id)
        variables = {
            'lead_name': lead.name or '',
            'lead_email': lead.email or '',
            'service_type': lead.service_type or '',
            'days_since_contact': str(days_since_contact(lead, now)),
            'business_name': business.name if business else '',
        }
        sent = self.emails.send_template_email(
            action.get('template') or 'reminder',
            {'email': lead.email, 'name': lead.name},
            variables,
            trigger_event='followup_due',
            lead_id=lead.id
        )
        if not sent:
            logger.warning(f"Follow-up email for lead {lead.id} was not sent")


def run_followup_sweep(config: Dict[str, Any]) -> Dict[str, int]:
    """
    Process every onboarded business, one transaction each.

    A business that fails is rolled back and counted; the sweep moves on.
    """
    with get_db_session() as session:
        business_ids = [b.id for b in BusinessRepository(session).list_onboarded_businesses()]

    processed = 0
    errors = 0
    for business_id in business_ids:
        try:
            with get_db_session() as session:
                service = FollowupService(session, business_id, config)
                service.create_default_schedules()
                service.check_and_schedule_followups()
                service.execute_pending_followups()
            processed += 1
        except Exception as e:
            logger.error(f"Error processing follow-ups for business {business_id}: {e}", exc_info=True)
            errors += 1

    logger.info(f"Follow-up sweep: {processed} processed, {errors} error(s)")
    return {'processed': processed, 'errors': errors}
