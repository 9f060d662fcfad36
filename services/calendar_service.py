"""
Calendar Service - calendar events of one business.

Handles event listing and CRUD (cancel is a soft delete) and the backfill
that gives every booked lead an appointment.
"""

import logging
from datetime import datetime, timedelta, time
from typing import List, Dict, Any, Optional
from sqlalchemy.orm import Session

from database.models import CalendarEvent, Lead
from services.errors import NotFoundError
from validators import ValidationError

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    'title', 'description', 'event_type', 'start_time', 'end_time',
    'status', 'location', 'lead_id', 'participants', 'reminders',
)

EVENT_STATUSES = ('scheduled', 'completed', 'cancelled')


class CalendarService:
    """Service for calendar event operations, scoped to one business."""

    def __init__(self, session: Session, business_id: str):
        self.session = session
        self.business_id = business_id

    def _owned_event(self, event_id: str) -> CalendarEvent:
        event = self.session.query(CalendarEvent).filter(
            CalendarEvent.id == event_id,
            CalendarEvent.business_id == self.business_id
        ).first()
        if not event:
            raise NotFoundError("Event not found")
        return event

    def _owned_lead(self, lead_id: str) -> Lead:
        lead = self.session.query(Lead).filter(
            Lead.id == lead_id,
            Lead.business_id == self.business_id
        ).first()
        if not lead:
            raise NotFoundError("Lead not found or unauthorized")
        return lead

    @staticmethod
    def _with_lead(event: CalendarEvent) -> Dict:
        data = event.to_dict()
        lead = event.lead
        data['lead_name'] = lead.name if lead else None
        data['lead_email'] = lead.email if lead else None
        data['lead_phone'] = lead.phone if lead else None
        return data

    def list_events(self, start: Optional[datetime] = None,
                    end: Optional[datetime] = None) -> List[Dict]:
        """Non-cancelled events in the window, by start time, with lead contact."""
        query = self.session.query(CalendarEvent).filter(
            CalendarEvent.business_id == self.business_id,
            CalendarEvent.status != 'cancelled'
        )
        if start:
            query = query.filter(CalendarEvent.start_time >= start)
        if end:
            query = query.filter(CalendarEvent.end_time <= end)

        return [self._with_lead(e) for e in query.order_by(CalendarEvent.start_time).all()]

    def create_event(self, data: Dict[str, Any]) -> Dict:
        """
        Create an event. A linked lead must belong to this business and is
        moved to 'contacted'.

        Args:
            data: title, start_time and end_time (datetimes) plus optional
                  description, event_type, location, lead_id, participants, reminders
        """
        if not data.get('title') or not data.get('start_time') or not data.get('end_time'):
            raise ValidationError("Title, start time, and end time are required")

        lead = self._owned_lead(data['lead_id']) if data.get('lead_id') else None

        event = CalendarEvent(
            business_id=self.business_id,
            lead_id=lead.id if lead else None,
            title=data['title'],
            description=data.get('description') or '',
            event_type=data.get('event_type') or 'appointment',
            start_time=data['start_time'],
            end_time=data['end_time'],
            location=data.get('location') or '',
            participants=data.get('participants') or [],
            reminders=data.get('reminders') or [],
            status='scheduled'
        )
        self.session.add(event)

        if lead:
            lead.status = 'contacted'
            lead.updated_at = datetime.utcnow()

        self.session.flush()
        logger.info(f"Created calendar event {event.id} for business {self.business_id}")
        return self._with_lead(event)

    def update_event(self, event_id: str, data: Dict[str, Any]) -> Dict:
        """Apply the known fields present in data."""
        event = self._owned_event(event_id)

        updates = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}
        if not updates:
            raise ValidationError("No updates provided")

        if 'status' in updates and updates['status'] not in EVENT_STATUSES:
            raise ValidationError("Invalid event status", 'status')

        if updates.get('lead_id'):
            self._owned_lead(updates['lead_id'])

        for key, value in updates.items():
            setattr(event, key, value)
        event.updated_at = datetime.utcnow()

        self.session.flush()
        return event.to_dict()

    def cancel_event(self, event_id: str) -> None:
        event = self._owned_event(event_id)
        event.status = 'cancelled'
        event.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Cancelled calendar event {event.id}")

    def create_task(self, lead: Lead, title: str, description: str = '') -> CalendarEvent:
        """A one-hour follow-up task starting an hour from now."""
        start = datetime.utcnow() + timedelta(hours=1)
        event = CalendarEvent(
            business_id=self.business_id,
            lead_id=lead.id,
            title=title,
            description=description,
            event_type='task',
            start_time=start,
            end_time=start + timedelta(hours=1),
            status='scheduled',
            location=lead.location or '',
            participants=[],
            reminders=[]
        )
        self.session.add(event)
        self.session.flush()
        return event

    def auto_create_events(self) -> List[Dict]:
        """
        Give every booked lead without any event an appointment on the day
        two days after the lead was created, 10:00 to 11:00.

        Running it again creates nothing for leads it already covered.
        """
        leads = self.session.query(Lead).outerjoin(
            CalendarEvent, CalendarEvent.lead_id == Lead.id
        ).filter(
            Lead.business_id == self.business_id,
            Lead.status == 'booked',
            CalendarEvent.id.is_(None)
        ).order_by(Lead.created_at.desc()).all()

        created = []
        for lead in leads:
            day = (lead.created_at or datetime.utcnow()).date() + timedelta(days=2)
            start = datetime.combine(day, time(10, 0))
            end = datetime.combine(day, time(11, 0))

            event = CalendarEvent(
                business_id=self.business_id,
                lead_id=lead.id,
                title=f"Appointment: {lead.name} - {lead.service_type}",
                description=f"Booked service: {lead.service_type}. Customer contact: {lead.email}",
                event_type='appointment',
                start_time=start,
                end_time=end,
                status='scheduled',
                location=lead.location or 'TBD',
                participants=[lead.email],
                reminders=[{'type': 'email', 'hours_before': 24}]
            )
            self.session.add(event)
            self.session.flush()

            created.append({
                'lead_id': lead.id,
                'event_id': event.id,
                'title': f"Appointment: {lead.name}",
            })

        if created:
            logger.info(f"Auto-created {len(created)} calendar event(s) for business {self.business_id}")
        return created
