"""
SQLAlchemy models for LeadNest.
Every tenant-owned table carries a business_id; queries against it must always
filter on that column.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, Integer, Boolean, DateTime,
    ForeignKey, JSON, Index, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from database.connection import Base


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), 'postgresql')


def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


# =============================================================================
# BUSINESSES (tenant root)
# =============================================================================

class Business(Base):
    """A tenant. Everything a customer sees hangs off one of these."""
    __tablename__ = 'businesses'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    slug = Column(String(120), unique=True, nullable=False)
    email = Column(String(255))
    service_types = Column(JSONType, default=list)
    onboarding_step = Column(Integer, default=1, nullable=False)
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    settings = Column(JSONType, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    members = relationship("UserBusinessRelation", back_populates="business")
    leads = relationship("Lead", back_populates="business")

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'email': self.email,
            'service_types': self.service_types or [],
            'onboarding_step': self.onboarding_step,
            'onboarding_completed': self.onboarding_completed,
            'settings': self.settings or {},
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


# =============================================================================
# USERS & MEMBERSHIP
# =============================================================================

class User(Base):
    """Account holder. Email is globally unique."""
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    memberships = relationship("UserBusinessRelation", back_populates="user")

    def to_dict(self, include_sensitive=False):
        data = {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
        if include_sensitive:
            data['password_hash'] = self.password_hash
        return data


class UserBusinessRelation(Base):
    """
    Membership of a user in a business.
    The is_default relation marks the original owner and is never removable.
    """
    __tablename__ = 'user_business_relations'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    business_id = Column(String(36), ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    role = Column(String(20), nullable=False, default='member')  # owner, member
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="memberships")
    business = relationship("Business", back_populates="members")

    __table_args__ = (
        UniqueConstraint('user_id', 'business_id', name='uq_user_business'),
        Index('ix_user_business_relations_business', 'business_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'business_id': self.business_id,
            'role': self.role,
            'is_default': self.is_default,
            'created_at': _iso(self.created_at)
        }


class PasswordResetToken(Base):
    """Single-use, one hour credential recovery token."""
    __tablename__ = 'password_reset_tokens'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), nullable=False)
    token = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_password_reset_tokens_email', 'email'),
    )


# =============================================================================
# LEADS
# =============================================================================

class Lead(Base):
    """Inbound sales inquiry scoped to exactly one business."""
    __tablename__ = 'leads'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    business_id = Column(String(36), ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255))
    phone = Column(String(50))
    service_type = Column(String(120))
    location = Column(String(255))
    status = Column(String(20), nullable=False, default='new')
    priority = Column(String(20), nullable=False, default='medium')
    tags = Column(JSONType, default=list)
    message = Column(Text, default='')
    qualification_notes = Column(Text)
    internal_notes = Column(Text)
    source = Column(String(100))
    last_contacted_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    business = relationship("Business", back_populates="leads")
    notes = relationship("LeadNote", back_populates="lead", order_by="LeadNote.created_at.desc()")

    __table_args__ = (
        Index('ix_leads_business', 'business_id'),
        Index('ix_leads_business_status', 'business_id', 'status'),
        Index('ix_leads_created_at', 'created_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'business_id': self.business_id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'service_type': self.service_type,
            'location': self.location,
            'status': self.status,
            'priority': self.priority,
            'tags': self.tags or [],
            'message': self.message,
            'qualification_notes': self.qualification_notes,
            'internal_notes': self.internal_notes,
            'source': self.source,
            'last_contacted_at': _iso(self.last_contacted_at),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class LeadNote(Base):
    """Append-only audit/comment entry. System notes have no user."""
    __tablename__ = 'lead_notes'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    lead_id = Column(String(36), ForeignKey('leads.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='SET NULL'))
    note = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    lead = relationship("Lead", back_populates="notes")

    __table_args__ = (
        Index('ix_lead_notes_lead', 'lead_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'note': self.note,
            'user_id': self.user_id,
            'created_at': _iso(self.created_at)
        }


# =============================================================================
# CALENDAR
# =============================================================================

class CalendarEvent(Base):
    """Scheduled appointment or task, optionally tied to a lead."""
    __tablename__ = 'calendar_events'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    business_id = Column(String(36), ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    lead_id = Column(String(36), ForeignKey('leads.id', ondelete='SET NULL'))
    title = Column(String(255), nullable=False)
    description = Column(Text, default='')
    event_type = Column(String(50), default='appointment')  # appointment, task, meeting
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(20), default='scheduled')  # scheduled, completed, cancelled
    location = Column(String(255), default='')
    participants = Column(JSONType, default=list)
    reminders = Column(JSONType, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lead = relationship("Lead")

    __table_args__ = (
        Index('ix_calendar_events_business', 'business_id'),
        Index('ix_calendar_events_start_time', 'start_time'),
        Index('ix_calendar_events_lead', 'lead_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'business_id': self.business_id,
            'lead_id': self.lead_id,
            'title': self.title,
            'description': self.description,
            'event_type': self.event_type,
            'start_time': _iso(self.start_time),
            'end_time': _iso(self.end_time),
            'status': self.status,
            'location': self.location,
            'participants': self.participants or [],
            'reminders': self.reminders or [],
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


# =============================================================================
# NOTIFICATIONS
# =============================================================================

class Notification(Base):
    """In-app notification for one user of one business."""
    __tablename__ = 'app_notifications'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    business_id = Column(String(36), ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'))
    title = Column(String(255), nullable=False)
    message = Column(Text)
    notification_type = Column(String(50), default='system')  # lead, followup, calendar, system
    entity_type = Column(String(50))
    entity_id = Column(String(36))
    priority = Column(String(20), default='medium')  # low, medium, high, urgent
    status = Column(String(20), default='unread')  # unread, read
    action_url = Column(String(500))
    scheduled_for = Column(DateTime)
    extra_data = Column(JSONType, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('ix_app_notifications_business_user', 'business_id', 'user_id'),
        Index('ix_app_notifications_status', 'status'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'message': self.message,
            'type': self.notification_type,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'priority': self.priority,
            'status': self.status,
            'action_url': self.action_url,
            'metadata': self.extra_data or {},
            'created_at': _iso(self.created_at)
        }


# =============================================================================
# EMAIL
# =============================================================================

class EmailTemplate(Base):
    """Per-business email template with {{variable}} placeholders."""
    __tablename__ = 'email_templates'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    business_id = Column(String(36), ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(255), nullable=False)
    subject = Column(String(500), nullable=False)
    body = Column(Text, nullable=False)
    template_type = Column(String(50), nullable=False)  # confirmation, notification, followup, reminder
    trigger_event = Column(String(100))
    days_after_trigger = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    variables = Column(JSONType, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('business_id', 'name', name='uq_email_template_name'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'business_id': self.business_id,
            'name': self.name,
            'subject': self.subject,
            'body': self.body,
            'type': self.template_type,
            'trigger_event': self.trigger_event,
            'days_after_trigger': self.days_after_trigger,
            'is_active': self.is_active,
            'variables': self.variables or [],
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class EmailLog(Base):
    """Delivery record for every attempted outbound email."""
    __tablename__ = 'email_logs'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    business_id = Column(String(36), ForeignKey('businesses.id', ondelete='CASCADE'))
    template_id = Column(String(36), ForeignKey('email_templates.id', ondelete='SET NULL'))
    lead_id = Column(String(36), ForeignKey('leads.id', ondelete='SET NULL'))
    recipient_email = Column(String(255), nullable=False)
    subject = Column(String(500))
    body = Column(Text)
    status = Column(String(20), nullable=False)  # sent, failed
    extra_data = Column(JSONType, default=dict)
    sent_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_email_logs_business', 'business_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'template_id': self.template_id,
            'lead_id': self.lead_id,
            'recipient_email': self.recipient_email,
            'subject': self.subject,
            'status': self.status,
            'metadata': self.extra_data or {},
            'sent_at': _iso(self.sent_at)
        }


# =============================================================================
# FOLLOW-UPS
# =============================================================================

class FollowupSchedule(Base):
    """Rule that matches stale leads and the actions to run for them."""
    __tablename__ = 'followup_schedules'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    business_id = Column(String(36), ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    trigger_condition = Column(JSONType, nullable=False, default=dict)
    actions = Column(JSONType, nullable=False, default=list)
    delay_days = Column(Integer, default=0)
    delay_hours = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('business_id', 'name', name='uq_followup_schedule_name'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'business_id': self.business_id,
            'name': self.name,
            'description': self.description,
            'trigger_condition': self.trigger_condition or {},
            'actions': self.actions or [],
            'delay_days': self.delay_days,
            'delay_hours': self.delay_hours,
            'is_active': self.is_active,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class FollowupExecution(Base):
    """One application of a schedule to one lead: pending, sent or failed."""
    __tablename__ = 'followup_executions'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    business_id = Column(String(36), ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    schedule_id = Column(String(36), ForeignKey('followup_schedules.id', ondelete='CASCADE'), nullable=False)
    lead_id = Column(String(36), ForeignKey('leads.id', ondelete='CASCADE'), nullable=False)
    status = Column(String(20), nullable=False, default='pending')
    scheduled_for = Column(DateTime, nullable=False)
    executed_at = Column(DateTime)
    result = Column(JSONType, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)

    schedule = relationship("FollowupSchedule")
    lead = relationship("Lead")

    __table_args__ = (
        Index('ix_followup_executions_business_status', 'business_id', 'status'),
        Index('ix_followup_executions_lead_schedule', 'lead_id', 'schedule_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'schedule_id': self.schedule_id,
            'lead_id': self.lead_id,
            'status': self.status,
            'scheduled_for': _iso(self.scheduled_for),
            'executed_at': _iso(self.executed_at),
            'result': self.result or {},
            'created_at': _iso(self.created_at)
        }
