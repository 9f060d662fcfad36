"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates all tables for LeadNest: businesses, users and memberships,
password reset tokens, leads and notes, calendar events, notifications,
email templates and logs, follow-up schedules and executions.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', sa.String(36), nullable=False)


def _business_fk(nullable=False):
    return sa.Column('business_id', sa.String(36),
                     sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=nullable)


def upgrade() -> None:
    # Businesses table
    op.create_table('businesses',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('service_types', postgresql.JSONB, server_default='[]'),
        sa.Column('onboarding_step', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('onboarding_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('settings', postgresql.JSONB, server_default='{}'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )

    # Users table
    op.create_table('users',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )

    # Memberships
    op.create_table('user_business_relations',
        _id(),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        _business_fk(),
        sa.Column('role', sa.String(20), nullable=False, server_default='member'),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'business_id', name='uq_user_business')
    )
    op.create_index('ix_user_business_relations_business', 'user_business_relations', ['business_id'])

    # Password reset tokens
    op.create_table('password_reset_tokens',
        _id(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('token', sa.String(64), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token')
    )
    op.create_index('ix_password_reset_tokens_email', 'password_reset_tokens', ['email'])

    # Leads table
    op.create_table('leads',
        _id(),
        _business_fk(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('service_type', sa.String(120)),
        sa.Column('location', sa.String(255)),
        sa.Column('status', sa.String(20), nullable=False, server_default='new'),
        sa.Column('priority', sa.String(20), nullable=False, server_default='medium'),
        sa.Column('tags', postgresql.JSONB, server_default='[]'),
        sa.Column('message', sa.Text(), server_default=''),
        sa.Column('qualification_notes', sa.Text()),
        sa.Column('internal_notes', sa.Text()),
        sa.Column('source', sa.String(100)),
        sa.Column('last_contacted_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_leads_business', 'leads', ['business_id'])
    op.create_index('ix_leads_business_status', 'leads', ['business_id', 'status'])
    op.create_index('ix_leads_created_at', 'leads', ['created_at'])

    # Lead notes
    op.create_table('lead_notes',
        _id(),
        sa.Column('lead_id', sa.String(36), sa.ForeignKey('leads.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_lead_notes_lead', 'lead_notes', ['lead_id'])

    # Calendar events
    op.create_table('calendar_events',
        _id(),
        _business_fk(),
        sa.Column('lead_id', sa.String(36), sa.ForeignKey('leads.id', ondelete='SET NULL')),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), server_default=''),
        sa.Column('event_type', sa.String(50), server_default='appointment'),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), server_default='scheduled'),
        sa.Column('location', sa.String(255), server_default=''),
        sa.Column('participants', postgresql.JSONB, server_default='[]'),
        sa.Column('reminders', postgresql.JSONB, server_default='[]'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_calendar_events_business', 'calendar_events', ['business_id'])
    op.create_index('ix_calendar_events_start_time', 'calendar_events', ['start_time'])
    op.create_index('ix_calendar_events_lead', 'calendar_events', ['lead_id'])

    # In-app notifications
    op.create_table('app_notifications',
        _id(),
        _business_fk(),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE')),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text()),
        sa.Column('notification_type', sa.String(50), server_default='system'),
        sa.Column('entity_type', sa.String(50)),
        sa.Column('entity_id', sa.String(36)),
        sa.Column('priority', sa.String(20), server_default='medium'),
        sa.Column('status', sa.String(20), server_default='unread'),
        sa.Column('action_url', sa.String(500)),
        sa.Column('scheduled_for', sa.DateTime()),
        sa.Column('extra_data', postgresql.JSONB, server_default='{}'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_app_notifications_business_user', 'app_notifications', ['business_id', 'user_id'])
    op.create_index('ix_app_notifications_status', 'app_notifications', ['status'])

    # Email templates
    op.create_table('email_templates',
        _id(),
        _business_fk(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('subject', sa.String(500), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('template_type', sa.String(50), nullable=False),
        sa.Column('trigger_event', sa.String(100)),
        sa.Column('days_after_trigger', sa.Integer(), server_default='0'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('variables', postgresql.JSONB, server_default='[]'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'name', name='uq_email_template_name')
    )

    # Email delivery log
    op.create_table('email_logs',
        _id(),
        _business_fk(nullable=True),
        sa.Column('template_id', sa.String(36), sa.ForeignKey('email_templates.id', ondelete='SET NULL')),
        sa.Column('lead_id', sa.String(36), sa.ForeignKey('leads.id', ondelete='SET NULL')),
        sa.Column('recipient_email', sa.String(255), nullable=False),
        sa.Column('subject', sa.String(500)),
        sa.Column('body', sa.Text()),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('extra_data', postgresql.JSONB, server_default='{}'),
        sa.Column('sent_at', sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_email_logs_business', 'email_logs', ['business_id'])

    # Follow-up schedules
    op.create_table('followup_schedules',
        _id(),
        _business_fk(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('trigger_condition', postgresql.JSONB, nullable=False, server_default='{}'),
        sa.Column('actions', postgresql.JSONB, nullable=False, server_default='[]'),
        sa.Column('delay_days', sa.Integer(), server_default='0'),
        sa.Column('delay_hours', sa.Integer(), server_default='0'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'name', name='uq_followup_schedule_name')
    )

    # Follow-up executions
    op.create_table('followup_executions',
        _id(),
        _business_fk(),
        sa.Column('schedule_id', sa.String(36),
                  sa.ForeignKey('followup_schedules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('lead_id', sa.String(36), sa.ForeignKey('leads.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('scheduled_for', sa.DateTime(), nullable=False),
        sa.Column('executed_at', sa.DateTime()),
        sa.Column('result', postgresql.JSONB, server_default='{}'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_followup_executions_business_status', 'followup_executions', ['business_id', 'status'])
    op.create_index('ix_followup_executions_lead_schedule', 'followup_executions', ['lead_id', 'schedule_id'])


def downgrade() -> None:
    op.drop_table('followup_executions')
    op.drop_table('followup_schedules')
    op.drop_table('email_logs')
    op.drop_table('email_templates')
    op.drop_table('app_notifications')
    op.drop_table('calendar_events')
    op.drop_table('lead_notes')
    op.drop_table('leads')
    op.drop_table('password_reset_tokens')
    op.drop_table('user_business_relations')
    op.drop_table('users')
    op.drop_table('businesses')
