"""
Database package for LeadNest.
Provides SQLAlchemy models, engine lifecycle, and session handling.
"""

from database.connection import (
    Base,
    init_engine,
    get_engine,
    get_db_session,
    init_db,
    check_db_connection,
    dispose_engine
)

from database.models import (
    Business,
    User,
    UserBusinessRelation,
    PasswordResetToken,
    Lead,
    LeadNote,
    CalendarEvent,
    Notification,
    EmailTemplate,
    EmailLog,
    FollowupSchedule,
    FollowupExecution
)

__all__ = [
    # Connection
    'Base',
    'init_engine',
    'get_engine',
    'get_db_session',
    'init_db',
    'check_db_connection',
    'dispose_engine',
    # Models
    'Business',
    'User',
    'UserBusinessRelation',
    'PasswordResetToken',
    'Lead',
    'LeadNote',
    'CalendarEvent',
    'Notification',
    'EmailTemplate',
    'EmailLog',
    'FollowupSchedule',
    'FollowupExecution'
]
