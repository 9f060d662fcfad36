"""
Services package for LeadNest.
Contains the tenant-scoped repositories and domain services.
"""

from services.errors import NotFoundError, ConflictError
from services.users_repository import UsersRepository
from services.business_repository import BusinessRepository
from services.lead_repository import LeadRepository
from services.automation_repository import AutomationRepository
from services.password_reset_service import PasswordResetService
from services.notification_service import NotificationService
from services.email_service import EmailService
from services.calendar_service import CalendarService
from services.analytics_service import AnalyticsService
from services.followup_service import FollowupService, run_followup_sweep
from services.qualification import auto_qualify_lead

__all__ = [
    'NotFoundError',
    'ConflictError',
    'UsersRepository',
    'BusinessRepository',
    'LeadRepository',
    'AutomationRepository',
    'PasswordResetService',
    'NotificationService',
    'EmailService',
    'CalendarService',
    'AnalyticsService',
    'FollowupService',
    'run_followup_sweep',
    'auto_qualify_lead',
]
