"""
API Blueprints Package

All HTTP route handlers for the application, organized by domain.
Each module defines a Flask Blueprint registered in app/__init__.py.

BLUEPRINT REFERENCE:
====================

Accounts:
- auth_routes.py    : Signup, login/logout, session, password reset (/api/auth/*)
- onboarding.py     : Onboarding wizard progress (/api/business/onboarding)
- businesses.py     : Business settings, team, email templates, follow-up schedules

Leads:
- leads.py          : Lead list/detail, status changes, notes (/api/leads/*)
- forms.py          : Public lead capture form (/api/public/form/<slug>/submit)

Dashboard:
- calendar.py       : Calendar events and appointment backfill (/api/calendar/*)
- analytics.py      : Source, service and summary reports (/api/analytics/*)
- notifications.py  : In-app notifications (/api/notifications)

Automation:
- cron.py           : Follow-up sweep for the external scheduler (/api/cron/followups)

Health endpoints live in health_checks.py at the project root.
"""

# All blueprints are imported and registered in app/__init__.py
# This file serves as documentation only

__all__ = []
