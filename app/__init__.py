"""
LeadNest - Application Package

This package contains the modular backend structure:
- api/: HTTP route handlers (Flask Blueprints)
- utils/: Shared helpers for the route handlers

The app factory and core Flask setup remain in app_init.py at the project root.
Business logic lives in the top-level services package.
"""

import logging

logger = logging.getLogger(__name__)

# Import blueprints
from app.api.auth_routes import auth_bp
from app.api.onboarding import onboarding_bp
from app.api.businesses import businesses_bp
from app.api.leads import leads_bp
from app.api.forms import forms_bp
from app.api.calendar import calendar_bp
from app.api.analytics import analytics_bp
from app.api.notifications import notifications_bp
from app.api.cron import cron_bp


def register_blueprints(app):
    """
    Register all API blueprints with the Flask app.
    Called from create_app() after security and the database are set up.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(auth_bp)
    app.register_blueprint(onboarding_bp)
    app.register_blueprint(businesses_bp)
    app.register_blueprint(leads_bp)
    app.register_blueprint(forms_bp)
    app.register_blueprint(calendar_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(cron_bp)

    logger.info(f"Registered {len(app.blueprints)} blueprints")


__all__ = ['register_blueprints', 'app', 'auth_bp', 'onboarding_bp', 'businesses_bp', 'leads_bp',
           'forms_bp', 'calendar_bp', 'analytics_bp', 'notifications_bp', 'cron_bp']


# ==============================================================================
# WSGI APP EXPORT FOR GUNICORN
# ==============================================================================
# This allows gunicorn to run with: gunicorn app:app
# The Flask app is created in application.py.
# We use __getattr__ for lazy loading to avoid circular import issues.
# ==============================================================================

_flask_app = None

def __getattr__(name):
    """Lazy load the Flask app to avoid circular imports."""
    global _flask_app
    if name == 'app':
        if _flask_app is None:
            from application import app as flask_app
            _flask_app = flask_app
        return _flask_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
