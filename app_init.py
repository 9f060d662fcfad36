"""
Application Initialization Module
Builds the Flask app with configuration, logging, security, the database
engine, the edge middleware and every blueprint.
"""
import os
import atexit
from flask import Flask
from config import get_config
from logging_config import setup_logging
from security import setup_security
from health_checks import register_health_checks
from auth import register_edge_middleware
from database import init_engine, init_db, dispose_engine
import logging

logger = logging.getLogger(__name__)


def create_app(config_class=None):
    """
    Application factory

    Args:
        config_class: Config class to load (defaults to the one FLASK_ENV selects)

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    app.config.from_object(config_class or get_config())

    setup_logging(app)

    logger.info("=" * 60)
    logger.info("Initializing LeadNest")
    logger.info("=" * 60)
    logger.info(f"Environment: {os.environ.get('FLASK_ENV', 'development')}")
    logger.info(f"Debug mode: {app.debug}")

    # Setup security (CORS, headers, error handlers)
    setup_security(app, app.config)

    initialize_database(app)

    register_edge_middleware(app)

    # Imported here: the blueprints pull in the service layer
    from app import register_blueprints
    register_blueprints(app)

    register_health_checks(app)

    logger.info("Application initialization complete")
    logger.info("=" * 60)

    return app


def initialize_database(app):
    """
    Create the process-wide engine and make sure it is released at exit.
    SQLite databases (tests, local runs) get their tables created directly;
    PostgreSQL is migrated with Alembic.

    Args:
        app: Flask application instance
    """
    init_engine(app.config)

    if app.config['DATABASE_URL'].startswith('sqlite'):
        init_db()

    atexit.register(dispose_engine)
