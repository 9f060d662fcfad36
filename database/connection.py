"""
Database connection management for LeadNest.
Handles SQLAlchemy engine lifecycle, session scoping, and connection verification.

The engine is process-wide state: created once by init_engine() at app startup,
used through get_db_session() per unit of work, and released by dispose_engine()
at shutdown.
"""

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool, StaticPool

logger = logging.getLogger(__name__)

# SQLAlchemy Base for model declarations
Base = declarative_base()

# Engine and SessionLocal are initialized by init_engine()
engine = None
SessionLocal = None


def _engine_options(url, config):
    """Build create_engine keyword arguments for the given URL."""
    if url.startswith('sqlite'):
        # Single shared connection so an in-memory database survives across sessions
        return {
            'poolclass': StaticPool,
            'connect_args': {'check_same_thread': False},
            'echo': config.get('DB_ECHO', False),
        }

    return {
        'poolclass': QueuePool,
        'pool_size': config.get('DB_POOL_SIZE', 10),
        'max_overflow': config.get('DB_MAX_OVERFLOW', 10),
        'pool_timeout': config.get('DB_POOL_TIMEOUT', 2),
        'pool_recycle': config.get('DB_POOL_RECYCLE', 30),
        'pool_pre_ping': True,  # Verify connections before using
        'echo': config.get('DB_ECHO', False),
    }


def init_engine(config):
    """
    Create the engine and session factory from a config mapping.
    Replaces any engine created earlier (the old one is disposed).
    """
    global engine, SessionLocal

    url = config.get('DATABASE_URL')
    if not url:
        logger.error("DATABASE_URL is not configured!")
        raise RuntimeError(
            "DATABASE_URL not configured. Please set the DATABASE_URL environment variable."
        )

    if engine is not None:
        dispose_engine()

    try:
        engine = create_engine(url, **_engine_options(url, config))
    except Exception as e:
        logger.error(f"Failed to create database engine: {e}")
        raise RuntimeError(f"Failed to connect to database: {e}")

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    logger.info(f"Database engine created ({engine.dialect.name})")
    return engine


def get_engine():
    """Get the initialized SQLAlchemy engine."""
    if engine is None:
        raise RuntimeError("Database engine is not initialized. Call init_engine() first.")
    return engine


def get_session_factory():
    """Get the session factory bound to the current engine."""
    if SessionLocal is None:
        raise RuntimeError("Database engine is not initialized. Call init_engine() first.")
    return SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for a unit of work.
    Commits on success, rolls back on any exception, always closes.

    Example:
        with get_db_session() as db:
            leads = db.query(Lead).filter(Lead.business_id == business_id).all()
    """
    session_factory = get_session_factory()
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connection():
    """
    Verify that the database connection is working.
    Returns True if connection is successful, raises exception otherwise.
    """
    try:
        eng = get_engine()
        with eng.connect() as conn:
            result = conn.execute(text("SELECT 1"))
            result.fetchone()
        logger.debug("Database connection verified successfully")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise RuntimeError(f"Cannot connect to database: {e}")


def init_db():
    """
    Create all tables. Used for SQLite and local development;
    PostgreSQL deployments run the Alembic migrations instead.
    """
    # Import models to ensure they're registered with Base
    from database import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables created/verified")


def dispose_engine():
    """Release every pooled connection and forget the engine."""
    global engine, SessionLocal

    if engine is not None:
        engine.dispose()
        logger.info("Database engine disposed")
    engine = None
    SessionLocal = None
