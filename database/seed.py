"""
Database seeding for LeadNest.
Creates a fully onboarded demo business with a handful of leads, for local
development and the public demo form.
"""

import logging
from datetime import datetime, timedelta

from database.connection import get_db_session
from database.models import Business

logger = logging.getLogger(__name__)

DEMO_BUSINESS_NAME = "Demo Plumbing"
DEMO_OWNER_NAME = "Demo Owner"
DEMO_OWNER_EMAIL = "demo@leadnest.app"
DEMO_OWNER_PASSWORD = "demo-password"
DEMO_SERVICE_TYPES = ['Emergency Repair', 'Installation', 'Maintenance']

DEMO_LEADS = [
    {
        'name': 'Jordan Lee', 'email': 'jordan@example.com', 'phone': '5551230001',
        'serviceType': 'Emergency Repair', 'location': 'Springfield', 'source': 'google',
        'message': 'Burst pipe in the kitchen, need someone ASAP please.',
    },
    {
        'name': 'Sam Rivera', 'email': 'sam@example.com', 'phone': '5551230002',
        'serviceType': 'Installation', 'location': 'Springfield', 'source': 'referral',
        'message': 'Looking to install a new water heater next month.',
    },
    {
        'name': 'Alex Chen', 'email': 'alex@example.com', 'phone': '5551230003',
        'serviceType': 'Maintenance', 'location': 'Shelbyville', 'source': 'facebook',
        'message': 'What is your cheapest price for a yearly checkup?',
    },
]


def seed_demo_business(session):
    """Create the demo business and its owner if they do not exist yet."""
    # Imported here: services depend on this package
    from services import BusinessRepository

    business = session.query(Business).filter(Business.email == DEMO_OWNER_EMAIL).first()
    if business:
        logger.info(f"Demo business already exists: {business.slug}")
        return business

    result = BusinessRepository(session).signup(
        name=DEMO_OWNER_NAME,
        email=DEMO_OWNER_EMAIL,
        password=DEMO_OWNER_PASSWORD,
        business_name=DEMO_BUSINESS_NAME
    )
    business = session.get(Business, result['business']['id'])
    business.service_types = list(DEMO_SERVICE_TYPES)
    business.settings = {'location': 'Springfield', 'serviceArea': '25 miles'}
    business.onboarding_step = 3
    business.onboarding_completed = True
    session.flush()

    logger.info(f"Created demo business: {business.slug}")
    return business


def seed_demo_leads(session, business, config):
    """Score and insert the demo leads, spread over the last few days."""
    from services import LeadRepository, EmailService, auto_qualify_lead

    EmailService(session, business.id, config).create_default_templates()

    repo = LeadRepository(session, business.id)
    now = datetime.utcnow()
    created = 0
    for offset, data in enumerate(DEMO_LEADS):
        lead = repo.create_lead(data, auto_qualify_lead(data, business.settings))
        lead.created_at = now - timedelta(days=offset * 2)
        created += 1

    session.flush()
    logger.info(f"Created {created} demo lead(s)")
    return created


def seed_database(config):
    """
    Seed the database with the demo business if it is missing.

    Args:
        config: Mapping with the SMTP and DATABASE_URL settings
    """
    try:
        with get_db_session() as session:
            existing = session.query(Business).filter(Business.email == DEMO_OWNER_EMAIL).first()
            business = seed_demo_business(session)
            if not existing:
                seed_demo_leads(session, business, config)
        logger.info("Database seeding completed successfully")
        return True
    except Exception as e:
        logger.error(f"Database seeding failed: {e}")
        raise


if __name__ == '__main__':
    from config import get_config
    from database.connection import init_engine, init_db

    logging.basicConfig(level=logging.INFO)
    settings = {key: getattr(get_config(), key) for key in dir(get_config()) if key.isupper()}
    init_engine(settings)
    if settings['DATABASE_URL'].startswith('sqlite'):
        init_db()
    seed_database(settings)
