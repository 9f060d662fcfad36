"""
Pytest configuration and shared fixtures
"""
import sys
import pytest
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

PASSWORD = 'correct-horse-battery'


@pytest.fixture
def app_config(tmp_path):
    """Testing configuration writing its log file into a temp dir"""
    from config import TestingConfig

    class Config(TestingConfig):
        LOG_DIR = str(tmp_path / 'logs')

    return Config


@pytest.fixture
def app(app_config):
    """Fully wired app on a fresh in-memory SQLite database"""
    from app_init import create_app
    from database import dispose_engine

    flask_app = create_app(app_config)
    yield flask_app
    dispose_engine()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    """Session for arranging and inspecting data; committed on exit"""
    from database import get_db_session

    with get_db_session() as session:
        yield session


def _create_tenant(name, owner_email, member_email=None, onboarded=True):
    from database import get_db_session, Business, UserBusinessRelation
    from services import BusinessRepository, UsersRepository

    with get_db_session() as session:
        result = BusinessRepository(session).signup(
            name=f"{name} Owner",
            email=owner_email,
            password=PASSWORD,
            business_name=name
        )
        business = session.get(Business, result['business']['id'])
        business.onboarding_completed = onboarded
        business.onboarding_step = 3 if onboarded else 1

        tenant = {
            'business_id': business.id,
            'slug': business.slug,
            'owner_id': result['user']['id'],
            'owner_email': owner_email,
            'member_id': None,
            'member_email': member_email,
        }

        if member_email:
            member = UsersRepository(session).create_user(f"{name} Member", member_email, PASSWORD)
            session.add(UserBusinessRelation(
                user_id=member.id, business_id=business.id, role='member', is_default=False
            ))
            tenant['member_id'] = member.id

    return tenant


@pytest.fixture
def tenant_a(app):
    return _create_tenant('Acme Plumbing', 'owner@acme.test', member_email='member@acme.test')


@pytest.fixture
def tenant_b(app):
    return _create_tenant('Bolt Electric', 'owner@bolt.test', member_email='member@bolt.test')


@pytest.fixture
def make_lead(app):
    """Factory inserting a lead directly; returns its id"""
    from database import get_db_session, Lead

    def _make_lead(business_id, **overrides):
        values = {
            'name': 'Pat Customer',
            'email': 'pat@example.com',
            'phone': '5550001111',
            'service_type': 'Plumbing',
            'location': 'Springfield',
            'status': 'new',
            'priority': 'medium',
            'tags': [],
            'message': 'Leaking tap in the bathroom',
        }
        values.update(overrides)
        with get_db_session() as session:
            lead = Lead(business_id=business_id, **values)
            session.add(lead)
            session.flush()
            return lead.id

    return _make_lead


@pytest.fixture
def login(client):
    """Log the test client in through the API"""
    def _login(email, password=PASSWORD):
        response = client.post('/api/auth/login', json={'email': email, 'password': password})
        assert response.status_code == 200, response.get_json()
        return response.get_json()

    return _login


@pytest.fixture
def days_ago():
    def _days_ago(days, hours=0):
        return datetime.utcnow() - timedelta(days=days, hours=hours)
    return _days_ago


@pytest.fixture
def create_tenant(app):
    """Factory for extra tenants (e.g. one that has not finished onboarding)"""
    return _create_tenant
