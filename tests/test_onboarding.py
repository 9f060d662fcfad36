"""
Tests for the onboarding wizard endpoint
"""
import pytest
from database import get_db_session, Business, EmailTemplate


@pytest.fixture
def fresh_tenant(create_tenant):
    return create_tenant('Fresh Painting', 'owner@fresh.test', onboarded=False)


@pytest.mark.integration
class TestOnboarding:
    """Tests for POST /api/business/onboarding"""

    def test_save_progress(self, client, fresh_tenant, login):
        login(fresh_tenant['owner_email'])
        response = client.post('/api/business/onboarding', json={
            'step': 2,
            'businessData': {'serviceTypes': ['Interior', 'Exterior'], 'location': 'Springfield'},
        })
        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Progress saved'
        assert data['completed'] is False

        with get_db_session() as session:
            business = session.get(Business, fresh_tenant['business_id'])
            assert business.onboarding_step == 2
            assert business.service_types == ['Interior', 'Exterior']
            assert business.settings == {'location': 'Springfield'}

    def test_settings_are_merged_across_steps(self, client, fresh_tenant, login):
        login(fresh_tenant['owner_email'])
        client.post('/api/business/onboarding', json={'step': 2, 'businessData': {'location': 'Springfield'}})
        client.post('/api/business/onboarding', json={'step': 3, 'businessData': {'serviceArea': '20 miles'}})

        with get_db_session() as session:
            settings = session.get(Business, fresh_tenant['business_id']).settings
        assert settings == {'location': 'Springfield', 'serviceArea': '20 miles'}

    def test_completion_refreshes_session_and_seeds_templates(self, client, fresh_tenant, login):
        login(fresh_tenant['owner_email'])
        response = client.post('/api/business/onboarding', json={
            'step': 3, 'completed': True, 'businessData': {'businessEmail': 'hi@fresh.test'}
        })
        assert response.get_json()['message'] == 'Onboarding completed'

        identity = client.get('/api/auth/session').get_json()['user']
        assert identity['onboarding_completed'] is True

        with get_db_session() as session:
            business = session.get(Business, fresh_tenant['business_id'])
            assert business.email == 'hi@fresh.test'
            assert session.query(EmailTemplate).filter(
                EmailTemplate.business_id == business.id).count() == 3

    def test_completion_is_one_way(self, client, fresh_tenant, login):
        login(fresh_tenant['owner_email'])
        client.post('/api/business/onboarding', json={'step': 3, 'completed': True})
        client.post('/api/business/onboarding', json={'step': 1, 'completed': False})

        with get_db_session() as session:
            assert session.get(Business, fresh_tenant['business_id']).onboarding_completed is True

    def test_step_is_required(self, client, fresh_tenant, login):
        login(fresh_tenant['owner_email'])
        response = client.post('/api/business/onboarding', json={'businessData': {}})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Step is required'

    def test_requires_session(self, client, fresh_tenant):
        response = client.post('/api/business/onboarding', json={'step': 1})
        assert response.status_code == 401
