"""
Tests for the public lead capture form
"""
import pytest
from unittest.mock import patch
from database import get_db_session, Business, Lead, Notification, EmailLog
from services import EmailService

SUBMISSION = {
    'name': 'Dana Lee',
    'email': 'Dana@Example.com',
    'phone': '5550102030',
    'serviceType': 'Emergency Plumbing',
    'location': 'Springfield',
    'message': 'Burst pipe in the kitchen',
}


@pytest.fixture
def templates(app, tenant_a):
    with get_db_session() as session:
        EmailService(session, tenant_a['business_id'], app.config).create_default_templates()


def _submit(client, slug, data=None):
    return client.post(f'/api/public/form/{slug}/submit', json=data if data is not None else SUBMISSION)


@pytest.mark.integration
class TestFormSubmission:
    """Tests for POST /api/public/form/<slug>/submit"""

    def test_creates_scored_lead(self, client, tenant_a):
        response = _submit(client, tenant_a['slug'])
        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['message'] == 'Lead submitted successfully'

        with get_db_session() as session:
            lead = session.get(Lead, data['leadId'])
            assert lead.business_id == tenant_a['business_id']
            assert lead.email == 'dana@example.com'
            assert lead.status == 'new'
            assert lead.priority == 'high'
            assert 'emergency' in lead.tags
            assert lead.qualification_notes

    def test_business_settings_drive_scoring(self, client, tenant_a):
        with get_db_session() as session:
            business = session.get(Business, tenant_a['business_id'])
            business.settings = {'qualification': {'rules': [
                {'field': 'location', 'condition': 'equals', 'value': 'shelbyville', 'score': 40, 'tag': 'vip'},
            ]}}

        lead_id = _submit(client, tenant_a['slug'], {**SUBMISSION, 'location': 'Shelbyville'}).get_json()['leadId']

        with get_db_session() as session:
            lead = session.get(Lead, lead_id)
            assert lead.tags == ['vip', 'high-priority']

    def test_unknown_slug(self, client, app):
        response = _submit(client, 'no-such-business')
        assert response.status_code == 404
        assert response.get_json()['error'] == 'Business not found'

    @pytest.mark.parametrize('field', ['name', 'email', 'phone', 'serviceType', 'location'])
    def test_required_fields(self, client, tenant_a, field):
        response = _submit(client, tenant_a['slug'], {**SUBMISSION, field: ''})
        assert response.status_code == 400
        assert response.get_json()['error'] == f"Missing required field: {field}"

    def test_numeric_phone_is_rejected(self, client, tenant_a):
        response = _submit(client, tenant_a['slug'], {**SUBMISSION, 'phone': 5551234})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid phone: Value must be a string'

        with get_db_session() as session:
            assert session.query(Lead).count() == 0

    def test_invalid_email(self, client, tenant_a):
        response = _submit(client, tenant_a['slug'], {**SUBMISSION, 'email': 'not-an-email'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid email format'

    def test_team_is_notified(self, client, tenant_a):
        lead_id = _submit(client, tenant_a['slug']).get_json()['leadId']

        with get_db_session() as session:
            notifications = session.query(Notification).all()
            assert {n.user_id for n in notifications} == {tenant_a['owner_id'], tenant_a['member_id']}
            assert all(n.entity_id == lead_id and n.title == 'New Lead' for n in notifications)


@pytest.mark.integration
class TestFormEmails:
    """Tests for the confirmation and owner emails sent after a submission"""

    def test_emails_logged_as_failed_without_smtp(self, client, tenant_a, templates):
        lead_id = _submit(client, tenant_a['slug']).get_json()['leadId']

        with get_db_session() as session:
            logs = session.query(EmailLog).order_by(EmailLog.recipient_email).all()
            assert [log.recipient_email for log in logs] == ['dana@example.com', tenant_a['owner_email']]
            assert all(log.status == 'failed' and log.lead_id == lead_id for log in logs)

    def test_emails_sent(self, client, app, tenant_a, templates):
        app.config['SMTP_HOST'] = 'smtp.test'
        with patch('services.email_service.smtplib.SMTP') as mock_smtp:
            lead_id = _submit(client, tenant_a['slug']).get_json()['leadId']

        server = mock_smtp.return_value.__enter__.return_value
        assert server.send_message.call_count == 2

        subjects = sorted(call.args[0]['Subject'] for call in server.send_message.call_args_list)
        assert subjects == ['New Lead: Dana Lee - Emergency Plumbing', 'Thank you for contacting Acme Plumbing!']

        owner_mail = [c.args[0] for c in server.send_message.call_args_list
                      if c.args[0]['To'] == tenant_a['owner_email']][0]
        assert f"http://testserver/dashboard/leads/{lead_id}" in owner_mail.as_string()

        with get_db_session() as session:
            assert {log.status for log in session.query(EmailLog).all()} == {'sent'}

    def test_email_failure_does_not_fail_submission(self, client, app, tenant_a, templates):
        app.config['SMTP_HOST'] = 'smtp.test'
        with patch('services.email_service.smtplib.SMTP', side_effect=OSError('connection refused')):
            response = _submit(client, tenant_a['slug'])

        assert response.status_code == 200
        with get_db_session() as session:
            assert session.query(Lead).count() == 1
