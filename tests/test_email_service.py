"""
Tests for email rendering, delivery and templates
"""
import pytest
from unittest.mock import patch
from database import get_db_session, EmailLog, EmailTemplate
from services import EmailService
from services.email_service import replace_variables, text_to_html, DEFAULT_TEMPLATES

SMTP_CONFIG = {
    'SMTP_HOST': 'smtp.test',
    'SMTP_PORT': 2525,
    'SMTP_USER': 'mailer',
    'SMTP_PASSWORD': 'hunter2',
    'SMTP_USE_TLS': True,
    'FROM_EMAIL': 'hello@leadnest.test',
}


@pytest.mark.unit
class TestRendering:
    """Tests for placeholder substitution"""

    def test_replace_variables(self):
        text = 'Hi {{lead_name}}, thanks for asking about {{service_type}}. {{lead_name}}!'
        assert replace_variables(text, {'lead_name': 'Dana', 'service_type': 'Painting'}) == \
            'Hi Dana, thanks for asking about Painting. Dana!'

    def test_unknown_placeholders_survive(self):
        assert replace_variables('{{missing}} and {{x}}', {'x': 1}) == '{{missing}} and 1'

    def test_values_are_literal(self):
        assert replace_variables('{{v}}', {'v': r'\1 $5'}) == r'\1 $5'

    def test_text_to_html_escapes(self):
        assert text_to_html('a < b\nsecond') == '<p>a &lt; b</p><p>second</p>'


@pytest.mark.integration
class TestSendEmail:
    """Tests for EmailService.send_email"""

    def test_sends_and_logs(self, app, tenant_a):
        with patch('services.email_service.smtplib.SMTP') as mock_smtp:
            with get_db_session() as session:
                sent = EmailService(session, tenant_a['business_id'], SMTP_CONFIG).send_email(
                    {'email': 'dana@example.com', 'name': 'Dana'},
                    'Hello {{name}}', 'Body for {{name}}', variables={'name': 'Dana'}
                )

        assert sent is True
        mock_smtp.assert_called_once_with('smtp.test', 2525, timeout=10)
        server = mock_smtp.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with('mailer', 'hunter2')

        message = server.send_message.call_args[0][0]
        assert message['From'] == 'hello@leadnest.test'
        assert message['Subject'] == 'Hello Dana'

        with get_db_session() as session:
            log = session.query(EmailLog).one()
            assert log.status == 'sent'
            assert log.body == 'Body for Dana'
            assert log.business_id == tenant_a['business_id']

    def test_partial_failure_returns_false(self, app, tenant_a):
        with patch('services.email_service.smtplib.SMTP') as mock_smtp:
            server = mock_smtp.return_value.__enter__.return_value
            server.send_message.side_effect = [None, OSError('mailbox full')]
            with get_db_session() as session:
                sent = EmailService(session, tenant_a['business_id'], SMTP_CONFIG).send_email(
                    [{'email': 'one@example.com'}, {'email': 'two@example.com'}], 'Hi', 'Body'
                )

        assert sent is False
        with get_db_session() as session:
            statuses = {log.recipient_email: log.status for log in session.query(EmailLog).all()}
            failed = session.query(EmailLog).filter(EmailLog.status == 'failed').one()
            assert failed.extra_data == {'error': 'mailbox full'}
        assert statuses == {'one@example.com': 'sent', 'two@example.com': 'failed'}

    def test_unconfigured_smtp_logs_failure(self, app, tenant_a):
        with get_db_session() as session:
            sent = EmailService(session, tenant_a['business_id'], {}).send_email(
                {'email': 'dana@example.com'}, 'Hi', 'Body'
            )
        assert sent is False

        with get_db_session() as session:
            assert session.query(EmailLog).one().status == 'failed'


@pytest.mark.integration
class TestTemplates:
    """Tests for template lookup and the default set"""

    def test_default_templates_are_idempotent(self, app, tenant_a):
        with get_db_session() as session:
            assert EmailService(session, tenant_a['business_id'], {}).create_default_templates() == 3
        with get_db_session() as session:
            assert EmailService(session, tenant_a['business_id'], {}).create_default_templates() == 0
            names = {t.name for t in session.query(EmailTemplate).all()}
        assert names == {t['name'] for t in DEFAULT_TEMPLATES}

    def test_trigger_bound_template_wins(self, app, tenant_a):
        business_id = tenant_a['business_id']
        with get_db_session() as session:
            for name, trigger in [('Generic', None), ('Bound', 'lead_created')]:
                session.add(EmailTemplate(business_id=business_id, name=name, template_type='confirmation',
                                          trigger_event=trigger, subject='s', body='b', is_active=True))

        with get_db_session() as session:
            service = EmailService(session, business_id, {})
            assert service.get_template('confirmation', 'lead_created').name == 'Bound'
            assert service.get_template('confirmation', 'lead_stale').name == 'Generic'
            assert service.get_template('reminder') is None

    def test_inactive_templates_are_ignored(self, app, tenant_a):
        with get_db_session() as session:
            session.add(EmailTemplate(business_id=tenant_a['business_id'], name='Off',
                                      template_type='confirmation', subject='s', body='b', is_active=False))

        with get_db_session() as session:
            service = EmailService(session, tenant_a['business_id'], SMTP_CONFIG)
            assert service.send_template_email('confirmation', {'email': 'x@example.com'}, {}) is False
            assert session.query(EmailLog).count() == 0
