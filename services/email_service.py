"""
Email Service - template rendering, SMTP delivery and delivery logging.

This service handles:
- Rendering {{variable}} placeholders in template subjects and bodies
- Sending plain text + HTML mail through SMTP
- Recording every attempt in email_logs (sent or failed)
- Seeding the default templates of a business
"""

import re
import html
import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Dict, List, Any, Optional, Union

from database.models import EmailTemplate, EmailLog

logger = logging.getLogger(__name__)


DEFAULT_TEMPLATES = [
    {
        'name': 'Lead Confirmation',
        'template_type': 'confirmation',
        'trigger_event': 'lead_created',
        'subject': 'Thank you for contacting {{business_name}}!',
        'body': (
            "Hi {{lead_name}},\n"
            "\n"
            "Thank you for reaching out to {{business_name}} about {{service_type}}. "
            "We've received your request and will get back to you within 24 hours.\n"
            "\n"
            "Request Details:\n"
            "- Service: {{service_type}}\n"
            "- Location: {{lead_location}}\n"
            "- Message: {{lead_message}}\n"
            "\n"
            "We'll contact you at {{lead_email}} or {{lead_phone}}.\n"
            "\n"
            "Best regards,\n"
            "{{business_name}} Team"
        ),
        'variables': ['business_name', 'lead_name', 'service_type', 'lead_location',
                      'lead_message', 'lead_email', 'lead_phone'],
    },
    {
        'name': 'New Lead Notification',
        'template_type': 'notification',
        'trigger_event': 'lead_created',
        'subject': 'New Lead: {{lead_name}} - {{service_type}}',
        'body': (
            "New lead received!\n"
            "\n"
            "Contact: {{lead_name}}\n"
            "Email: {{lead_email}}\n"
            "Phone: {{lead_phone}}\n"
            "Service: {{service_type}}\n"
            "Location: {{lead_location}}\n"
            "Priority: {{lead_priority}}\n"
            "\n"
            "Message:\n"
            "{{lead_message}}\n"
            "\n"
            "Lead Score: {{lead_score}}\n"
            "Tags: {{lead_tags}}\n"
            "\n"
            "View lead: {{lead_url}}"
        ),
        'variables': ['lead_name', 'lead_email', 'lead_phone', 'service_type', 'lead_location',
                      'lead_priority', 'lead_message', 'lead_score', 'lead_tags', 'lead_url'],
    },
    {
        'name': 'Follow-up Reminder',
        'template_type': 'reminder',
        'trigger_event': 'lead_stale',
        'subject': 'Follow-up needed: {{lead_name}}',
        'body': (
            "Follow-up reminder for {{lead_name}}.\n"
            "\n"
            "Lead has been {{lead_status}} for {{days_stale}} days.\n"
            "\n"
            "Last contacted: {{last_contact_date}}\n"
            "Service: {{service_type}}\n"
            "Priority: {{lead_priority}}\n"
            "\n"
            "View lead: {{lead_url}}"
        ),
        'variables': ['lead_name', 'lead_status', 'days_stale', 'last_contact_date',
                      'service_type', 'lead_priority', 'lead_url'],
    },
]


def replace_variables(text: str, variables: Dict[str, Any]) -> str:
    """Substitute every {{key}} in text; unknown placeholders are left alone."""
    result = text or ''
    for key, value in (variables or {}).items():
        result = re.sub(r'\{\{' + re.escape(key) + r'\}\}', lambda _: str(value), result)
    return result


def text_to_html(text: str) -> str:
    """One <p> per line, escaped."""
    return ''.join(f"<p>{html.escape(line)}</p>" for line in (text or '').split('\n'))


class EmailService:
    """Service for outbound email of one business (or none, for account mail)."""

    def __init__(self, session, business_id: Optional[str], config: Dict[str, Any]):
        self.session = session
        self.business_id = business_id

        self.smtp_host = config.get('SMTP_HOST', '')
        self.smtp_port = int(config.get('SMTP_PORT', 587))
        self.smtp_user = config.get('SMTP_USER', '')
        self.smtp_password = config.get('SMTP_PASSWORD', '')
        self.smtp_use_tls = config.get('SMTP_USE_TLS', True)
        self.from_email = config.get('FROM_EMAIL', 'noreply@leadnest.app')
        self.email_enabled = bool(self.smtp_host)

    # =========================================================================
    # DELIVERY
    # =========================================================================

    def _deliver(self, recipient: str, subject: str, body: str) -> None:
        """Hand one message to the SMTP server. Raises on any failure."""
        if not self.email_enabled:
            raise RuntimeError("SMTP is not configured")

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = self.from_email
        msg['To'] = recipient
        msg.attach(MIMEText(body, 'plain'))
        msg.attach(MIMEText(text_to_html(body), 'html'))

        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
            if self.smtp_use_tls:
                server.starttls()
            if self.smtp_user:
                server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)

    def send_email(self, to: Union[Dict, List[Dict]], subject: str, body: str,
                   template_id: str = None, variables: Dict[str, Any] = None,
                   lead_id: str = None) -> bool:
        """
        Render and send to one or many recipients.

        Args:
            to: {'email', 'name'} or a list of them
            subject: Subject line (already rendered or with placeholders)
            body: Plain text body with optional {{placeholders}}
            template_id: Template the mail came from, for the log
            variables: Placeholder values
            lead_id: Lead the mail is about, for the log

        Returns:
            True only if every recipient was sent successfully
        """
        recipients = to if isinstance(to, list) else [to]
        variables = variables or {}
        rendered_subject = replace_variables(subject, variables)
        rendered_body = replace_variables(body, variables)
        all_successful = True

        for recipient in recipients:
            address = recipient.get('email')
            try:
                self._deliver(address, rendered_subject, rendered_body)
                self._log_email(template_id, lead_id, address, rendered_subject, rendered_body, 'sent', {})
                logger.info(f"Sent email to {address}")
            except Exception as e:
                all_successful = False
                logger.error(f"Failed to send email to {address}: {e}")
                self._log_email(template_id, lead_id, address, rendered_subject, rendered_body,
                                'failed', {'error': str(e)})

        return all_successful

    def _log_email(self, template_id, lead_id, recipient_email, subject, body, status, metadata):
        self.session.add(EmailLog(
            business_id=self.business_id,
            template_id=template_id,
            lead_id=lead_id,
            recipient_email=recipient_email,
            subject=subject,
            body=body,
            status=status,
            extra_data=metadata or {}
        ))
        self.session.flush()

    # =========================================================================
    # TEMPLATES
    # =========================================================================

    def get_template(self, template_type: str, trigger_event: str = None) -> Optional[EmailTemplate]:
        """
        Active template of a type. With a trigger event, a template bound to
        that event wins over an unbound one.
        """
        query = self.session.query(EmailTemplate).filter(
            EmailTemplate.business_id == self.business_id,
            EmailTemplate.template_type == template_type,
            EmailTemplate.is_active == True  # noqa: E712
        )
        templates = query.order_by(EmailTemplate.created_at).all()

        if trigger_event:
            for template in templates:
                if template.trigger_event == trigger_event:
                    return template
            for template in templates:
                if not template.trigger_event:
                    return template
            return None

        return templates[0] if templates else None

    def send_template_email(self, template_type: str, recipient: Dict,
                            variables: Dict[str, Any], trigger_event: str = None,
                            lead_id: str = None) -> bool:
        """Send using the business template of a type; False if none exists."""
        template = self.get_template(template_type, trigger_event)
        if not template:
            logger.warning(f"No template found for type={template_type}, trigger={trigger_event}")
            return False

        return self.send_email(
            to=recipient,
            subject=template.subject,
            body=template.body,
            template_id=template.id,
            variables=variables,
            lead_id=lead_id
        )

    def create_default_templates(self) -> int:
        """Insert the default templates this business does not have yet."""
        existing = {
            row[0] for row in self.session.query(EmailTemplate.name).filter(
                EmailTemplate.business_id == self.business_id
            ).all()
        }

        created = 0
        for template in DEFAULT_TEMPLATES:
            if template['name'] in existing:
                continue
            self.session.add(EmailTemplate(
                business_id=self.business_id,
                name=template['name'],
                template_type=template['template_type'],
                trigger_event=template['trigger_event'],
                subject=template['subject'],
                body=template['body'],
                variables=list(template['variables']),
                is_active=True
            ))
            created += 1

        if created:
            self.session.flush()
            logger.info(f"Created {created} default email template(s) for business {self.business_id}")
        return created

    def send_password_reset(self, email: str, reset_url: str) -> bool:
        """Account mail with the reset link; not tied to a business template."""
        body = (
            "We received a request to reset your LeadNest password.\n"
            "\n"
            f"Reset your password: {reset_url}\n"
            "\n"
            "This link expires in 1 hour. If you did not request a reset, you can ignore this email."
        )
        return self.send_email({'email': email}, "Reset your LeadNest password", body)
