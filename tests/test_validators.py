"""
Tests for input validation utilities
"""
import pytest
from validators import (
    validate_required_fields,
    validate_email,
    validate_string_length,
    validate_password,
    validate_lead_status,
    validate_lead_ids,
    validate_signup_request,
    validate_lead_form,
    validate_email_template,
    validate_followup_schedule,
    LEAD_STATUSES
)


@pytest.mark.unit
class TestRequiredFields:
    """Tests for required fields validation"""

    def test_validate_all_fields_present(self):
        """Test validation passes when all fields present"""
        data = {'name': 'John', 'email': 'john@example.com'}
        is_valid, error = validate_required_fields(data, ['name', 'email'])
        assert is_valid is True
        assert error is None

    def test_validate_missing_field(self):
        """Test validation fails when field missing"""
        is_valid, error = validate_required_fields({'name': 'John'}, ['name', 'email'])
        assert is_valid is False
        assert 'email' in error

    def test_validate_empty_string_counts_as_missing(self):
        is_valid, error = validate_required_fields({'name': ''}, ['name'])
        assert is_valid is False


@pytest.mark.unit
class TestEmailAndStrings:
    """Tests for email and length validation"""

    def test_valid_email(self):
        assert validate_email('user@example.com') == (True, None)

    @pytest.mark.parametrize('email', ['invalid', '@example.com', 'user@', '', None])
    def test_invalid_email(self, email):
        is_valid, error = validate_email(email)
        assert is_valid is False
        assert error

    def test_string_too_long(self):
        is_valid, error = validate_string_length('a' * 20, max_length=10)
        assert is_valid is False
        assert 'too long' in error

    def test_non_string_rejected(self):
        is_valid, _ = validate_string_length(123)
        assert is_valid is False

    def test_short_password_rejected(self):
        is_valid, error = validate_password('short')
        assert is_valid is False
        assert 'password' in error.lower()

    def test_eight_character_password_accepted(self):
        assert validate_password('abcdefgh') == (True, None)


@pytest.mark.unit
class TestLeadStatus:
    """Tests for the five-state lead lifecycle"""

    @pytest.mark.parametrize('status', LEAD_STATUSES)
    def test_known_statuses_accepted(self, status):
        assert validate_lead_status(status) == (True, None)

    @pytest.mark.parametrize('status', ['archived', '', None, 'NEW'])
    def test_unknown_statuses_rejected(self, status):
        assert validate_lead_status(status) == (False, "Invalid status")

    def test_empty_selection_rejected(self):
        assert validate_lead_ids([]) == (False, "No leads selected")

    def test_non_list_selection_rejected(self):
        is_valid, _ = validate_lead_ids('abc')
        assert is_valid is False

    def test_selection_of_ids_accepted(self):
        assert validate_lead_ids(['a', 'b']) == (True, None)


@pytest.mark.unit
class TestSignupRequest:
    """Tests for signup body validation"""

    def _data(self, **overrides):
        data = {
            'name': 'Owner',
            'email': 'owner@example.com',
            'password': 'long-enough',
            'businessName': 'Acme',
        }
        data.update(overrides)
        return data

    def test_valid_signup(self):
        assert validate_signup_request(self._data()) == (True, None)

    def test_missing_business_name(self):
        is_valid, error = validate_signup_request(self._data(businessName=''))
        assert is_valid is False
        assert 'businessName' in error

    def test_bad_email(self):
        is_valid, error = validate_signup_request(self._data(email='nope'))
        assert is_valid is False

    def test_short_password(self):
        is_valid, _ = validate_signup_request(self._data(password='123'))
        assert is_valid is False


@pytest.mark.unit
class TestLeadForm:
    """Tests for public form validation"""

    def _data(self, **overrides):
        data = {
            'name': 'Pat',
            'email': 'pat@example.com',
            'phone': '5551234567',
            'serviceType': 'Plumbing',
            'location': 'Springfield',
        }
        data.update(overrides)
        return data

    def test_valid_form(self):
        assert validate_lead_form(self._data()) == (True, None)

    @pytest.mark.parametrize('field', ['name', 'email', 'phone', 'serviceType', 'location'])
    def test_missing_required_field(self, field):
        is_valid, error = validate_lead_form(self._data(**{field: ''}))
        assert is_valid is False
        assert error == f"Missing required field: {field}"

    def test_invalid_email_format(self):
        assert validate_lead_form(self._data(email='not-an-email')) == (False, "Invalid email format")

    @pytest.mark.parametrize('field', ['name', 'email', 'phone', 'serviceType', 'location'])
    def test_non_string_field(self, field):
        is_valid, error = validate_lead_form(self._data(**{field: 5551234}))
        assert is_valid is False
        assert error == f"Invalid {field}: Value must be a string"

    def test_non_string_source(self):
        is_valid, error = validate_lead_form(self._data(source=['google']))
        assert is_valid is False
        assert error == "Invalid source: Value must be a string"


@pytest.mark.unit
class TestAutomationBodies:
    """Tests for email template and follow-up schedule bodies"""

    def test_template_requires_fields(self):
        is_valid, error = validate_email_template({'name': 'x'})
        assert is_valid is False
        assert error == "Missing required fields: name, subject, body, type"

    def test_template_type_checked(self):
        data = {'name': 'x', 'subject': 's', 'body': 'b', 'type': 'sms'}
        assert validate_email_template(data) == (False, "Invalid template type")

    def test_partial_template_update(self):
        assert validate_email_template({'subject': 'New'}, partial=True) == (True, None)

    def test_schedule_condition_must_be_complete(self):
        data = {'name': 'x', 'trigger_condition': {'status': ['new']}, 'actions': [{'type': 'email'}]}
        is_valid, error = validate_followup_schedule(data)
        assert is_valid is False
        assert 'trigger_condition' in error

    def test_schedule_actions_must_be_known(self):
        data = {
            'name': 'x',
            'trigger_condition': {'status': ['new'], 'priority': ['high'], 'days_without_contact': 2},
            'actions': [{'type': 'sms'}],
        }
        assert validate_followup_schedule(data) == (False, "Action 0 has an invalid type")

    def test_valid_schedule(self):
        data = {
            'name': 'x',
            'trigger_condition': {'status': ['new'], 'priority': ['high'], 'days_without_contact': 2},
            'actions': [{'type': 'email'}, {'type': 'task'}],
        }
        assert validate_followup_schedule(data) == (True, None)
