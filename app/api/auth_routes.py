"""
Authentication Routes Blueprint

Signup, login/logout, the current session, and the password reset flow.
"""

from flask import Blueprint, request, jsonify, current_app
import logging

import auth
from app.utils import error_response
from database import get_db_session
from services import BusinessRepository, UsersRepository, PasswordResetService, EmailService, ConflictError
from services.password_reset_service import GENERIC_RESET_MESSAGE
from validators import ValidationError, validate_signup_request

logger = logging.getLogger(__name__)

# Create blueprint
auth_bp = Blueprint('auth_bp', __name__)


def _reset_service(db):
    return PasswordResetService(
        db,
        token_ttl=current_app.config['PASSWORD_RESET_TOKEN_TTL'],
        app_url=current_app.config['APP_URL']
    )


# ============================================================================
# SIGNUP / LOGIN / LOGOUT
# ============================================================================

@auth_bp.route('/api/auth/signup', methods=['POST'])
def api_signup():
    """Create a user, their business and the owner relation in one transaction"""
    try:
        data = request.get_json(silent=True) or {}

        is_valid, error = validate_signup_request(data)
        if not is_valid:
            return error_response(error, 400)

        with get_db_session() as db:
            result = BusinessRepository(db).signup(
                name=data['name'],
                email=data['email'],
                password=data['password'],
                business_name=data['businessName']
            )

        return jsonify({
            'message': 'User created successfully',
            'user': result['user'],
            'business': result['business'],
        }), 201

    except ConflictError as e:
        return error_response(e.message, 400)
    except Exception as e:
        logger.error(f"Signup error: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@auth_bp.route('/api/auth/login', methods=['POST'])
def api_login():
    """API endpoint for user login"""
    try:
        data = request.get_json(silent=True) or {}
        email = data.get('email')
        password = data.get('password')

        if not email or not password:
            return error_response('Email and password are required', 400)

        with get_db_session() as db:
            users = UsersRepository(db)
            user = users.authenticate(email, password)
            identity = users.get_session_identity(user.id) if user else None

        if not identity:
            return error_response('Invalid email or password', 401)

        auth.login_user(identity)

        return jsonify({
            'success': True,
            'user': identity,
            'redirect': '/dashboard' if identity['onboarding_completed'] else '/onboarding'
        })

    except Exception as e:
        logger.error(f"Login error: {e}", exc_info=True)
        return error_response('Login failed', 500)


@auth_bp.route('/api/auth/logout', methods=['POST'])
def api_logout():
    """API endpoint for user logout"""
    auth.logout_user()
    return jsonify({'success': True})


@auth_bp.route('/api/auth/session', methods=['GET'])
def api_session():
    """Identity of the logged-in caller"""
    identity = auth.get_current_identity()
    if not identity:
        return error_response('Not authenticated', 401)
    return jsonify({'success': True, 'user': identity})


# ============================================================================
# PASSWORD RESET
# ============================================================================

@auth_bp.route('/api/auth/forgot-password', methods=['POST'])
def api_forgot_password():
    """
    Issue a reset token and email the link.
    Known and unknown emails get the same response.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get('email')

        if not email or not isinstance(email, str):
            return error_response('Email is required', 400)

        with get_db_session() as db:
            issued = _reset_service(db).request_reset(email)

        if issued:
            try:
                with get_db_session() as db:
                    sent = EmailService(db, None, current_app.config).send_password_reset(
                        issued['email'], issued['reset_url']
                    )
                if not sent:
                    logger.warning("Password reset email could not be delivered")
            except Exception as e:
                logger.error(f"Password reset email failed: {e}")

        return jsonify({'success': True, 'message': GENERIC_RESET_MESSAGE})

    except Exception as e:
        logger.error(f"Forgot password error: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@auth_bp.route('/api/auth/validate-reset-token', methods=['GET'])
def api_validate_reset_token():
    """Check a token before showing the reset form"""
    try:
        token = request.args.get('token')

        # Expired tokens are deleted during the check; commit that even on failure
        with get_db_session() as db:
            try:
                result = _reset_service(db).validate_token(token)
            except ValidationError as e:
                return error_response(e.message, 400)

        return jsonify({'success': True, **result})

    except Exception as e:
        logger.error(f"Validate reset token error: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@auth_bp.route('/api/auth/reset-password', methods=['POST'])
def api_reset_password():
    """Consume a token and set the new password"""
    try:
        data = request.get_json(silent=True) or {}

        with get_db_session() as db:
            try:
                _reset_service(db).consume_token(data.get('token'), data.get('password'))
            except ValidationError as e:
                return error_response(e.message, 400)

        return jsonify({'success': True, 'message': 'Password reset successful'})

    except Exception as e:
        logger.error(f"Reset password error: {e}", exc_info=True)
        return error_response('Internal server error', 500)
