"""
Password Reset Service - issue, validate and consume reset tokens.

Token lifecycle: issued -> consumed | expired | superseded.
- Issuing deletes every earlier token for the email (supersession).
- An expired token is deleted the first time it is looked at.
- A used token never authorizes a second change.
Consume re-runs every check; it never trusts an earlier validate call.
"""

import secrets
import logging
from datetime import datetime, timedelta
from typing import Dict, Optional
from sqlalchemy.orm import Session

from database.models import PasswordResetToken
from services.users_repository import UsersRepository
from validators import ValidationError, validate_password

logger = logging.getLogger(__name__)

GENERIC_RESET_MESSAGE = "If an account exists with this email, you will receive a reset link shortly."

INVALID_TOKEN = "Invalid or expired reset token"
EXPIRED_TOKEN = "Reset token has expired"
USED_TOKEN = "Reset token has already been used"


class PasswordResetService:
    """Service for the credential recovery flow."""

    def __init__(self, session: Session, token_ttl: int = 3600, app_url: str = ''):
        self.session = session
        self.token_ttl = token_ttl
        self.app_url = (app_url or '').rstrip('/')
        self.users = UsersRepository(session)

    def build_reset_url(self, token: str) -> str:
        return f"{self.app_url}/auth/reset-password?token={token}"

    def request_reset(self, email: str) -> Optional[Dict]:
        """
        Issue a new token for an existing account.

        Returns:
            {'email', 'token', 'reset_url'} for a known account, None otherwise.
            Callers must answer both cases identically.
        """
        user = self.users.get_user_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return None

        self.session.query(PasswordResetToken).filter(
            PasswordResetToken.email == user.email
        ).delete(synchronize_session=False)

        token = secrets.token_hex(32)
        reset_token = PasswordResetToken(
            email=user.email,
            token=token,
            expires_at=datetime.utcnow() + timedelta(seconds=self.token_ttl),
            used=False
        )
        self.session.add(reset_token)
        self.session.flush()

        logger.info(f"Password reset token issued for user {user.id}")
        return {
            'email': user.email,
            'token': token,
            'reset_url': self.build_reset_url(token),
        }

    def _check_token(self, token: str) -> PasswordResetToken:
        """
        Look up a token and apply the three checks.
        Expired tokens are deleted here, so the caller must commit even on failure.
        """
        if not token:
            raise ValidationError("Token is required", 'token')

        reset_token = self.session.query(PasswordResetToken).filter(
            PasswordResetToken.token == token
        ).first()

        if not reset_token:
            raise ValidationError(INVALID_TOKEN, 'token')

        if reset_token.expires_at < datetime.utcnow():
            self.session.delete(reset_token)
            self.session.flush()
            logger.info(f"Deleted expired reset token for {reset_token.email}")
            raise ValidationError(EXPIRED_TOKEN, 'token')

        if reset_token.used:
            raise ValidationError(USED_TOKEN, 'token')

        return reset_token

    def validate_token(self, token: str) -> Dict:
        """Read-only check used before showing the reset form."""
        reset_token = self._check_token(token)
        return {'email': reset_token.email, 'valid': True}

    def consume_token(self, token: str, password: str) -> None:
        """Set the new password and retire the token and its siblings."""
        if not token or not password:
            raise ValidationError("Token and password are required")

        reset_token = self._check_token(token)

        is_valid, error = validate_password(password)
        if not is_valid:
            raise ValidationError(error, 'password')

        if not self.users.set_password(reset_token.email, password):
            raise ValidationError(INVALID_TOKEN, 'token')

        reset_token.used = True
        self.session.query(PasswordResetToken).filter(
            PasswordResetToken.email == reset_token.email,
            PasswordResetToken.id != reset_token.id
        ).delete(synchronize_session=False)
        self.session.flush()

        logger.info(f"Password reset completed for {reset_token.email}")
