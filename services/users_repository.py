"""
Users Repository - Database access layer for accounts and credentials.
"""

import logging
from datetime import datetime
from typing import List, Optional, Dict
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash, check_password_hash

from database.models import User, UserBusinessRelation, Business

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash a password with pbkdf2 for compatibility."""
    return generate_password_hash(password, method='pbkdf2:sha256')


class UsersRepository:
    """Repository for user database operations."""

    def __init__(self, session: Session):
        self.session = session

    def get_user(self, user_id: str) -> Optional[Dict]:
        """Get a user by ID."""
        user = self.session.query(User).filter(User.id == user_id).first()
        return user.to_dict() if user else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email (returns model for auth)."""
        if not email:
            return None
        return self.session.query(User).filter(User.email == email.strip().lower()).first()

    def email_exists(self, email: str) -> bool:
        return self.get_user_by_email(email) is not None

    def create_user(self, name: str, email: str, password: str) -> User:
        """Create a new user; the caller owns the transaction."""
        user = User(
            name=name.strip(),
            email=email.strip().lower(),
            password_hash=hash_password(password)
        )
        self.session.add(user)
        self.session.flush()
        logger.info(f"Created user: {user.id}")
        return user

    def set_password(self, email: str, password: str) -> bool:
        """Replace the password hash for the account with this email."""
        user = self.get_user_by_email(email)
        if not user:
            return False
        user.password_hash = hash_password(password)
        user.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Password updated for user: {user.id}")
        return True

    def verify_password(self, user: User, password: str) -> bool:
        """Verify a user's password."""
        return check_password_hash(user.password_hash, password)

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the user for valid credentials, else None."""
        user = self.get_user_by_email(email)
        if not user or not password:
            return None
        if not self.verify_password(user, password):
            logger.warning(f"Failed login attempt for user: {user.id}")
            return None
        return user

    def get_default_membership(self, user_id: str) -> Optional[UserBusinessRelation]:
        """
        Membership used to populate the session at login.
        Prefers the relation flagged is_default, then the oldest one.
        """
        return self.session.query(UserBusinessRelation).filter(
            UserBusinessRelation.user_id == user_id
        ).order_by(
            UserBusinessRelation.is_default.desc(),
            UserBusinessRelation.created_at
        ).first()

    def list_team_members(self, business_id: str) -> List[Dict]:
        """List members of a business with their role."""
        rows = self.session.query(User, UserBusinessRelation).join(
            UserBusinessRelation, UserBusinessRelation.user_id == User.id
        ).filter(
            UserBusinessRelation.business_id == business_id
        ).order_by(User.name).all()

        members = []
        for user, relation in rows:
            data = user.to_dict()
            data['role'] = relation.role
            data['is_default'] = relation.is_default
            members.append(data)
        return members

    def get_session_identity(self, user_id: str) -> Optional[Dict]:
        """Build the identity stored in the session cookie for a user."""
        user = self.session.query(User).filter(User.id == user_id).first()
        if not user:
            return None

        identity = {
            'user_id': user.id,
            'user_name': user.name,
            'user_email': user.email,
            'business_id': None,
            'business_slug': None,
            'role': None,
            'onboarding_completed': False,
        }

        membership = self.get_default_membership(user.id)
        if membership:
            business = self.session.query(Business).filter(Business.id == membership.business_id).first()
            if business:
                identity.update({
                    'business_id': business.id,
                    'business_slug': business.slug,
                    'role': membership.role,
                    'onboarding_completed': bool(business.onboarding_completed),
                })
        return identity
