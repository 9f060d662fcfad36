"""
Business Repository - tenant lifecycle: signup, onboarding, settings, team.

Settings are an open-ended JSON document. Partial updates are shallow-merged
onto the stored document under a row lock (SELECT ... FOR UPDATE) so two
concurrent merges cannot drop each other's keys.
"""

import re
import logging
from datetime import datetime
from typing import Dict, List, Optional, Any
from sqlalchemy.orm import Session

from database.models import Business, UserBusinessRelation
from services.errors import NotFoundError, ConflictError
from services.users_repository import UsersRepository
from validators import ValidationError

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    """Lowercase, dash-separated slug; never empty."""
    slug = re.sub(r'[^a-z0-9]+', '-', (name or '').lower()).strip('-')
    return slug or 'business'


class BusinessRepository:
    """Repository for business (tenant) operations."""

    def __init__(self, session: Session, business_id: str = None, user_id: str = None):
        self.session = session
        self.business_id = business_id
        self.user_id = user_id

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def get_business(self, business_id: str = None) -> Optional[Business]:
        return self.session.query(Business).filter(
            Business.id == (business_id or self.business_id)
        ).first()

    def get_business_by_slug(self, slug: str) -> Optional[Business]:
        return self.session.query(Business).filter(Business.slug == slug).first()

    def list_onboarded_businesses(self) -> List[Business]:
        """Businesses that finished onboarding, oldest first."""
        return self.session.query(Business).filter(
            Business.onboarding_completed == True  # noqa: E712
        ).order_by(Business.created_at).all()

    def _lock_business(self) -> Business:
        """Load the caller's business with a row lock held until commit."""
        business = self.session.query(Business).filter(
            Business.id == self.business_id
        ).with_for_update().first()
        if not business:
            raise NotFoundError("Business not found")
        return business

    @staticmethod
    def _merge_settings(business: Business, updates: Dict[str, Any]) -> Dict:
        # Assign a new dict so the JSON column is flagged dirty
        merged = dict(business.settings or {})
        merged.update(updates)
        business.settings = merged
        return merged

    # =========================================================================
    # SIGNUP
    # =========================================================================

    def generate_unique_slug(self, name: str) -> str:
        """
        Slug for a new business: base, then base-1, base-2, ...
        The first unused candidate wins.
        """
        base = slugify(name)
        slug = base
        counter = 1
        while self.session.query(Business.id).filter(Business.slug == slug).first():
            slug = f"{base}-{counter}"
            counter += 1
        return slug

    def signup(self, name: str, email: str, password: str, business_name: str) -> Dict:
        """
        Create a user, their business, and the owning relation.
        Runs inside the caller's transaction; any failure rolls all three back.
        """
        users = UsersRepository(self.session)
        if users.email_exists(email):
            raise ConflictError("User with this email already exists")

        user = users.create_user(name, email, password)

        business = Business(
            name=business_name.strip(),
            slug=self.generate_unique_slug(business_name),
            email=user.email,
            service_types=[],
            onboarding_step=1,
            onboarding_completed=False,
            settings={}
        )
        self.session.add(business)
        self.session.flush()

        relation = UserBusinessRelation(
            user_id=user.id,
            business_id=business.id,
            role='owner',
            is_default=True
        )
        self.session.add(relation)
        self.session.flush()

        logger.info(f"Signup complete: user={user.id} business={business.id} slug={business.slug}")
        return {
            'user': {'id': user.id, 'email': user.email, 'name': user.name},
            'business': {'id': business.id, 'name': business.name, 'slug': business.slug},
        }

    # =========================================================================
    # ONBOARDING & SETTINGS
    # =========================================================================

    def update_onboarding(self, step: int, completed: bool = False,
                          business_data: Dict = None) -> Dict:
        """
        Advance the onboarding step and apply partial business data.

        serviceTypes and businessEmail overwrite their columns; location and
        serviceArea are merged into settings. Completion is one-way.
        """
        business = self._lock_business()
        business_data = business_data or {}

        business.onboarding_step = step
        if completed:
            business.onboarding_completed = True

        if 'serviceTypes' in business_data:
            service_types = business_data['serviceTypes']
            if not isinstance(service_types, list):
                raise ValidationError("serviceTypes must be an array", 'serviceTypes')
            business.service_types = service_types

        if 'businessEmail' in business_data:
            business.email = business_data['businessEmail']

        settings_updates = {
            key: business_data[key]
            for key in ('location', 'serviceArea')
            if key in business_data
        }
        if settings_updates:
            self._merge_settings(business, settings_updates)

        business.updated_at = datetime.utcnow()
        self.session.flush()

        logger.info(f"Onboarding step {step} saved for business {business.id} (completed={business.onboarding_completed})")
        return {
            'step': business.onboarding_step,
            'completed': bool(business.onboarding_completed),
        }

    def update_business(self, data: Dict) -> Dict:
        """Update name, email and service types; merge qualification settings."""
        name = data.get('name')
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Business name is required", 'name')

        service_types = data.get('service_types') or []
        if not isinstance(service_types, list):
            raise ValidationError("service_types must be an array", 'service_types')

        business = self._lock_business()
        business.name = name.strip()
        business.email = (data.get('email') or '').strip()
        business.service_types = service_types

        if data.get('qualification') is not None:
            if not isinstance(data['qualification'], dict):
                raise ValidationError("qualification must be an object", 'qualification')
            self._merge_settings(business, {'qualification': data['qualification']})

        business.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated business: {business.id}")
        return business.to_dict()

    # =========================================================================
    # TEAM
    # =========================================================================

    def remove_team_member(self, target_user_id: str) -> None:
        """
        Remove a member from the caller's business.
        The caller cannot remove themselves or the default (owning) relation.
        """
        if target_user_id == self.user_id:
            raise ValidationError("Cannot remove yourself")

        relation = self.session.query(UserBusinessRelation).filter(
            UserBusinessRelation.business_id == self.business_id,
            UserBusinessRelation.user_id == target_user_id
        ).first()
        if not relation:
            raise NotFoundError("Team member not found")

        if relation.is_default:
            raise ValidationError("Cannot remove the business owner")

        self.session.delete(relation)
        self.session.flush()
        logger.info(f"Removed user {target_user_id} from business {self.business_id}")
