"""
Lead Repository - lead lifecycle for one business.

Every read and write is filtered by (id, business_id): a lead owned by another
business behaves exactly like a missing one. Status transitions are validated
against the five-state lifecycle on both the single and bulk paths, and each
transition appends a system note to the lead's audit trail.
"""

import logging
from datetime import datetime
from typing import List, Optional, Dict, Any
from sqlalchemy import or_
from sqlalchemy.orm import Session

from database.models import Lead, LeadNote
from services.errors import NotFoundError
from validators import ValidationError, validate_lead_status, validate_lead_ids

logger = logging.getLogger(__name__)


class LeadRepository:
    """Repository for lead database operations, scoped to one business."""

    def __init__(self, session: Session, business_id: str, user_id: str = None):
        self.session = session
        self.business_id = business_id
        self.user_id = user_id  # Author of user notes

    def _owned(self, lead_id: str) -> Lead:
        lead = self.session.query(Lead).filter(
            Lead.id == lead_id,
            Lead.business_id == self.business_id
        ).first()
        if not lead:
            raise NotFoundError("Lead not found")
        return lead

    def _scoped_update(self, lead_ids: List[str], values: Dict[str, Any]) -> int:
        """Single UPDATE restricted to this business; returns affected rows."""
        return self.session.query(Lead).filter(
            Lead.id.in_(lead_ids),
            Lead.business_id == self.business_id
        ).update(values, synchronize_session='fetch')

    def _system_note(self, lead_id: str, text: str) -> LeadNote:
        note = LeadNote(lead_id=lead_id, user_id=None, note=text)
        self.session.add(note)
        return note

    # =========================================================================
    # READS
    # =========================================================================

    def list_leads(self, status: str = None, priority: str = None,
                   search: str = None, limit: int = 200) -> List[Dict]:
        """List leads, newest first, with optional filters."""
        query = self.session.query(Lead).filter(Lead.business_id == self.business_id)

        if status:
            query = query.filter(Lead.status == status)
        if priority:
            query = query.filter(Lead.priority == priority)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Lead.name.ilike(pattern),
                Lead.email.ilike(pattern),
                Lead.phone.ilike(pattern),
                Lead.service_type.ilike(pattern)
            ))

        leads = query.order_by(Lead.created_at.desc()).limit(limit).all()
        return [lead.to_dict() for lead in leads]

    def get_lead(self, lead_id: str) -> Dict:
        """Get a lead with its notes (newest first)."""
        lead = self._owned(lead_id)
        data = lead.to_dict()
        data['notes'] = [note.to_dict() for note in lead.notes]
        return data

    # =========================================================================
    # CREATE
    # =========================================================================

    def create_lead(self, data: Dict, qualification: Optional[Dict] = None) -> Lead:
        """Create a lead from a form submission and its qualification result."""
        qualification = qualification or {}
        lead = Lead(
            business_id=self.business_id,
            name=data['name'].strip(),
            email=data['email'].strip().lower(),
            phone=data['phone'].strip(),
            service_type=data['serviceType'].strip(),
            location=data['location'].strip(),
            message=(data.get('message') or '').strip(),
            source=data.get('source') or None,
            status='new',
            priority=qualification.get('priority', 'medium'),
            tags=qualification.get('tags', []),
            qualification_notes=qualification.get('notes') or None
        )
        self.session.add(lead)
        self.session.flush()
        logger.info(f"Created lead {lead.id} for business {self.business_id} (priority={lead.priority})")
        return lead

    # =========================================================================
    # STATUS TRANSITIONS
    # =========================================================================

    def update_status(self, lead_id: str, new_status: str) -> Dict:
        """
        Move one lead to a new status.

        Returns:
            Dict with id, oldStatus, newStatus, updatedAt and rowsUpdated
        """
        is_valid, error = validate_lead_status(new_status)
        if not is_valid:
            raise ValidationError(error, 'status')

        lead = self._owned(lead_id)
        old_status = lead.status
        now = datetime.utcnow()

        values = {'status': new_status, 'updated_at': now}
        if new_status == 'contacted':
            values['last_contacted_at'] = now

        rows_updated = self._scoped_update([lead.id], values)
        self._system_note(lead.id, f"Status changed from {old_status} to {new_status}")
        self.session.flush()

        logger.info(f"Lead {lead.id} status {old_status} -> {new_status}")
        return {
            'id': lead.id,
            'oldStatus': old_status,
            'newStatus': new_status,
            'updatedAt': now.isoformat(),
            'rowsUpdated': rows_updated,
        }

    def bulk_update_status(self, lead_ids: Any, status: str) -> int:
        """
        Move many leads to one status in a single statement.

        Ids that do not belong to this business are skipped, not reported as
        errors. Returns the number of leads actually updated.
        """
        is_valid, error = validate_lead_ids(lead_ids)
        if not is_valid:
            raise ValidationError(error, 'leadIds')

        is_valid, error = validate_lead_status(status)
        if not is_valid:
            raise ValidationError(error, 'status')

        owned_ids = [row[0] for row in self.session.query(Lead.id).filter(
            Lead.id.in_(lead_ids),
            Lead.business_id == self.business_id
        ).all()]

        if not owned_ids:
            logger.info(f"Bulk status update matched no leads for business {self.business_id}")
            return 0

        now = datetime.utcnow()
        values = {'status': status, 'updated_at': now}
        if status == 'contacted':
            values['last_contacted_at'] = now

        rows_updated = self._scoped_update(owned_ids, values)

        for lead_id in owned_ids:
            self._system_note(lead_id, f"Status changed to {status} (bulk update)")
        self.session.flush()

        skipped = len(set(lead_ids)) - len(owned_ids)
        if skipped:
            logger.warning(f"Bulk status update skipped {skipped} lead(s) not owned by business {self.business_id}")
        logger.info(f"Bulk status update: {rows_updated} lead(s) -> {status}")
        return rows_updated

    # =========================================================================
    # NOTES
    # =========================================================================

    def add_note(self, lead_id: str, text: Any) -> Dict:
        """Append a user note and touch the lead."""
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Note is required", 'note')

        lead = self._owned(lead_id)

        note = LeadNote(lead_id=lead.id, user_id=self.user_id, note=text.strip())
        self.session.add(note)
        lead.updated_at = datetime.utcnow()
        self.session.flush()

        logger.info(f"Note {note.id} added to lead {lead.id}")
        return {
            'id': note.id,
            'note': note.note,
            'created_at': note.created_at.isoformat() if note.created_at else None,
            'user_id': note.user_id,
        }

    def update_internal_notes(self, lead_id: str, text: Optional[str]) -> Dict:
        """Overwrite the single internal_notes field."""
        if text is not None and not isinstance(text, str):
            raise ValidationError("internalNotes must be a string", 'internalNotes')

        lead = self._owned(lead_id)
        lead.internal_notes = text or ""
        lead.updated_at = datetime.utcnow()
        self.session.flush()

        return {'id': lead.id, 'internal_notes': lead.internal_notes}
