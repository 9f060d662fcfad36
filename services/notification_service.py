"""
Notification Service - Manages in-app notifications for a business.

This service handles:
- Creating notifications for a team member
- Listing a member's unread, due notifications by priority
- Marking one or all notifications as read
- Fanning lead events (new, stale, overdue, converted) out to the whole team
"""

import logging
from datetime import datetime
from typing import Dict, List, Any, Optional
from sqlalchemy import case, or_

from database.models import Notification, UserBusinessRelation

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {'urgent': 1, 'high': 2, 'medium': 3, 'low': 4}

LEAD_NOTIFICATION_TYPES = ('new', 'stale', 'overdue', 'converted')


def _lead_notification(kind: str, lead: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Notification fields for a lead event, or None for an unknown kind."""
    name = lead.get('name')

    if kind == 'new':
        return {
            'title': 'New Lead',
            'message': f"New lead from {name} for {lead.get('service_type')}",
            'notification_type': 'lead',
            'priority': 'high',
            'metadata': {'leadPriority': lead.get('priority')},
        }
    if kind == 'stale':
        return {
            'title': 'Stale Lead',
            'message': f"{name} has been {lead.get('status')} for 3+ days",
            'notification_type': 'followup',
            'priority': 'medium',
            'metadata': {'daysStale': 3},
        }
    if kind == 'overdue':
        return {
            'title': 'Overdue Follow-up',
            'message': f"Urgent: {name} requires immediate follow-up",
            'notification_type': 'followup',
            'priority': 'urgent',
            'metadata': {'daysOverdue': 7},
        }
    if kind == 'converted':
        return {
            'title': 'Lead Converted',
            'message': f"{name} has been booked!",
            'notification_type': 'lead',
            'priority': 'low',
            'metadata': {'status': 'booked'},
        }
    return None


class NotificationService:
    """Service for managing notifications of one business."""

    def __init__(self, session, business_id: str):
        self.session = session
        self.business_id = business_id

    def create_notification(self, title: str, message: str,
                            notification_type: str = 'system',
                            priority: str = 'medium',
                            user_id: str = None,
                            entity_type: str = None,
                            entity_id: str = None,
                            action_url: str = None,
                            scheduled_for: datetime = None,
                            metadata: Dict = None) -> Dict:
        """
        Create a new notification.

        Args:
            title: Notification title
            message: Notification message
            notification_type: lead, followup, calendar or system
            priority: low, medium, high or urgent
            user_id: Team member to notify
            entity_type: Related entity type
            entity_id: Related entity ID
            action_url: Dashboard link for the notification
            scheduled_for: Hide the notification until this time
            metadata: Additional data

        Returns:
            Created notification dict
        """
        notification = Notification(
            business_id=self.business_id,
            user_id=user_id,
            title=title,
            message=message,
            notification_type=notification_type,
            priority=priority,
            entity_type=entity_type,
            entity_id=entity_id,
            action_url=action_url,
            scheduled_for=scheduled_for,
            status='unread',
            extra_data=metadata or {}
        )
        self.session.add(notification)
        self.session.flush()

        logger.info(f"Created notification: {title}")
        return notification.to_dict()

    def get_unread_notifications(self, user_id: str = None, limit: int = 50) -> List[Dict]:
        """Unread, due notifications: most urgent first, then newest."""
        priority_rank = case(PRIORITY_ORDER, value=Notification.priority, else_=5)

        query = self._unread_query(user_id).filter(
            or_(Notification.scheduled_for.is_(None),
                Notification.scheduled_for <= datetime.utcnow())
        )

        notifications = query.order_by(
            priority_rank,
            Notification.created_at.desc()
        ).limit(limit).all()

        return [n.to_dict() for n in notifications]

    def get_unread_count(self, user_id: str = None) -> int:
        """Get count of unread notifications."""
        return self._unread_query(user_id).count()

    def _unread_query(self, user_id: str = None):
        query = self.session.query(Notification).filter(
            Notification.business_id == self.business_id,
            Notification.status == 'unread'
        )
        if user_id:
            query = query.filter(Notification.user_id == user_id)
        return query

    def mark_as_read(self, notification_id: str) -> bool:
        """Mark a notification of this business as read."""
        notification = self.session.query(Notification).filter(
            Notification.id == notification_id,
            Notification.business_id == self.business_id
        ).first()

        if not notification:
            return False

        notification.status = 'read'
        notification.updated_at = datetime.utcnow()
        self.session.flush()
        return True

    def mark_all_as_read(self, user_id: str = None) -> int:
        """Mark all unread notifications as read; returns how many changed."""
        count = 0
        for notification in self._unread_query(user_id).all():
            notification.status = 'read'
            notification.updated_at = datetime.utcnow()
            count += 1

        self.session.flush()
        return count

    def get_team_member_ids(self) -> List[str]:
        rows = self.session.query(UserBusinessRelation.user_id).filter(
            UserBusinessRelation.business_id == self.business_id
        ).all()
        return [row[0] for row in rows]

    def create_lead_notification(self, lead: Dict[str, Any], kind: str) -> int:
        """
        Notify every team member about a lead event.

        Args:
            lead: Lead dict (id, name, status, priority, service_type)
            kind: new, stale, overdue or converted

        Returns:
            Number of notifications created
        """
        fields = _lead_notification(kind, lead)
        if not fields:
            logger.warning(f"Unknown lead notification type: {kind}")
            return 0

        created = 0
        for user_id in self.get_team_member_ids():
            self.create_notification(
                title=fields['title'],
                message=fields['message'],
                notification_type=fields['notification_type'],
                priority=fields['priority'],
                user_id=user_id,
                entity_type='lead',
                entity_id=lead['id'],
                action_url=f"/dashboard/leads/{lead['id']}",
                metadata=fields['metadata']
            )
            created += 1
        return created
