"""
Notification Routes Blueprint

In-app notifications of the current user.
"""

from flask import Blueprint, request, jsonify
import logging

import auth
from auth import tenant_required
from app.utils import error_response, utc_timestamp
from database import get_db_session
from services import NotificationService

logger = logging.getLogger(__name__)

notifications_bp = Blueprint('notifications_bp', __name__)


@notifications_bp.route('/api/notifications', methods=['GET'])
@tenant_required()
def get_notifications():
    """Unread notifications (most urgent first) and the unread count"""
    try:
        user_id = auth.current_user_id()
        with get_db_session() as db:
            service = NotificationService(db, auth.current_business_id())
            notifications = service.get_unread_notifications(user_id)
            unread_count = service.get_unread_count(user_id)

        return jsonify({
            'notifications': notifications,
            'unreadCount': unread_count,
            'timestamp': utc_timestamp(),
        })

    except Exception as e:
        logger.error(f"Error fetching notifications: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@notifications_bp.route('/api/notifications', methods=['POST'])
@tenant_required()
def mark_notifications():
    """Mark one notification ({notificationId}) or all ({markAll}) as read"""
    try:
        data = request.get_json(silent=True) or {}

        if data.get('markAll'):
            with get_db_session() as db:
                NotificationService(db, auth.current_business_id()).mark_all_as_read(auth.current_user_id())
            return jsonify({'success': True, 'message': 'All notifications marked as read'})

        if data.get('notificationId'):
            with get_db_session() as db:
                NotificationService(db, auth.current_business_id()).mark_as_read(data['notificationId'])
            return jsonify({'success': True, 'message': 'Notification marked as read'})

        return error_response('No action specified', 400)

    except Exception as e:
        logger.error(f"Error updating notifications: {e}", exc_info=True)
        return error_response('Internal server error', 500)
