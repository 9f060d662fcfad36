"""
Analytics Routes Blueprint

Read-only reports over the caller's leads.
"""

from flask import Blueprint, request, jsonify
import logging

import auth
from auth import tenant_required
from app.utils import error_response, int_arg, utc_timestamp
from database import get_db_session
from services import AnalyticsService

logger = logging.getLogger(__name__)

analytics_bp = Blueprint('analytics_bp', __name__)

DEFAULT_DAYS = 30


def _days():
    days = int_arg(request.args.get('days'), DEFAULT_DAYS)
    return days if days > 0 else DEFAULT_DAYS


@analytics_bp.route('/api/analytics/sources', methods=['GET'])
@tenant_required()
def source_analytics():
    """Performance per lead source over ?days= (default 30)"""
    try:
        with get_db_session() as db:
            report = AnalyticsService(db, auth.current_business_id()).source_report(_days())
        return jsonify({**report, 'timestamp': utc_timestamp()})

    except Exception as e:
        logger.error(f"Error building source analytics: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@analytics_bp.route('/api/analytics/services', methods=['GET'])
@tenant_required()
def service_analytics():
    """Performance per service type over ?days= (default 30)"""
    try:
        with get_db_session() as db:
            report = AnalyticsService(db, auth.current_business_id()).service_report(_days())
        return jsonify({**report, 'timestamp': utc_timestamp()})

    except Exception as e:
        logger.error(f"Error building service analytics: {e}", exc_info=True)
        return error_response('Internal server error', 500)


@analytics_bp.route('/api/analytics/summary', methods=['GET'])
@tenant_required()
def summary_analytics():
    try:
        with get_db_session() as db:
            report = AnalyticsService(db, auth.current_business_id()).summary()
        return jsonify({**report, 'timestamp': utc_timestamp()})

    except Exception as e:
        logger.error(f"Error building analytics summary: {e}", exc_info=True)
        return error_response('Internal server error', 500)
