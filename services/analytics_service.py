"""
Analytics Service - lead reporting for one business.

Counts, bookings and status mixes are aggregated in the database with GROUP
BY. Only the narrow columns needed for deal values ($ amounts parsed out of
qualification notes) and durations are fetched row by row, since those are
not portable SQL across SQLite and PostgreSQL.
"""

import re
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import List, Dict, Any, Optional
from sqlalchemy import case, extract, func, literal_column
from sqlalchemy.orm import Session

from database.models import Lead, LeadNote

logger = logging.getLogger(__name__)

DEFAULT_DEAL_VALUE = 1000
DEFAULT_RESPONSE_HOURS = 24
TREND_DAYS = 7

AMOUNT_PATTERN = re.compile(r'\$(\d+)')

SERVICE_PRICES = {
    'Painting': 1500,
    'Plumbing': 1200,
    'Electrical': 1300,
    'Cleaning': 500,
    'Consulting': 800,
    'Repair': 750,
}

CONTACTED_STATUSES = ('contacted', 'quoted', 'booked')


def conversion_rate(booked: int, total: int) -> float:
    """Booked share in percent, one decimal; 0 when there are no leads."""
    if total <= 0:
        return 0
    return round(booked * 100.0 / total, 1)


def deal_value(qualification_notes: Optional[str]) -> int:
    """First $<digits> amount in the notes, else the default deal value."""
    match = AMOUNT_PATTERN.search(qualification_notes or '')
    return int(match.group(1)) if match else DEFAULT_DEAL_VALUE


def average_deal_value(total: int, amounts: List[int]) -> float:
    """Mean deal value of `total` leads, where `amounts` covers the leads with notes to parse."""
    if total <= 0:
        return 0
    return (sum(amounts) + (total - len(amounts)) * DEFAULT_DEAL_VALUE) / total


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0


def _source_column():
    # Inline literal so the SELECT and GROUP BY expressions compare equal on PostgreSQL
    return func.coalesce(Lead.source, literal_column("'direct'"))


def _booked_count():
    return func.sum(case((Lead.status == 'booked', 1), else_=0))


class AnalyticsService:
    """Read-only reports over the leads of one business."""

    def __init__(self, session: Session, business_id: str, now: datetime = None):
        self.session = session
        self.business_id = business_id
        self.now = now or datetime.utcnow()

    def _window_start(self, days: int) -> datetime:
        midnight = datetime.combine(self.now.date(), datetime.min.time())
        return midnight - timedelta(days=days)

    def _query(self, *columns, since: datetime = None):
        query = self.session.query(*columns).filter(Lead.business_id == self.business_id)
        if since is not None:
            query = query.filter(Lead.created_at >= since)
        return query

    def _deal_amounts(self, key, since: datetime) -> Dict[Any, List[int]]:
        """Parsed deal values per group, for the leads whose notes mention a $ amount."""
        amounts = defaultdict(list)
        rows = self._query(key, Lead.qualification_notes, since=since).filter(
            Lead.qualification_notes.contains('$')
        ).all()
        for group, notes in rows:
            amounts[group].append(deal_value(notes))
        return amounts

    # =========================================================================
    # SOURCES
    # =========================================================================

    def _source_trends(self) -> Dict[str, List[Dict[str, Any]]]:
        source = _source_column()
        day = func.date(Lead.created_at)
        rows = self._query(source, day, func.count(Lead.id), since=self._window_start(TREND_DAYS)).group_by(
            source, day
        ).all()

        trends = defaultdict(list)
        for name, created_on, count in rows:
            # SQLite hands back a string, PostgreSQL a date
            trends[name].append({'date': str(created_on), 'count': count})
        for points in trends.values():
            points.sort(key=lambda point: point['date'])
        return trends

    def source_report(self, days: int = 30) -> Dict[str, Any]:
        """
        Per-source totals, bookings, conversion rate and average deal value for
        leads created in the trailing window, plus a 7-day trend per source.
        """
        since = self._window_start(days)
        source = _source_column()
        rows = self._query(source, func.count(Lead.id), _booked_count(), since=since).group_by(source).all()
        amounts = self._deal_amounts(source, since)

        sources = []
        for name, total, booked in rows:
            booked = int(booked or 0)
            sources.append({
                'source': name,
                'total_leads': total,
                'booked_leads': booked,
                'conversion_rate': conversion_rate(booked, total),
                'avg_value': average_deal_value(total, amounts.get(name, [])),
            })
        sources.sort(key=lambda s: s['total_leads'], reverse=True)

        trends = self._source_trends()
        return {
            'sources': sources,
            'sourceTrends': [{'source': s['source'], 'trend': trends.get(s['source'], [])} for s in sources],
            'period': f"{days} days",
            'totalSources': len(sources),
        }

    # =========================================================================
    # SERVICES
    # =========================================================================

    def _response_hours(self, since: datetime) -> Dict[str, float]:
        """Per service: mean hours from creation to the first note mentioning 'contacted'."""
        first_contact = func.min(LeadNote.created_at)
        rows = self._query(Lead.service_type, Lead.created_at, first_contact, since=since).join(
            LeadNote, LeadNote.lead_id == Lead.id
        ).filter(
            LeadNote.note.ilike('%contacted%')
        ).group_by(Lead.id, Lead.service_type, Lead.created_at).all()

        hours = defaultdict(list)
        for service_type, created_at, contacted_at in rows:
            if created_at and contacted_at:
                hours[service_type].append((contacted_at - created_at).total_seconds() / 3600)
        return {service_type: _mean(values) for service_type, values in hours.items()}

    def _deal_cycle_days(self, since: datetime) -> Dict[str, float]:
        """Per service: mean days from creation to the last update of booked leads."""
        rows = self._query(Lead.service_type, Lead.created_at, Lead.updated_at, since=since).filter(
            Lead.status == 'booked',
            Lead.updated_at > Lead.created_at
        ).all()

        cycles = defaultdict(list)
        for service_type, created_at, updated_at in rows:
            cycles[service_type].append((updated_at - created_at).total_seconds() / 86400)
        return {service_type: _mean(values) for service_type, values in cycles.items()}

    def service_report(self, days: int = 30) -> Dict[str, Any]:
        """Per-service conversion, deal value, revenue, status mix and deal cycle."""
        since = self._window_start(days)
        rows = self._query(
            Lead.service_type, func.count(Lead.id), _booked_count(), since=since
        ).group_by(Lead.service_type).all()

        status_rows = self._query(
            Lead.service_type, Lead.status, func.count(Lead.id), since=since
        ).group_by(Lead.service_type, Lead.status).all()
        status_distribution = defaultdict(list)
        for service_type, status, count in status_rows:
            status_distribution[service_type].append({'status': status, 'count': count})

        amounts = self._deal_amounts(Lead.service_type, since)
        response_hours = self._response_hours(since)
        cycle_days = self._deal_cycle_days(since)

        services = []
        for service_type, total, booked in rows:
            booked = int(booked or 0)
            avg_value = average_deal_value(total, amounts.get(service_type, []))
            services.append({
                'service_type': service_type,
                'total_leads': total,
                'booked_leads': booked,
                'conversion_rate': conversion_rate(booked, total),
                'avg_response_time': response_hours.get(service_type, 0),
                'avg_value': avg_value,
                'revenue': booked * avg_value,
                'status_distribution': status_distribution[service_type],
                'avg_deal_cycle_days': cycle_days.get(service_type, 0),
            })
        services.sort(key=lambda s: s['total_leads'], reverse=True)

        return {
            'services': services,
            'period': f"{days} days",
            'totalServices': len(services),
            'totalRevenue': sum(s['revenue'] for s in services),
            'avgConversionRate': _mean([s['conversion_rate'] for s in services]),
        }

    # =========================================================================
    # SUMMARY
    # =========================================================================

    def _monthly_trend(self) -> List[Dict[str, Any]]:
        year = extract('year', Lead.created_at)
        month = extract('month', Lead.created_at)
        rows = self._query(year, month, func.count(Lead.id)).filter(
            Lead.created_at.isnot(None)
        ).group_by(year, month).all()

        # PostgreSQL returns EXTRACT as a numeric
        trend = [{'date': f"{int(y):04d}-{int(m):02d}", 'count': count} for y, m, count in rows]
        return sorted(trend, key=lambda point: point['date'])

    def summary(self) -> Dict[str, Any]:
        """All-time dashboard numbers."""
        status_counts = self._query(Lead.status, func.count(Lead.id)).group_by(Lead.status).all()
        total = sum(count for _, count in status_counts)
        total_booked = sum(count for status, count in status_counts if status == 'booked')

        contact_rows = self._query(Lead.created_at, Lead.last_contacted_at).filter(
            Lead.status.in_(CONTACTED_STATUSES),
            Lead.last_contacted_at > Lead.created_at
        ).all()
        response_hours = [
            (contacted_at - created_at).total_seconds() / 3600 for created_at, contacted_at in contact_rows
        ]

        avg_deal_size = DEFAULT_DEAL_VALUE
        if total_booked:
            booked_by_service = self._query(Lead.service_type, func.count(Lead.id)).filter(
                Lead.status == 'booked'
            ).group_by(Lead.service_type).all()
            total_value = sum(
                SERVICE_PRICES.get(service_type, DEFAULT_DEAL_VALUE) * count
                for service_type, count in booked_by_service
            )
            avg_deal_size = round(total_value / total_booked)

        return {
            'totalLeads': total,
            'totalBooked': total_booked,
            'conversionRate': round(total_booked / total * 100) if total else 0,
            'avgResponseTime': round(_mean(response_hours)) if response_hours else DEFAULT_RESPONSE_HOURS,
            'avgDealSize': avg_deal_size,
            'statusBreakdown': [{'status': status, 'count': count} for status, count in status_counts],
            'trend': self._monthly_trend(),
            'period': 'All time',
        }
