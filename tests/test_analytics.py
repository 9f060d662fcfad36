"""
Tests for lead analytics
"""
import pytest
from datetime import datetime, timedelta
from sqlalchemy import event
from database import get_db_session, get_engine, LeadNote
from services import AnalyticsService
from services.analytics_service import conversion_rate, deal_value, DEFAULT_DEAL_VALUE


@pytest.mark.unit
class TestAnalyticsHelpers:
    """Tests for the pure helpers"""

    def test_conversion_rate(self):
        assert conversion_rate(1, 3) == 33.3
        assert conversion_rate(2, 2) == 100.0
        assert conversion_rate(0, 0) == 0

    def test_deal_value_from_notes(self):
        assert deal_value('Quoted $2500 for repipe, maybe $300 extra') == 2500
        assert deal_value('no amount here') == DEFAULT_DEAL_VALUE
        assert deal_value(None) == DEFAULT_DEAL_VALUE


@pytest.mark.integration
class TestSourceReport:
    """Tests for per-source reporting"""

    def test_groups_by_source_with_direct_default(self, app, tenant_a, make_lead, days_ago):
        business_id = tenant_a['business_id']
        make_lead(business_id, source='google', status='booked', qualification_notes='$2000 job',
                  created_at=days_ago(2))
        make_lead(business_id, source='google', created_at=days_ago(3))
        make_lead(business_id, source=None, created_at=days_ago(1))
        make_lead(business_id, source='google', created_at=days_ago(60))

        with get_db_session() as session:
            report = AnalyticsService(session, business_id).source_report(30)

        assert report['period'] == '30 days'
        assert report['totalSources'] == 2
        google, direct = report['sources']
        assert google['source'] == 'google'
        assert google['total_leads'] == 2
        assert google['booked_leads'] == 1
        assert google['conversion_rate'] == 50.0
        assert google['avg_value'] == 1500
        assert direct['source'] == 'direct'

        trends = {t['source']: t['trend'] for t in report['sourceTrends']}
        assert sum(day['count'] for day in trends['google']) == 2

    def test_other_tenants_are_excluded(self, app, tenant_a, tenant_b, make_lead):
        make_lead(tenant_b['business_id'], source='yelp')

        with get_db_session() as session:
            report = AnalyticsService(session, tenant_a['business_id']).source_report()
        assert report['sources'] == []


@pytest.mark.integration
class TestServiceReport:
    """Tests for per-service reporting"""

    def test_service_metrics(self, app, tenant_a, make_lead, days_ago):
        business_id = tenant_a['business_id']
        created = days_ago(4)
        booked_id = make_lead(business_id, service_type='Painting', status='booked',
                              qualification_notes='$3000', created_at=created,
                              updated_at=created + timedelta(days=2))
        make_lead(business_id, service_type='Painting', status='contacted', created_at=created)
        make_lead(business_id, service_type='Roofing', created_at=created)

        with get_db_session() as session:
            session.add(LeadNote(lead_id=booked_id, note='Contacted by phone',
                                 created_at=created + timedelta(hours=6)))

        with get_db_session() as session:
            report = AnalyticsService(session, business_id).service_report(30)

        painting = report['services'][0]
        assert painting['service_type'] == 'Painting'
        assert painting['total_leads'] == 2
        assert painting['conversion_rate'] == 50.0
        assert painting['avg_value'] == 2000
        assert painting['revenue'] == 2000
        assert painting['avg_response_time'] == pytest.approx(6)
        assert painting['avg_deal_cycle_days'] == pytest.approx(2)
        assert {s['status'] for s in painting['status_distribution']} == {'booked', 'contacted'}

        assert report['totalServices'] == 2
        assert report['totalRevenue'] == 2000
        assert report['avgConversionRate'] == 25.0


@pytest.mark.integration
class TestSummary:
    """Tests for the all-time summary"""

    def test_empty_business(self, app, tenant_a):
        with get_db_session() as session:
            summary = AnalyticsService(session, tenant_a['business_id']).summary()

        assert summary['totalLeads'] == 0
        assert summary['conversionRate'] == 0
        assert summary['avgResponseTime'] == 24
        assert summary['avgDealSize'] == DEFAULT_DEAL_VALUE
        assert summary['period'] == 'All time'

    def test_summary_numbers(self, app, tenant_a, make_lead):
        business_id = tenant_a['business_id']
        created = datetime(2026, 1, 10, 9, 0)
        make_lead(business_id, service_type='Painting', status='booked', created_at=created,
                  last_contacted_at=created + timedelta(hours=4))
        make_lead(business_id, service_type='Cleaning', status='booked', created_at=created,
                  last_contacted_at=created + timedelta(hours=2))
        make_lead(business_id, status='lost', created_at=datetime(2026, 2, 1))

        with get_db_session() as session:
            summary = AnalyticsService(session, business_id).summary()

        assert summary['totalLeads'] == 3
        assert summary['totalBooked'] == 2
        assert summary['conversionRate'] == 67
        assert summary['avgResponseTime'] == 3
        assert summary['avgDealSize'] == 1000
        assert summary['trend'] == [{'date': '2026-01', 'count': 2}, {'date': '2026-02', 'count': 1}]
        assert sorted((s['status'], s['count']) for s in summary['statusBreakdown']) == [('booked', 2), ('lost', 1)]


@pytest.mark.integration
class TestAggregationQueries:
    """Tests that reports aggregate in the database instead of loading whole leads"""

    def test_reports_select_grouped_counts_only(self, app, tenant_a, make_lead, days_ago):
        business_id = tenant_a['business_id']
        for _ in range(3):
            make_lead(business_id, source='google', created_at=days_ago(1))

        statements = []

        def capture(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        engine = get_engine()
        event.listen(engine, 'before_cursor_execute', capture)
        try:
            with get_db_session() as session:
                service = AnalyticsService(session, business_id)
                service.source_report(30)
                service.service_report(30)
                service.summary()
        finally:
            event.remove(engine, 'before_cursor_execute', capture)

        lead_queries = [s for s in statements if 'FROM leads' in s]
        assert lead_queries
        assert all('leads.message' not in s for s in lead_queries)
        assert any('GROUP BY' in s and 'count(leads.id)' in s for s in lead_queries)

    def test_missing_source_merges_with_direct(self, app, tenant_a, make_lead, days_ago):
        business_id = tenant_a['business_id']
        make_lead(business_id, source='direct', created_at=days_ago(1))
        make_lead(business_id, source=None, created_at=days_ago(1))

        with get_db_session() as session:
            report = AnalyticsService(session, business_id).source_report(30)

        assert [(s['source'], s['total_leads']) for s in report['sources']] == [('direct', 2)]
        assert report['sourceTrends'][0]['trend'][0]['count'] == 2


@pytest.mark.integration
class TestAnalyticsRoutes:
    """Tests for /api/analytics/*"""

    @pytest.mark.parametrize('path', ['/api/analytics/sources', '/api/analytics/services',
                                      '/api/analytics/summary'])
    def test_reports_carry_timestamp(self, client, tenant_a, login, make_lead, path):
        make_lead(tenant_a['business_id'])
        login(tenant_a['owner_email'])

        response = client.get(path)
        assert response.status_code == 200
        assert response.get_json()['timestamp'].endswith('Z')

    def test_bad_days_falls_back_to_default(self, client, tenant_a, login):
        login(tenant_a['owner_email'])
        assert client.get('/api/analytics/sources?days=abc').get_json()['period'] == '30 days'
        assert client.get('/api/analytics/sources?days=-5').get_json()['period'] == '30 days'
        assert client.get('/api/analytics/services?days=7').get_json()['period'] == '7 days'

    def test_requires_session(self, client, app):
        assert client.get('/api/analytics/summary').status_code == 401
