"""
Tests for health check endpoints
"""
import pytest
import time
from unittest.mock import patch
from health_checks import (
    get_system_metrics,
    get_uptime,
    START_TIME
)


@pytest.mark.unit
class TestSystemMetrics:
    """Tests for system metrics collection"""

    def test_get_system_metrics_returns_dict(self):
        metrics = get_system_metrics()
        assert isinstance(metrics, dict)

    def test_system_metrics_has_memory_info(self):
        """Test that system metrics includes memory info"""
        metrics = get_system_metrics()
        if metrics:
            assert 'memory_mb' in metrics
            assert 'memory_percent' in metrics
            assert 'cpu_percent' in metrics

    @patch('health_checks.psutil.Process')
    def test_system_metrics_handles_errors(self, mock_process):
        """Test that get_system_metrics handles errors gracefully"""
        mock_process.side_effect = Exception("Test error")
        assert get_system_metrics() == {}


@pytest.mark.unit
class TestUptime:
    """Tests for uptime calculation"""

    def test_uptime_has_required_fields(self):
        uptime = get_uptime()
        assert 'uptime_seconds' in uptime
        assert 'uptime_minutes' in uptime
        assert 'uptime_hours' in uptime
        assert 'started_at' in uptime

    def test_uptime_increases_over_time(self):
        uptime1 = get_uptime()
        time.sleep(0.05)
        uptime2 = get_uptime()
        assert uptime2['uptime_seconds'] >= uptime1['uptime_seconds']

    def test_start_time_is_in_the_past(self):
        assert START_TIME <= time.time()


@pytest.mark.integration
class TestHealthCheckEndpoints:
    """Integration tests for health check endpoints on the full app"""

    def test_health_endpoint(self, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'healthy'
        assert data['service'] == 'leadnest'
        assert 'timestamp' in data

    def test_ping_endpoint_returns_pong(self, client):
        response = client.get('/api/ping')
        assert response.status_code == 200
        assert response.data == b'pong'

    def test_ready_when_database_answers(self, client):
        response = client.get('/api/ready')
        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'ready'
        assert data['checks']['database']['healthy'] is True

    def test_not_ready_when_database_fails(self, client):
        """Test that /ready answers 503 when the database check raises"""
        with patch('health_checks.check_db_connection', side_effect=RuntimeError('down')):
            response = client.get('/api/ready')
        assert response.status_code == 503
        assert response.get_json()['status'] == 'not_ready'

    def test_ready_reports_integrations(self, client):
        data = client.get('/api/ready').get_json()
        assert data['checks']['integrations'] == {'smtp': False, 'cron': True}

    def test_metrics_endpoint(self, client):
        response = client.get('/api/metrics')
        assert response.status_code == 200
        data = response.get_json()
        assert data['version']
        assert 'uptime_seconds' in data['uptime']
        assert 'integrations' in data
