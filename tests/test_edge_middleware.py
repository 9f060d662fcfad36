"""
Tests for the page gatekeeping middleware and public path matching
"""
import pytest
from flask import request, jsonify
from auth import is_public_path


@pytest.mark.unit
class TestPublicPaths:
    """Tests for is_public_path"""

    @pytest.mark.parametrize('path', [
        '/', '/auth/signin', '/auth/reset-password', '/form/acme', '/api/auth/login',
        '/api/public/form/acme/submit',
    ])
    def test_public(self, path):
        assert is_public_path(path) is True

    @pytest.mark.parametrize('path', ['/dashboard', '/dashboard/leads', '/onboarding', '/settings', '/formal'])
    def test_protected(self, path):
        assert is_public_path(path) is False


@pytest.mark.integration
class TestEdgeGate:
    """Tests for redirects applied before page requests"""

    def test_anonymous_dashboard_redirects_to_signin(self, client, app):
        response = client.get('/dashboard/leads')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/auth/signin?callbackUrl=/dashboard/leads')

    def test_signed_in_user_leaves_auth_pages(self, client, tenant_a, login):
        login(tenant_a['owner_email'])
        response = client.get('/auth/signin')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/dashboard')

    def test_not_onboarded_user_sent_to_onboarding(self, client, create_tenant, login):
        tenant = create_tenant('Slow Start', 'owner@slow.test', onboarded=False)
        login(tenant['owner_email'])
        response = client.get('/dashboard')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/onboarding')

    def test_onboarded_user_skips_onboarding(self, client, tenant_a, login):
        login(tenant_a['owner_email'])
        response = client.get('/onboarding')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/dashboard')

    def test_api_paths_are_never_redirected(self, client, app):
        response = client.get('/api/leads')
        assert response.status_code == 401

    def test_landing_page_is_public(self, client, app):
        response = client.get('/')
        assert response.status_code == 404  # no page registered, but not redirected

    def test_tenant_headers_propagated(self, app, tenant_a, login, client):
        @app.route('/api/echo-tenant')
        def echo_tenant():
            return jsonify({
                'business_id': request.headers.get('X-Business-Id'),
                'business_slug': request.headers.get('X-Business-Slug'),
            })

        login(tenant_a['owner_email'])
        data = client.get('/api/echo-tenant').get_json()
        assert data == {'business_id': tenant_a['business_id'], 'business_slug': tenant_a['slug']}
