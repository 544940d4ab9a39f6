"""
Site routes outside the contact API: pages, public assets, health check,
the JSON 404 and the JSON 500.
"""
from datetime import datetime
from unittest.mock import patch

import pytest
from rest_framework import status

from contact.store import ContactStore


def _content(response):
    content = b''.join(response.streaming_content)
    response.close()
    return content


class TestHealthCheck:

    def test_health(self, api_client):
        response = api_client.get('/api/health')

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body['status'] == 'OK'
        assert body['timestamp'].endswith('Z')
        datetime.fromisoformat(body['timestamp'].replace('Z', '+00:00'))
        assert body['uptime'] >= 0

    def test_uptime_increases(self, api_client):
        first = api_client.get('/api/health').json()['uptime']
        second = api_client.get('/api/health').json()['uptime']

        assert second >= first


@pytest.mark.django_db
class TestPages:

    def test_landing_page(self, client):
        response = client.get('/')

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'].startswith('text/html')
        assert b'id="contact-form"' in _content(response)

    def test_admin_page(self, client):
        response = client.get('/admin')

        assert response.status_code == status.HTTP_200_OK
        assert b'/js/admin.js' in _content(response)

    def test_security_headers(self, client):
        response = client.get('/')
        response.close()

        assert "default-src 'self'" in response['Content-Security-Policy']
        assert response['X-Content-Type-Options'] == 'nosniff'
        assert response['X-Frame-Options'] == 'SAMEORIGIN'

    def test_post_to_page_is_not_found(self, client):
        response = client.post('/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {'success': False, 'message': 'Endpoint not found'}


@pytest.mark.django_db
class TestPublicAssets:

    def test_stylesheet(self, client):
        response = client.get('/css/site.css')

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'].startswith('text/css')
        assert b'.card' in _content(response)

    def test_script(self, client):
        response = client.get('/js/contact-form.js')

        assert response.status_code == status.HTTP_200_OK
        assert b'/api/contact' in _content(response)

    @pytest.mark.parametrize('path', ['/missing-page', '/api/unknown', '/css/', '/../core/settings.py'])
    def test_unknown_path(self, client, path):
        response = client.get(path)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {'success': False, 'message': 'Endpoint not found'}

    def test_unknown_path_any_method(self, client):
        response = client.delete('/api/unknown')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['message'] == 'Endpoint not found'


@pytest.mark.django_db
class TestUnhandledErrors:

    def test_unexpected_error_becomes_json_500(self, api_client, caplog):
        with patch.object(ContactStore, 'list_all', side_effect=RuntimeError('boom')):
            response = api_client.get('/api/contacts')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {'success': False, 'message': 'Internal server error'}
        assert 'boom' not in response.content.decode()
        assert 'Unhandled error on GET /api/contacts' in caplog.text

    def test_server_keeps_serving_after_error(self, api_client):
        with patch.object(ContactStore, 'list_all', side_effect=RuntimeError('boom')):
            api_client.get('/api/contacts')

        assert api_client.get('/api/contacts').status_code == status.HTTP_200_OK

    def test_unexpected_analytics_error(self, api_client):
        with patch.object(ContactStore, '_count_total', side_effect=RuntimeError('boom')):
            response = api_client.get('/api/analytics')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()['message'] == 'Internal server error'
