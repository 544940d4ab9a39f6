"""
Per-client request caps: the general cap on every path and the stricter
cap on contact form submissions.
"""
import pytest
from django.test import RequestFactory
from rest_framework import status

from contact.models import ContactSubmission
from contact.rate_limiting import (
    CONTACT_LIMIT_MESSAGE,
    GENERAL_LIMIT_MESSAGE,
    check_rate_limit,
    get_client_ip,
)


class TestClientIp:

    def test_remote_addr(self, settings):
        settings.TRUST_PROXY_HEADERS = False
        request = RequestFactory().get('/', REMOTE_ADDR='198.51.100.4', HTTP_X_FORWARDED_FOR='203.0.113.1')

        assert get_client_ip(request) == '198.51.100.4'

    def test_forwarded_for_when_trusted(self, settings):
        settings.TRUST_PROXY_HEADERS = True
        request = RequestFactory().get(
            '/', REMOTE_ADDR='10.0.0.2', HTTP_X_FORWARDED_FOR='203.0.113.1, 10.0.0.1'
        )

        assert get_client_ip(request) == '203.0.113.1'

    def test_invalid_forwarded_for_falls_back(self, settings):
        settings.TRUST_PROXY_HEADERS = True
        request = RequestFactory().get('/', REMOTE_ADDR='10.0.0.2', HTTP_X_FORWARDED_FOR='not-an-ip')

        assert get_client_ip(request) == '10.0.0.2'

    def test_no_address(self):
        request = RequestFactory().get('/', REMOTE_ADDR='')

        assert get_client_ip(request) is None


class TestCheckRateLimit:

    def test_allows_up_to_cap(self):
        results = [check_rate_limit('test', '198.51.100.4', 3, 60) for _ in range(4)]

        assert [allowed for allowed, _ in results] == [True, True, True, False]
        assert 0 < results[-1][1] <= 61

    def test_clients_counted_separately(self):
        check_rate_limit('test', '198.51.100.4', 1, 60)

        assert check_rate_limit('test', '198.51.100.5', 1, 60) == (True, 0)

    def test_scopes_counted_separately(self):
        check_rate_limit('general', '198.51.100.4', 1, 60)

        assert check_rate_limit('contact', '198.51.100.4', 1, 60) == (True, 0)


@pytest.mark.django_db
class TestContactSubmissionCap:

    def test_sixth_submission_in_an_hour_rejected(self, api_client, contact_data):
        for _ in range(5):
            assert api_client.post('/api/contact', contact_data).status_code == status.HTTP_200_OK

        response = api_client.post('/api/contact', contact_data)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json() == {'success': False, 'message': CONTACT_LIMIT_MESSAGE}
        assert int(response['Retry-After']) > 0
        assert ContactSubmission.objects.count() == 5

    def test_rejected_attempts_count(self, api_client, contact_data, settings):
        settings.CONTACT_FORM_RATE_LIMIT_PER_HOUR = 2
        api_client.post('/api/contact', {'name': 'Jane'})
        api_client.post('/api/contact', {'email': 'invalid-email'})

        response = api_client.post('/api/contact', contact_data)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert ContactSubmission.objects.count() == 0

    def test_other_client_unaffected(self, api_client, contact_data, settings):
        settings.CONTACT_FORM_RATE_LIMIT_PER_HOUR = 1
        api_client.post('/api/contact', contact_data, REMOTE_ADDR='198.51.100.4')

        response = api_client.post('/api/contact', contact_data, REMOTE_ADDR='198.51.100.5')

        assert response.status_code == status.HTTP_200_OK

    def test_reads_still_allowed_after_cap(self, api_client, contact_data, settings):
        settings.CONTACT_FORM_RATE_LIMIT_PER_HOUR = 1
        api_client.post('/api/contact', contact_data)
        api_client.post('/api/contact', contact_data)

        assert api_client.get('/api/health').status_code == status.HTTP_200_OK


@pytest.mark.django_db
class TestGeneralCap:

    def test_every_path_counts(self, api_client, settings):
        settings.GENERAL_RATE_LIMIT_MAX = 3
        api_client.get('/api/health')
        api_client.get('/api/contacts')
        api_client.get('/missing-page')

        response = api_client.get('/api/health')

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json() == {'success': False, 'message': GENERAL_LIMIT_MESSAGE}
        assert 'Retry-After' in response

    def test_general_cap_checked_before_submission(self, api_client, contact_data, settings):
        settings.GENERAL_RATE_LIMIT_MAX = 1
        api_client.get('/api/health')

        response = api_client.post('/api/contact', contact_data)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json()['message'] == GENERAL_LIMIT_MESSAGE
        assert ContactSubmission.objects.count() == 0
