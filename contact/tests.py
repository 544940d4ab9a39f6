"""
Tests for the contact form: sanitizing, storage and the API endpoints.
"""
import pytest
from datetime import date, datetime, timezone as dt_timezone
from unittest.mock import patch

from django.db import DatabaseError, OperationalError, connections
from rest_framework import status

from contact.exceptions import ContactValidationError, ImmutableSubmissionError, StorageError
from contact.models import ContactSubmission, ContactSubmissionQuerySet
from contact.sanitizers import (
    INPUT_TOO_LONG_MESSAGE,
    INVALID_EMAIL_MESSAGE,
    MISSING_FIELDS_MESSAGE,
    escape_text,
    normalize_email,
    sanitize_submission,
)
from contact.store import ContactStore


def _at(year, month, day, hour=12):
    return datetime(year, month, day, hour, tzinfo=dt_timezone.utc)


class TestSanitizeSubmission:
    """Ordered validation rules and the sanitized record."""

    def test_valid_submission(self, contact_data):
        record = sanitize_submission(contact_data)

        assert record == {
            'name': 'Jane Doe',
            'email': 'jane@example.com',
            'business': 'E-commerce',
            'revenue': '$10k - $50k',
            'automation': 'Order follow-up emails and weekly inventory reports.',
        }

    @pytest.mark.parametrize('field', ['name', 'email', 'business', 'automation'])
    def test_missing_required_field(self, contact_data, field):
        del contact_data[field]

        with pytest.raises(ContactValidationError) as exc_info:
            sanitize_submission(contact_data)

        assert exc_info.value.message == MISSING_FIELDS_MESSAGE

    def test_whitespace_only_counts_as_missing(self, contact_data):
        contact_data['business'] = '   \t\n'

        with pytest.raises(ContactValidationError) as exc_info:
            sanitize_submission(contact_data)

        assert exc_info.value.message == MISSING_FIELDS_MESSAGE

    @pytest.mark.parametrize('value', [None, True, ['Jane'], {'first': 'Jane'}])
    def test_non_text_value_counts_as_missing(self, contact_data, value):
        contact_data['name'] = value

        with pytest.raises(ContactValidationError) as exc_info:
            sanitize_submission(contact_data)

        assert exc_info.value.message == MISSING_FIELDS_MESSAGE

    @pytest.mark.parametrize('email', ['invalid-email', 'jane@', '@example.com', 'jane doe@example.com'])
    def test_invalid_email(self, contact_data, email):
        contact_data['email'] = email

        with pytest.raises(ContactValidationError) as exc_info:
            sanitize_submission(contact_data)

        assert exc_info.value.message == INVALID_EMAIL_MESSAGE

    def test_missing_fields_reported_before_invalid_email(self, contact_data):
        contact_data['email'] = 'invalid-email'
        contact_data['automation'] = ''

        with pytest.raises(ContactValidationError) as exc_info:
            sanitize_submission(contact_data)

        assert exc_info.value.message == MISSING_FIELDS_MESSAGE

    def test_invalid_email_reported_before_length(self, contact_data):
        contact_data['email'] = 'invalid-email'
        contact_data['name'] = 'x' * 101

        with pytest.raises(ContactValidationError) as exc_info:
            sanitize_submission(contact_data)

        assert exc_info.value.message == INVALID_EMAIL_MESSAGE

    def test_length_limits_are_inclusive(self, contact_data):
        contact_data['name'] = 'n' * 100
        contact_data['automation'] = 'a' * 1000

        record = sanitize_submission(contact_data)

        assert len(record['name']) == 100
        assert len(record['automation']) == 1000

    @pytest.mark.parametrize('field,length', [('name', 101), ('automation', 1001)])
    def test_input_too_long(self, contact_data, field, length):
        contact_data[field] = 'x' * length

        with pytest.raises(ContactValidationError) as exc_info:
            sanitize_submission(contact_data)

        assert exc_info.value.message == INPUT_TOO_LONG_MESSAGE

    def test_length_measured_after_trimming(self, contact_data):
        contact_data['name'] = '   ' + 'n' * 100 + '   '

        assert sanitize_submission(contact_data)['name'] == 'n' * 100

    @pytest.mark.parametrize('field,value', [
        ('name', '&amp;' * 25),
        ('automation', '&#65;' * 1000),
        ('automation', '&#' + '0' * 5000 + '65;'),
    ])
    def test_character_references_count_as_typed(self, contact_data, field, value):
        contact_data[field] = value

        with pytest.raises(ContactValidationError) as exc_info:
            sanitize_submission(contact_data)

        assert exc_info.value.message == INPUT_TOO_LONG_MESSAGE

    def test_character_references_are_not_decoded(self, contact_data):
        contact_data['automation'] = 'Map &#65; to &lt;b&gt; & keep &#' + '0' * 20 + '65;'

        record = sanitize_submission(contact_data)

        assert record['automation'] == 'Map &#65; to &lt;b&gt; &amp; keep &amp;#' + '0' * 20 + '65;'

    @pytest.mark.parametrize('email', [
        '"<img/src=x/onerror=alert(1)>"@example.com',
        '"jane>doe"@example.com',
        '"quoted"@example.com',
    ])
    def test_email_with_markup_characters_rejected(self, contact_data, email):
        contact_data['email'] = email

        with pytest.raises(ContactValidationError) as exc_info:
            sanitize_submission(contact_data)

        assert exc_info.value.message == INVALID_EMAIL_MESSAGE

    def test_markup_is_escaped(self, contact_data):
        contact_data['name'] = '<script>alert("x")</script>'
        contact_data['business'] = 'Tom & Jerry\'s'

        record = sanitize_submission(contact_data)

        assert record['name'] == '&lt;script&gt;alert(&quot;x&quot;)&lt;/script&gt;'
        assert record['business'] == 'Tom &amp; Jerry&#x27;s'

    def test_escaping_is_idempotent(self):
        once = escape_text('<b>Fish & Chips</b>')

        assert escape_text(once) == once

    def test_sanitizing_sanitized_record_is_a_no_op(self, contact_data):
        contact_data['automation'] = 'Sync <orders> & "invoices"'
        record = sanitize_submission(contact_data)

        assert sanitize_submission(record) == record

    def test_revenue_optional(self, contact_data):
        del contact_data['revenue']

        assert sanitize_submission(contact_data)['revenue'] == ''

    def test_numbers_are_accepted_as_text(self, contact_data):
        contact_data['revenue'] = 50000

        assert sanitize_submission(contact_data)['revenue'] == '50000'


class TestNormalizeEmail:

    @pytest.mark.parametrize('raw,expected', [
        ('Jane@Example.COM', 'jane@example.com'),
        ('j.a.n.e+leads@gmail.com', 'jane@gmail.com'),
        ('Jane.Doe@googlemail.com', 'janedoe@gmail.com'),
        ('jane+news@outlook.com', 'jane@outlook.com'),
        ('jane+news@icloud.com', 'jane@icloud.com'),
        ('jane-promo@yahoo.com', 'jane@yahoo.com'),
        ('jane.doe+tag@example.com', 'jane.doe+tag@example.com'),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_email(raw) == expected


@pytest.mark.django_db
class TestContactSubmissionModel:
    """Stored submissions are append-only."""

    def test_defaults(self):
        submission = ContactSubmission.objects.create(
            name='Jane', email='jane@example.com', business='Retail', automation='Invoices'
        )

        assert submission.revenue == ''
        assert submission.user_agent == ''
        assert submission.ip_address is None
        assert submission.created_at is not None

    def test_saved_row_cannot_be_changed(self):
        submission = ContactSubmission.objects.create(
            name='Jane', email='jane@example.com', business='Retail', automation='Invoices'
        )
        submission.name = 'Someone else'

        with pytest.raises(ImmutableSubmissionError):
            submission.save()

    def test_rows_cannot_be_deleted(self):
        submission = ContactSubmission.objects.create(
            name='Jane', email='jane@example.com', business='Retail', automation='Invoices'
        )

        with pytest.raises(ImmutableSubmissionError):
            submission.delete()
        with pytest.raises(ImmutableSubmissionError):
            ContactSubmission.objects.all().delete()
        with pytest.raises(ImmutableSubmissionError):
            ContactSubmission.objects.update(name='Changed')

        assert ContactSubmission.objects.get(pk=submission.pk).name == 'Jane'


@pytest.mark.django_db
class TestContactStore:
    """Insert, list and aggregate through the store."""

    @pytest.fixture
    def store(self):
        return ContactStore()

    def test_insert_assigns_increasing_ids(self, store, contact_data):
        record = sanitize_submission(contact_data)

        first = store.insert(record, ip_address='203.0.113.7', user_agent='pytest')
        second = store.insert(record)

        assert second.id > first.id
        assert first.ip_address == '203.0.113.7'
        assert first.user_agent == 'pytest'
        assert ContactSubmission.objects.count() == 2

    def test_insert_truncates_user_agent(self, store, contact_data):
        record = store.insert(sanitize_submission(contact_data), user_agent='a' * 800)

        assert len(record.user_agent) == 500

    def test_insert_database_error_becomes_storage_error(self, store, contact_data):
        with patch.object(ContactSubmissionQuerySet, 'create', side_effect=OperationalError('disk full')):
            with pytest.raises(StorageError) as exc_info:
                store.insert(sanitize_submission(contact_data))

        assert exc_info.value.message == 'Database error. Please try again.'

    def test_list_all_newest_first(self, store, contact_data):
        record = sanitize_submission(contact_data)
        with patch('django.utils.timezone.now', return_value=_at(2024, 3, 1)):
            older = store.insert(record)
        with patch('django.utils.timezone.now', return_value=_at(2024, 3, 2)):
            newer = store.insert(record)

        rows = store.list_all()

        assert [row['id'] for row in rows] == [newer.id, older.id]
        assert set(rows[0]) == {
            'id', 'name', 'email', 'business', 'revenue', 'automation',
            'created_at', 'ip_address', 'user_agent',
        }

    def test_list_all_empty(self, store):
        assert store.list_all() == []

    def test_aggregate_counts(self, store, contact_data):
        for business, day in [('Retail', 1), ('Retail', 1), ('Agency', 2), ('SaaS', 3)]:
            contact_data['business'] = business
            with patch('django.utils.timezone.now', return_value=_at(2024, 5, day)):
                store.insert(sanitize_submission(contact_data))

        analytics = store.aggregate_counts()

        assert analytics['total_contacts'] == 4
        assert analytics['by_business'] == [
            {'business': 'Retail', 'count': 2},
            {'business': 'Agency', 'count': 1},
            {'business': 'SaaS', 'count': 1},
        ]
        assert analytics['by_date'] == [
            {'date': date(2024, 5, 3), 'count': 1},
            {'date': date(2024, 5, 2), 'count': 1},
            {'date': date(2024, 5, 1), 'count': 2},
        ]

    def test_aggregate_counts_empty(self, store):
        assert store.aggregate_counts() == {
            'total_contacts': 0,
            'by_business': [],
            'by_date': [],
        }

    def test_by_date_keeps_most_recent_thirty_days(self, store, contact_data):
        record = sanitize_submission(contact_data)
        for day in range(1, 32):
            with patch('django.utils.timezone.now', return_value=_at(2024, 1, day)):
                store.insert(record)

        by_date = store.aggregate_counts()['by_date']

        assert len(by_date) == 30
        assert by_date[0]['date'] == date(2024, 1, 31)
        assert by_date[-1]['date'] == date(2024, 1, 2)

    def test_aggregate_fails_when_any_query_fails(self, store, contact_data):
        store.insert(sanitize_submission(contact_data))

        with patch.object(ContactStore, '_count_by_business', side_effect=DatabaseError('locked')):
            with pytest.raises(StorageError):
                store.aggregate_counts()


@pytest.mark.django_db(transaction=True)
class TestContactStoreLifecycle:

    def test_initialize_creates_table(self):
        store = ContactStore()

        store.initialize()

        assert 'contacts' in connections[store.using].introspection.table_names()

    def test_initialize_failure_becomes_storage_error(self):
        store = ContactStore()

        with patch('contact.store.call_command', side_effect=OperationalError('unable to open database file')):
            with pytest.raises(StorageError):
                store.initialize()


@pytest.mark.django_db
class TestContactFormSubmission:
    """Public contact form endpoint."""

    def test_submit_valid_contact_form(self, api_client, contact_data):
        response = api_client.post('/api/contact', contact_data)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['success'] is True
        assert response.data['message'] == (
            "Thank you! Your message has been received. We'll contact you within 24 hours."
        )
        submission = ContactSubmission.objects.get()
        assert response.data['id'] == submission.id
        assert submission.business == 'E-commerce'

    def test_submission_records_client_details(self, api_client, contact_data):
        api_client.post('/api/contact', contact_data, HTTP_USER_AGENT='Mozilla/5.0', REMOTE_ADDR='198.51.100.4')

        submission = ContactSubmission.objects.get()
        assert submission.ip_address == '198.51.100.4'
        assert submission.user_agent == 'Mozilla/5.0'

    def test_stored_values_are_sanitized(self, api_client, contact_data):
        contact_data['name'] = '  <img src=x onerror=alert(1)>  '
        contact_data['email'] = 'Jane.Doe+site@Gmail.com'

        api_client.post('/api/contact', contact_data)

        submission = ContactSubmission.objects.get()
        assert submission.name == '&lt;img src=x onerror=alert(1)&gt;'
        assert submission.email == 'janedoe@gmail.com'

    def test_form_encoded_body(self, api_client, contact_data):
        response = api_client.generic(
            'POST', '/api/contact',
            'name=Jane&email=jane%40example.com&business=Retail&automation=Invoices',
            content_type='application/x-www-form-urlencoded',
        )

        assert response.status_code == status.HTTP_200_OK
        assert ContactSubmission.objects.get().business == 'Retail'

    def test_submit_missing_required_fields(self, api_client):
        response = api_client.post('/api/contact', {'name': 'Test User'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data == {'success': False, 'message': MISSING_FIELDS_MESSAGE}
        assert ContactSubmission.objects.count() == 0

    def test_submit_invalid_email(self, api_client, contact_data):
        contact_data['email'] = 'invalid-email'

        response = api_client.post('/api/contact', contact_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == INVALID_EMAIL_MESSAGE

    def test_submit_too_long(self, api_client, contact_data):
        contact_data['automation'] = 'x' * 1001

        response = api_client.post('/api/contact', contact_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == INPUT_TOO_LONG_MESSAGE

    def test_non_object_body(self, api_client):
        response = api_client.post('/api/contact', ['not', 'an', 'object'])

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == MISSING_FIELDS_MESSAGE

    def test_malformed_json(self, api_client):
        response = api_client.generic('POST', '/api/contact', '{"name": ', content_type='application/json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['success'] is False

    def test_storage_failure(self, api_client, contact_data, mailoutbox, django_capture_on_commit_callbacks):
        with patch.object(ContactStore, 'insert', side_effect=StorageError()):
            with django_capture_on_commit_callbacks(execute=True):
                response = api_client.post('/api/contact', contact_data)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data == {'success': False, 'message': 'Database error. Please try again.'}
        assert len(mailoutbox) == 0

    def test_emails_sent_after_commit(self, api_client, contact_data, mailoutbox, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            response = api_client.post('/api/contact', contact_data)

        assert response.status_code == status.HTTP_200_OK
        assert len(callbacks) == 1
        assert len(mailoutbox) == 2

    def test_get_not_allowed(self, api_client):
        response = api_client.get('/api/contact')

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
        assert response.data['success'] is False


@pytest.mark.django_db
class TestContactAdminEndpoints:
    """Listing and analytics endpoints."""

    @pytest.fixture
    def submissions(self, contact_data):
        store = ContactStore()
        records = []
        for business, day in [('Retail', 1), ('Agency', 2), ('Retail', 2)]:
            contact_data['business'] = business
            with patch('django.utils.timezone.now', return_value=_at(2024, 6, day)):
                records.append(store.insert(sanitize_submission(contact_data)))
        return records

    def test_list_contacts(self, api_client, submissions):
        response = api_client.get('/api/contacts')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['success'] is True
        contacts = response.data['contacts']
        assert [c['id'] for c in contacts] == [s.id for s in reversed(submissions)]
        assert contacts[0]['created_at'] == '2024-06-02T12:00:00Z'
        assert contacts[0]['business'] == 'Retail'

    def test_markup_email_never_reaches_listing(self, api_client, contact_data):
        contact_data['email'] = '"<img/src=x/onerror=alert(1)>"@example.com'

        response = api_client.post('/api/contact', contact_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == INVALID_EMAIL_MESSAGE
        assert api_client.get('/api/contacts').data['contacts'] == []

    def test_listed_text_fields_carry_no_raw_markup(self, api_client, contact_data):
        contact_data['name'] = '<img src=x onerror=alert(1)>'
        contact_data['automation'] = '<script>alert(1)</script> &#60;script&#62;'
        api_client.post('/api/contact', contact_data)

        contact = api_client.get('/api/contacts').data['contacts'][0]

        for field in ('name', 'email', 'business', 'revenue', 'automation'):
            assert '<' not in contact[field] and '>' not in contact[field]

    def test_long_character_reference_rejected_not_crashing(self, api_client, contact_data):
        contact_data['automation'] = '&#' + '0' * 5000 + '65;'

        response = api_client.post('/api/contact', contact_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == INPUT_TOO_LONG_MESSAGE

    def test_list_contacts_empty(self, api_client):
        response = api_client.get('/api/contacts')

        assert response.data == {'success': True, 'contacts': []}

    def test_list_storage_failure(self, api_client):
        with patch.object(ContactStore, 'list_all', side_effect=StorageError()):
            response = api_client.get('/api/contacts')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data == {'success': False, 'message': 'Database error'}

    def test_analytics(self, api_client, submissions):
        response = api_client.get('/api/analytics')

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            'success': True,
            'analytics': {
                'totalContacts': 3,
                'byBusinessType': [
                    {'business': 'Retail', 'count': 2},
                    {'business': 'Agency', 'count': 1},
                ],
                'byDate': [
                    {'date': '2024-06-02', 'count': 2},
                    {'date': '2024-06-01', 'count': 1},
                ],
            },
        }

    def test_analytics_storage_failure(self, api_client, submissions):
        with patch.object(ContactStore, '_count_by_date', side_effect=DatabaseError('disk I/O error')):
            response = api_client.get('/api/analytics')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data == {'success': False, 'message': 'Analytics error'}

    @pytest.mark.parametrize('url', ['/api/contacts', '/api/analytics'])
    def test_token_required_when_configured(self, api_client, settings, url):
        settings.ADMIN_API_TOKEN = 's3cret'

        response = api_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data == {'success': False, 'message': 'Admin access token required.'}

    def test_wrong_token_rejected(self, api_client, settings):
        settings.ADMIN_API_TOKEN = 's3cret'

        response = api_client.get('/api/contacts', HTTP_X_ADMIN_TOKEN='guess')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_token_header(self, api_client, settings):
        settings.ADMIN_API_TOKEN = 's3cret'

        response = api_client.get('/api/contacts', HTTP_X_ADMIN_TOKEN='s3cret')

        assert response.status_code == status.HTTP_200_OK

    def test_bearer_token(self, api_client, settings):
        settings.ADMIN_API_TOKEN = 's3cret'
        api_client.credentials(HTTP_AUTHORIZATION='Bearer s3cret')

        response = api_client.get('/api/analytics')

        assert response.status_code == status.HTTP_200_OK


@pytest.mark.django_db
class TestWorkedExamples:
    """End-to-end examples of the contact endpoint."""

    def test_minimal_valid_submission(self, api_client):
        response = api_client.post('/api/contact', {
            'name': 'Ada',
            'email': 'ada@example.com',
            'business': 'Retail',
            'automation': 'Need invoice automation',
        })

        assert response.status_code == status.HTTP_200_OK
        assert response.data['success'] is True
        submission = ContactSubmission.objects.get()
        assert submission.name == 'Ada'
        assert submission.revenue == ''

    def test_empty_name(self, api_client):
        response = api_client.post('/api/contact', {
            'name': '',
            'email': 'x@example.com',
            'business': 'Retail',
            'automation': 'Need invoice automation',
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data == {'success': False, 'message': 'Please fill in all required fields.'}
        assert ContactSubmission.objects.count() == 0

    def test_not_an_email(self, api_client):
        response = api_client.post('/api/contact', {
            'name': 'Ada',
            'email': 'not-an-email',
            'business': 'Retail',
            'automation': 'Need invoice automation',
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data == {'success': False, 'message': 'Please enter a valid email address.'}
        assert ContactSubmission.objects.count() == 0
