"""
Contact notifications are best-effort.

The stored row decides the response. Failed sends are logged and never
change it, and one failed send does not stop the other.
"""
import logging
import smtplib
from unittest.mock import MagicMock, patch

import pytest
from django.core.mail import EmailMultiAlternatives
from rest_framework import status

from contact.exceptions import NotificationError
from contact.models import ContactSubmission
from contact.notifications import ContactNotifier, dispatch_notifications


@pytest.fixture
def mail_settings(settings):
    settings.CONTACT_EMAIL_FROM = 'site@growthflow.test'
    settings.CONTACT_EMAIL_TO = 'owner@growthflow.test'
    settings.CONTACT_BOOKING_URL = 'https://calendly.com/growthflow-test'
    settings.SITE_NAME = 'Growth Flow Automations'
    return settings


@pytest.fixture
def submission(db):
    return ContactSubmission.objects.create(
        name='Jane &lt;Doe&gt;',
        email='jane@example.com',
        business='Retail',
        automation='Weekly stock reports',
        ip_address='203.0.113.9',
    )


@pytest.mark.django_db
class TestContactNotifier:

    def test_operator_notification(self, mail_settings, submission, mailoutbox):
        ContactNotifier().notify_operator(submission)

        assert len(mailoutbox) == 1
        email = mailoutbox[0]
        assert email.subject == 'New Contact Form Submission - Jane &lt;Doe&gt;'
        assert email.to == ['owner@growthflow.test']
        assert email.from_email == 'site@growthflow.test'
        assert email.reply_to == ['jane@example.com']
        assert 'Business Type: Retail' in email.body
        assert 'Revenue Range: Not specified' in email.body
        html, mimetype = email.alternatives[0]
        assert mimetype == 'text/html'
        # Stored values are already escaped and must not be escaped twice.
        assert 'Jane &lt;Doe&gt;' in html
        assert '&amp;lt;' not in html

    def test_auto_reply(self, mail_settings, submission, mailoutbox):
        ContactNotifier().notify_requester(submission)

        assert len(mailoutbox) == 1
        email = mailoutbox[0]
        assert email.subject == 'Thank you for contacting Growth Flow Automations'
        assert email.to == ['jane@example.com']
        assert 'https://calendly.com/growthflow-test' in email.body
        assert 'https://calendly.com/growthflow-test' in email.alternatives[0][0]

    def test_relay_failure_raises_notification_error(self, mail_settings, submission):
        with patch.object(EmailMultiAlternatives, 'send', side_effect=smtplib.SMTPAuthenticationError(535, b'bad')):
            with pytest.raises(NotificationError):
                ContactNotifier().notify_operator(submission)


@pytest.mark.django_db
class TestDispatchNotifications:

    def test_both_sent(self, mail_settings, submission, mailoutbox):
        outcomes = dispatch_notifications(submission)

        assert outcomes == {'operator': True, 'requester': True}
        assert [m.to for m in mailoutbox] == [['owner@growthflow.test'], ['jane@example.com']]

    def test_auto_reply_attempted_when_operator_send_fails(self, submission, caplog):
        notifier = MagicMock()
        notifier.notify_operator.side_effect = NotificationError('relay down')

        with caplog.at_level(logging.ERROR, logger='contact.notifications'):
            outcomes = dispatch_notifications(submission, notifier)

        assert outcomes == {'operator': False, 'requester': True}
        notifier.notify_requester.assert_called_once_with(submission)
        assert 'relay down' in caplog.text

    def test_both_fail(self, submission):
        notifier = MagicMock()
        notifier.notify_operator.side_effect = NotificationError()
        notifier.notify_requester.side_effect = NotificationError()

        assert dispatch_notifications(submission, notifier) == {'operator': False, 'requester': False}


@pytest.mark.django_db
class TestSubmissionWithFailingRelay:

    def test_response_unchanged_when_relay_fails(
        self, api_client, contact_data, mail_settings, django_capture_on_commit_callbacks
    ):
        failing_send = patch.object(
            EmailMultiAlternatives, 'send', side_effect=smtplib.SMTPException('connection refused')
        )
        with failing_send as send:
            with django_capture_on_commit_callbacks(execute=True):
                response = api_client.post('/api/contact', contact_data)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['success'] is True
        assert response.data['id'] == ContactSubmission.objects.get().id
        assert send.call_count == 2

    def test_response_identical_whatever_the_relay_does(
        self, api_client, contact_data, mail_settings, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            delivered = api_client.post('/api/contact', contact_data)
        with patch.object(EmailMultiAlternatives, 'send', side_effect=OSError('network unreachable')):
            with django_capture_on_commit_callbacks(execute=True):
                failed = api_client.post('/api/contact', contact_data)

        assert delivered.status_code == failed.status_code == status.HTTP_200_OK
        assert delivered.data['message'] == failed.data['message']
        assert failed.data['id'] > delivered.data['id']

    def test_no_email_for_rejected_submission(
        self, api_client, mail_settings, mailoutbox, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            response = api_client.post('/api/contact', {'name': 'Jane'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert callbacks == []
        assert mailoutbox == []
