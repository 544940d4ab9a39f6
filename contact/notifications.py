"""
Contact Email Notifications

Sends the operator notification and the requester auto-reply for a stored
submission. Both are best-effort: the stored row is the operation of record,
so a failed send is logged and never changes the caller's response.
"""
import logging
import smtplib

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

from .exceptions import NotificationError

logger = logging.getLogger(__name__)


class ContactNotifier:
    """Renders and sends the two contact emails through the configured relay."""

    def __init__(self):
        self.from_email = getattr(settings, 'CONTACT_EMAIL_FROM', settings.DEFAULT_FROM_EMAIL)
        self.operator_email = getattr(settings, 'CONTACT_EMAIL_TO', self.from_email)
        self.booking_url = getattr(settings, 'CONTACT_BOOKING_URL', '')
        self.site_name = getattr(settings, 'SITE_NAME', 'Growth Flow Automations')

    def notify_operator(self, submission):
        """
        Send the new-submission summary to the operator address.

        Args:
            submission: stored ContactSubmission
        """
        # Subjects are single-line headers.
        name = ' '.join(submission.name.split())
        self._send(
            subject=f"New Contact Form Submission - {name}",
            to=[self.operator_email],
            template='contact/emails/operator_notification',
            context={'submission': submission},
            reply_to=[submission.email],
        )

    def notify_requester(self, submission):
        """
        Send the acknowledgement with the booking link to the submitter.

        Args:
            submission: stored ContactSubmission
        """
        self._send(
            subject=f"Thank you for contacting {self.site_name}",
            to=[submission.email],
            template='contact/emails/auto_reply',
            context={'submission': submission},
        )

    def _send(self, subject, to, template, context, reply_to=None):
        context = {
            **context,
            'site_name': self.site_name,
            'booking_url': self.booking_url,
        }
        text_content = render_to_string(f'{template}.txt', context)
        html_content = render_to_string(f'{template}.html', context)

        email = EmailMultiAlternatives(
            subject=subject,
            body=text_content,
            from_email=self.from_email,
            to=to,
            reply_to=reply_to,
        )
        email.attach_alternative(html_content, "text/html")

        try:
            email.send(fail_silently=False)
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            raise NotificationError(f"Could not send '{subject}' to {', '.join(to)}: {exc}") from exc


def dispatch_notifications(submission, notifier=None):
    """
    Send both contact emails independently.

    A failure of one send does not prevent the other. Failures are logged
    and swallowed.

    Returns:
        dict: ``{'operator': bool, 'requester': bool}`` send outcomes.
    """
    notifier = notifier or ContactNotifier()
    outcomes = {}

    for key, send in (('operator', notifier.notify_operator),
                      ('requester', notifier.notify_requester)):
        try:
            send(submission)
        except NotificationError as exc:
            logger.error("Email error for contact %s (%s): %s", submission.id, key, exc.message)
            outcomes[key] = False
        else:
            logger.info("Contact %s %s email sent successfully", submission.id, key)
            outcomes[key] = True

    return outcomes
