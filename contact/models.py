"""
Contact Models

Database schema for contact form submissions.
"""
from django.db import models

from .exceptions import ImmutableSubmissionError


class ContactSubmissionQuerySet(models.QuerySet):
    """Queryset that refuses bulk changes to stored submissions."""

    def update(self, **kwargs):
        raise ImmutableSubmissionError()

    def delete(self):
        raise ImmutableSubmissionError()


class ContactSubmission(models.Model):
    """
    Contact form submission from the landing page.

    Rows are written once by the submission endpoint and never changed
    or removed afterwards.
    """

    name = models.TextField(
        help_text="Name of the person contacting us (HTML-escaped)"
    )

    email = models.TextField(
        help_text="Normalized email address for follow-up"
    )

    business = models.TextField(
        help_text="Type of business (HTML-escaped)"
    )

    revenue = models.TextField(
        blank=True,
        default='',
        help_text="Revenue range, empty when not given (HTML-escaped)"
    )

    automation = models.TextField(
        help_text="What the person wants automated (HTML-escaped)"
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="When the submission was stored"
    )

    # Security and Tracking
    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="IP address of the submitter"
    )

    user_agent = models.TextField(
        blank=True,
        default='',
        help_text="Browser user agent of the submitter"
    )

    objects = ContactSubmissionQuerySet.as_manager()

    class Meta:
        db_table = 'contacts'
        ordering = ['-created_at', '-id']
        verbose_name = 'Contact Submission'
        verbose_name_plural = 'Contact Submissions'
        indexes = [
            models.Index(fields=['business'], name='contacts_business_idx'),
        ]

    def __str__(self):
        return f"#{self.pk} {self.name} <{self.email}>"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableSubmissionError()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableSubmissionError()
