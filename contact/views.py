"""
Contact Views

API endpoints for contact form submission and the read-only admin views.
"""
import logging

from django.apps import apps
from django.db import transaction
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import ContactValidationError, StorageError
from .notifications import ContactNotifier, dispatch_notifications
from .permissions import HasAdminAccess
from .rate_limiting import get_client_ip, rate_limit_contact_form
from .sanitizers import MISSING_FIELDS_MESSAGE
from .serializers import (
    ContactAnalyticsSerializer,
    ContactFormSubmitSerializer,
    ContactSubmissionSerializer,
)

logger = logging.getLogger(__name__)

SUBMISSION_RECEIVED_MESSAGE = (
    "Thank you! Your message has been received. We'll contact you within 24 hours."
)


class ContactStoreMixin:
    """Gives a view the contact store, injectable via ``as_view(store=...)``."""

    store = None

    def get_store(self):
        if self.store is not None:
            return self.store
        return apps.get_app_config('contact').store


class ContactFormSubmitView(ContactStoreMixin, APIView):
    """
    Public endpoint for contact form submissions.

    POST /api/contact

    No authentication required. Rate limited per client. The stored row
    decides the response; the two emails are sent after the insert commits
    and their outcome never changes the response.
    """

    permission_classes = [AllowAny]
    notifier = None

    @rate_limit_contact_form()
    def post(self, request):
        """Submit a contact form."""
        serializer = ContactFormSubmitSerializer(data=request.data)

        try:
            if not serializer.is_valid():
                raise ContactValidationError(MISSING_FIELDS_MESSAGE)
        except ContactValidationError as exc:
            logger.info("Contact form rejected: %s", exc.message)
            return Response(
                {'success': False, 'message': exc.message},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            submission = self.get_store().insert(
                serializer.validated_data,
                ip_address=get_client_ip(request),
                user_agent=request.META.get('HTTP_USER_AGENT', ''),
            )
        except StorageError as exc:
            return Response(
                {'success': False, 'message': exc.message},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        notifier = self.notifier or ContactNotifier()
        transaction.on_commit(
            lambda: dispatch_notifications(submission, notifier),
            robust=True,
        )

        return Response({
            'success': True,
            'message': SUBMISSION_RECEIVED_MESSAGE,
            'id': submission.id,
        })


class ContactListView(ContactStoreMixin, APIView):
    """
    List all contact submissions, newest first.

    GET /api/contacts
    """

    permission_classes = [HasAdminAccess]

    def get(self, request):
        try:
            contacts = self.get_store().list_all()
        except StorageError:
            return Response(
                {'success': False, 'message': 'Database error'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        serializer = ContactSubmissionSerializer(contacts, many=True)
        return Response({'success': True, 'contacts': serializer.data})


class ContactAnalyticsView(ContactStoreMixin, APIView):
    """
    Get contact submission analytics.

    GET /api/analytics

    Total count, count per business type and count per day for the most
    recent 30 days with submissions.
    """

    permission_classes = [HasAdminAccess]

    def get(self, request):
        try:
            analytics = self.get_store().aggregate_counts()
        except StorageError:
            return Response(
                {'success': False, 'message': 'Analytics error'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        serializer = ContactAnalyticsSerializer(analytics)
        return Response({'success': True, 'analytics': serializer.data})
