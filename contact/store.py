"""
Contact Store

The single long-lived component that owns access to the submissions table.
Views receive it through the contact app config instead of touching the ORM
directly.
"""
import asyncio
import logging

from asgiref.sync import async_to_sync
from django.core.management import call_command
from django.db import DEFAULT_DB_ALIAS, DatabaseError, connections
from django.db.models import Count
from django.db.models.functions import TruncDate

from .exceptions import StorageError
from .models import ContactSubmission

logger = logging.getLogger(__name__)

RECENT_DAYS_LIMIT = 30
USER_AGENT_MAX_LENGTH = 500

LISTED_FIELDS = (
    'id', 'name', 'email', 'business', 'revenue', 'automation',
    'created_at', 'ip_address', 'user_agent',
)


class ContactStore:
    """
    Persistent store for contact submissions.

    Usage:
        store = ContactStore()
        store.initialize()
        record = store.insert(sanitized, ip_address='203.0.113.7')
        store.close()
    """

    def __init__(self, using=DEFAULT_DB_ALIAS):
        self.using = using

    @property
    def location(self):
        return connections[self.using].settings_dict.get('NAME')

    def initialize(self):
        """Open or create the database file and make sure the table exists."""
        try:
            call_command(
                'migrate', 'contact',
                database=self.using,
                interactive=False,
                verbosity=0,
            )
            connections[self.using].ensure_connection()
        except DatabaseError as exc:
            logger.exception("Error opening contact store at %s", self.location)
            raise StorageError() from exc
        logger.info("Connected to contact store at %s", self.location)

    def insert(self, submission, ip_address=None, user_agent=''):
        """
        Append a submission.

        Args:
            submission: sanitized record from ``sanitize_submission``
            ip_address: client IP captured from the request
            user_agent: client user agent captured from the request

        Returns:
            ContactSubmission: the stored row, carrying the assigned ``id``
            and ``created_at``.
        """
        try:
            record = ContactSubmission.objects.using(self.using).create(
                name=submission['name'],
                email=submission['email'],
                business=submission['business'],
                revenue=submission.get('revenue', ''),
                automation=submission['automation'],
                ip_address=ip_address,
                user_agent=(user_agent or '')[:USER_AGENT_MAX_LENGTH],
            )
        except DatabaseError as exc:
            logger.exception("Database error while saving contact submission")
            raise StorageError() from exc

        logger.info("New contact saved with ID: %s", record.id)
        return record

    def list_all(self):
        """All submissions, newest first."""
        try:
            return list(
                ContactSubmission.objects.using(self.using)
                .order_by('-created_at', '-id')
                .values(*LISTED_FIELDS)
            )
        except DatabaseError as exc:
            logger.exception("Database error while listing contact submissions")
            raise StorageError() from exc

    def aggregate_counts(self):
        return async_to_sync(self.aaggregate_counts)()

    async def aaggregate_counts(self):
        """
        Total count, count per business and count per day.

        The three queries are issued together and joined; if any of them
        fails the whole aggregate fails.
        """
        results = await asyncio.gather(
            self._count_total(),
            self._count_by_business(),
            self._count_by_date(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, DatabaseError):
                logger.error("Database error while aggregating contact submissions",
                             exc_info=result)
                raise StorageError() from result
            if isinstance(result, BaseException):
                raise result

        total, by_business, by_date = results
        return {
            'total_contacts': total,
            'by_business': by_business,
            'by_date': by_date,
        }

    async def _count_total(self):
        return await ContactSubmission.objects.using(self.using).acount()

    async def _count_by_business(self):
        rows = (
            ContactSubmission.objects.using(self.using)
            .values('business')
            .annotate(count=Count('id'))
            .order_by('-count', 'business')
        )
        return [row async for row in rows]

    async def _count_by_date(self):
        rows = (
            ContactSubmission.objects.using(self.using)
            .annotate(date=TruncDate('created_at'))
            .values('date')
            .annotate(count=Count('id'))
            .order_by('-date')[:RECENT_DAYS_LIMIT]
        )
        return [row async for row in rows]

    def close(self):
        """Release the database connection held by the current thread."""
        connections[self.using].close()
        logger.info("Contact store connection closed.")
