"""
Contact Errors

Domain errors raised by the contact store, sanitizers and notifier.
Views turn them into JSON responses; none of them carries internal
detail in its user-facing message.
"""


class ContactError(Exception):
    """Base class for contact errors."""

    default_message = 'An error occurred. Please try again later.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ContactValidationError(ContactError):
    """Client input problem. The message is safe to show to the user."""

    default_message = 'Please fill in all required fields.'


class StorageError(ContactError):
    """The store is unavailable or rejected the write."""

    default_message = 'Database error. Please try again.'


class ImmutableSubmissionError(StorageError):
    """Raised on any attempt to change or remove a stored submission."""

    default_message = 'Contact submissions cannot be changed once stored.'


class NotificationError(ContactError):
    """The mail relay failed. Logged only, never surfaced to the caller."""

    default_message = 'Email notification failed.'
