import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class ContactConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'contact'
    verbose_name = 'Contact Submissions'

    def ready(self):
        """Create the contact store shared by the views."""
        from .permissions import get_admin_token
        from .store import ContactStore

        self.store = ContactStore()

        if not get_admin_token():
            logger.warning(
                "ADMIN_API_TOKEN is not set: /api/contacts and /api/analytics "
                "are open to anyone who can reach the server."
            )
