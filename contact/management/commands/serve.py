"""
Serve Command

Runs the site: opens the contact store, binds the port and closes the
store again when the process is interrupted.

Usage:
    python manage.py serve                 # 0.0.0.0:$PORT (default 3000)
    python manage.py serve --port 8080
    python manage.py serve --host 127.0.0.1
"""
import logging
import signal

from django.apps import apps
from django.conf import settings
from django.core.management.base import BaseCommand
from django.core.servers.basehttp import run
from django.core.wsgi import get_wsgi_application

logger = logging.getLogger(__name__)


def _terminate(signum, frame):
    raise KeyboardInterrupt


class Command(BaseCommand):
    help = 'Open the contact store, serve the site and close the store on interrupt'

    def add_arguments(self, parser):
        parser.add_argument(
            '--host',
            default='0.0.0.0',
            help='Interface to bind (default: 0.0.0.0)'
        )
        parser.add_argument(
            '--port',
            type=int,
            default=None,
            help='Port to listen on (default: PORT setting)'
        )

    def handle(self, *args, **options):
        host = options['host']
        port = options['port'] or settings.PORT
        store = apps.get_app_config('contact').store

        store.initialize()

        previous_sigterm = signal.signal(signal.SIGTERM, _terminate)
        try:
            logger.info("%s server running on port %s", settings.SITE_NAME, port)
            logger.info("Email configured for: %s", settings.DEFAULT_FROM_EMAIL)
            logger.info("Database: SQLite (%s)", store.location)
            logger.info("Visit: http://localhost:%s", port)
            run(host, port, get_wsgi_application(), threading=True)
        except KeyboardInterrupt:
            logger.info("Shutting down gracefully...")
        finally:
            signal.signal(signal.SIGTERM, previous_sigterm)
            store.close()
