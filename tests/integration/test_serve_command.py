"""
The serve command opens the contact store before binding the port and
closes it on shutdown.
"""
import signal
from unittest.mock import ANY, patch

import pytest
from django.core.management import call_command

from contact.exceptions import StorageError
from contact.store import ContactStore


@pytest.fixture
def store_calls():
    with patch.object(ContactStore, 'initialize') as initialize, \
            patch.object(ContactStore, 'close') as close:
        yield initialize, close


class TestServeCommand:

    def test_initializes_store_then_serves(self, store_calls, settings):
        settings.PORT = 3000
        initialize, close = store_calls

        with patch('contact.management.commands.serve.run') as run:
            call_command('serve')

        initialize.assert_called_once_with()
        run.assert_called_once_with('0.0.0.0', 3000, ANY, threading=True)
        close.assert_called_once_with()

    def test_host_and_port_options(self, store_calls):
        with patch('contact.management.commands.serve.run') as run:
            call_command('serve', host='127.0.0.1', port=8080)

        run.assert_called_once_with('127.0.0.1', 8080, ANY, threading=True)

    def test_interrupt_closes_store(self, store_calls, caplog):
        _, close = store_calls

        with patch('contact.management.commands.serve.run', side_effect=KeyboardInterrupt):
            call_command('serve')

        close.assert_called_once_with()
        assert 'Shutting down gracefully...' in caplog.text

    def test_sigterm_handler_restored(self, store_calls):
        before = signal.getsignal(signal.SIGTERM)

        with patch('contact.management.commands.serve.run'):
            call_command('serve')

        assert signal.getsignal(signal.SIGTERM) is before

    def test_store_failure_prevents_serving(self, store_calls):
        initialize, _ = store_calls
        initialize.side_effect = StorageError()

        with patch('contact.management.commands.serve.run') as run:
            with pytest.raises(StorageError):
                call_command('serve')

        run.assert_not_called()
