"""Tests for graceful stop handling."""

import signal

import pytest

from crawl.shutdown import ShutdownHandler


@pytest.fixture
def handler():
    h = ShutdownHandler()
    yield h
    h.uninstall()


def test_first_signal_sets_flag(handler):
    handler._handle_signal(signal.SIGTERM, None)

    assert handler.shutdown_requested
    assert handler.signals_received == 1


def test_second_signal_interrupts(handler):
    handler._handle_signal(signal.SIGINT, None)

    with pytest.raises(KeyboardInterrupt):
        handler._handle_signal(signal.SIGINT, None)


def test_install_and_restore_signal_handlers(handler):
    previous = signal.getsignal(signal.SIGTERM)

    with handler:
        assert handler.installed
        assert signal.getsignal(signal.SIGTERM) == handler._handle_signal

    assert not handler.installed
    assert signal.getsignal(signal.SIGTERM) == previous


def test_request_and_reset(handler):
    handler.request_shutdown()
    assert handler.shutdown_requested

    handler.reset()
    assert not handler.shutdown_requested
    assert handler.signals_received == 0
