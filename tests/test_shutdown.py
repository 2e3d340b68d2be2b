"""Tests for amqp_ingest.shutdown."""

from __future__ import annotations

import asyncio
import os
import signal

import pytest

from amqp_ingest.shutdown import SHUTDOWN_SIGNALS, install_signal_handlers


class TestInstallSignalHandlers:
    @pytest.mark.asyncio
    async def test_sigterm_sets_event(self):
        event = asyncio.Event()
        install_signal_handlers(event)

        assert not event.is_set()
        os.kill(os.getpid(), signal.SIGTERM)
        # The loop needs an I/O poll cycle to read the signal self-pipe.
        await asyncio.sleep(0.05)
        assert event.is_set()

    @pytest.mark.asyncio
    async def test_repeated_signal_is_ignored(self):
        event = asyncio.Event()
        install_signal_handlers(event, connector="amqp-test")

        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.sleep(0.05)
        assert event.is_set()
        os.kill(os.getpid(), signal.SIGINT)
        await asyncio.sleep(0.05)
        assert event.is_set()

    @pytest.mark.asyncio
    async def test_handlers_registered_for_both_signals(self):
        event = asyncio.Event()
        install_signal_handlers(event)
        loop = asyncio.get_running_loop()

        for sig in SHUTDOWN_SIGNALS:
            assert loop.remove_signal_handler(sig) is True
