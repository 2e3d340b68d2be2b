"""Graceful shutdown handling via SIGTERM / SIGINT."""

from __future__ import annotations

import asyncio
import signal

import structlog

logger = structlog.get_logger()

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def install_signal_handlers(
    shutdown_event: asyncio.Event,
    *,
    connector: str = "amqp",
) -> None:
    """Register SIGTERM and SIGINT handlers that set *shutdown_event*.

    Must be called from the running event loop.  The connector's run
    loop awaits the event and then stops consuming, waits for the
    in-flight delivery and closes the broker connection.
    """
    loop = asyncio.get_running_loop()

    def _handle(sig: signal.Signals) -> None:
        if shutdown_event.is_set():
            logger.debug("shutdown_already_requested", signal=sig.name, connector=connector)
            return
        logger.info("shutdown_signal_received", signal=sig.name, connector=connector)
        shutdown_event.set()

    for sig in SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, _handle, sig)
