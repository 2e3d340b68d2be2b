"""Entry point for the AMQP ingest connector.

Usage::

    python -m amqp_ingest

All settings come from ``AMQP_*``, ``KAFKA_*``, ``RETRY_*`` and
``CONNECTOR_*`` environment variables.
"""

from __future__ import annotations

import asyncio
import sys

import structlog

from .config import ConnectorConfig
from .connector import AmqpConnector
from .errors import ConnectorError

logger = structlog.get_logger()


def main() -> None:
    config = ConnectorConfig()
    try:
        connector = AmqpConnector(config)
        asyncio.run(connector.run())
    except ConnectorError as exc:
        logger.error("connector_startup_failed", error=str(exc), error_type=type(exc).__name__)
        sys.exit(1)


if __name__ == "__main__":
    main()
