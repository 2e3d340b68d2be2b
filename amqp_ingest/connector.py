"""AmqpConnector — wires up the broker, resolvers and router and runs them."""

from __future__ import annotations

import asyncio
import time

import structlog
import uvicorn
from aio_pika.abc import AbstractQueue
from aio_pika.exceptions import AMQPError

from .config import ConnectorConfig
from .connection import ConnectionFactory, ConnectionManager
from .dispatcher import MessageDispatcher
from .health import create_health_app
from .kafka_router import KafkaRouter
from .logging import setup_logging
from .models import ConnectorStatus
from .parsers import ParserRegistry, default_registry
from .payload import PayloadResolver
from .router import Router
from .shutdown import install_signal_handlers
from .tagging import TagResolver
from .timing import Clock, TimeResolver, utc_now
from .topology import setup_topology

logger = structlog.get_logger()


class AmqpConnector:
    """Consume one AMQP queue and forward every message to a router.

    Call ``asyncio.run(connector.run())`` to run until SIGTERM / SIGINT.
    ``run()`` starts consuming, serves the FastAPI health endpoints (for
    K8s probes) and on shutdown cancels the consumer, waits for the
    in-flight delivery, then closes the broker connection and the router.

    :meth:`start` and :meth:`stop` can also be driven directly.

    The router defaults to a :class:`KafkaRouter`; the connection factory
    defaults to :func:`aio_pika.connect_robust`.
    """

    def __init__(
        self,
        config: ConnectorConfig,
        *,
        router: Router | None = None,
        connection_factory: ConnectionFactory | None = None,
        parsers: ParserRegistry | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.config = config
        self.status: ConnectorStatus = ConnectorStatus.STARTING
        self.start_time: float = time.monotonic()

        amqp = config.amqp
        registry = parsers or default_registry()

        self._router = router or KafkaRouter(config.kafka)
        self._connection = ConnectionManager(amqp, connection_factory)
        self._payload = PayloadResolver(registry.create(amqp.payload_format, amqp.parse_options))
        self._dispatcher = MessageDispatcher(
            self._connection,
            self._router,
            self._payload,
            TagResolver.from_config(amqp),
            TimeResolver.from_config(amqp, clock),
            config.retry,
        )
        self._queue: AbstractQueue | None = None
        self._consumer_tag: str | None = None
        self._shutdown_event = asyncio.Event()

    @property
    def dispatcher(self) -> MessageDispatcher:
        return self._dispatcher

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Validate config, connect, declare topology and start consuming.

        Startup faults (:class:`ConfigError`, :class:`BrokerConnectionError`,
        :class:`TopologyError`) propagate after everything opened so far
        has been closed again.
        """
        amqp = self.config.amqp
        amqp.check()
        logger.info("connector_starting", connector=self.config.name, queue=amqp.queue)

        await self._router.start()
        try:
            channel = await self._connection.start()
            self._queue = await setup_topology(channel, amqp)
            self._consumer_tag = await self._queue.consume(self._dispatcher, no_ack=False)
        except Exception:
            logger.error("connector_start_failed", connector=self.config.name)
            await self._connection.stop()
            await self._router.stop()
            self.status = ConnectorStatus.STOPPED
            raise

        self.status = ConnectorStatus.RUNNING
        logger.info(
            "connector_started",
            connector=self.config.name,
            queue=amqp.queue,
            consumer_tag=self._consumer_tag,
        )

    async def stop(self) -> None:
        """Stop consuming and release resources.  Safe to call repeatedly."""
        if self.status in (ConnectorStatus.STOPPING, ConnectorStatus.STOPPED):
            return
        self.status = ConnectorStatus.STOPPING
        logger.info("connector_stopping", connector=self.config.name)

        if self._queue is not None and self._consumer_tag is not None:
            try:
                await self._queue.cancel(self._consumer_tag)
            except (AMQPError, RuntimeError):
                logger.warning("consumer_cancel_failed", consumer_tag=self._consumer_tag, exc_info=True)
            self._consumer_tag = None

        await self._dispatcher.drain()
        await self._connection.stop()
        await self._router.stop()

        self.status = ConnectorStatus.STOPPED
        logger.info("connector_stopped", connector=self.config.name)

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def health_check(self) -> dict[str, object]:
        self._refresh_status()
        return {
            "queue": self.config.amqp.queue,
            "broker_connected": self._connection.is_connected,
            "consumer_tag": self._consumer_tag,
            "payload_parse_failures": self._payload.parse_failures,
            **self._dispatcher.stats.as_dict(),
        }

    def _refresh_status(self) -> None:
        """Track broker reachability while consuming.

        The robust connection reconnects on its own; until it does the
        connector reports ``DEGRADED``.
        """
        connected = self._connection.is_connected
        if self.status == ConnectorStatus.RUNNING and not connected:
            self.status = ConnectorStatus.DEGRADED
            logger.warning("broker_connection_lost", connector=self.config.name)
        elif self.status == ConnectorStatus.DEGRADED and connected:
            self.status = ConnectorStatus.RUNNING
            logger.info("broker_connection_restored", connector=self.config.name)

    async def _run_health_server(self) -> None:
        """Serve the health app until the shutdown event fires."""
        app = create_health_app(self)
        config = uvicorn.Config(
            app,
            host="0.0.0.0",
            port=self.config.health_port,
            log_level="warning",
        )
        server = uvicorn.Server(config)

        serve_task = asyncio.create_task(server.serve())
        await self._shutdown_event.wait()
        server.should_exit = True
        await serve_task

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Start the connector and run until shutdown is signalled.

        Connectors are launched with::

            asyncio.run(connector.run())
        """
        setup_logging(json=self.config.log_json, level=self.config.log_level)
        install_signal_handlers(self._shutdown_event, connector=self.config.name)
        self.start_time = time.monotonic()

        await self.start()
        try:
            await self._run_health_server()
        finally:
            await self.stop()
