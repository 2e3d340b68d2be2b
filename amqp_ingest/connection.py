"""Connection manager: owns the broker connection and its single channel."""

from __future__ import annotations

import asyncio
import ssl
from collections.abc import Awaitable, Callable
from typing import Any

import aio_pika
import structlog
from aio_pika.abc import AbstractChannel, AbstractConnection
from aio_pika.exceptions import AMQPConnectionError, AMQPError

from .config import AmqpConfig
from .errors import BrokerConnectionError, ConfigError
from .models import Delivery

logger = structlog.get_logger()

ConnectionFactory = Callable[..., Awaitable[AbstractConnection]]


def build_ssl_context(config: AmqpConfig) -> ssl.SSLContext | None:
    """Create the TLS context for the broker connection, if any.

    ``tls`` loads the CA bundles and the client certificate chain and
    verifies the peer according to ``tls_verify_peer``.  The legacy
    ``ssl`` flag uses the system trust store and ``verify_ssl``.
    """
    if not config.tls_enabled:
        return None

    ctx = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    if config.tls:
        try:
            for cafile in config.tls_ca_certificates or []:
                ctx.load_verify_locations(cafile=cafile)
            ctx.load_cert_chain(certfile=config.tls_cert, keyfile=config.tls_key)
        except OSError as exc:
            raise ConfigError(f"cannot load TLS material: {exc}") from exc
        verify = config.tls_verify_peer
    else:
        verify = config.verify_ssl

    if not verify:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        logger.warning("broker_tls_verification_disabled")
    return ctx


class ConnectionManager:
    """Open, share and close the broker connection.

    The connection factory defaults to :func:`aio_pika.connect_robust`
    and is injectable so tests can substitute a double.  Endpoints are
    tried in configured order; there is no retry loop here, an
    unreachable broker at startup is fatal.

    Channel operations on deliveries (:meth:`acknowledge`,
    :meth:`reject`) are serialized because an AMQP channel is not safe
    for concurrent use.
    """

    def __init__(
        self,
        config: AmqpConfig,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        self._config = config
        self._factory: ConnectionFactory = connection_factory or aio_pika.connect_robust
        self._connection: AbstractConnection | None = None
        self._channel: AbstractChannel | None = None
        self._lock = asyncio.Lock()

    @property
    def channel(self) -> AbstractChannel:
        if self._channel is None:
            raise RuntimeError("Connection not started")
        return self._channel

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.is_closed

    def _connect_kwargs(self, ssl_context: ssl.SSLContext | None) -> dict[str, Any]:
        cfg = self._config
        kwargs: dict[str, Any] = {
            "login": cfg.user,
            "password": cfg.password.get_secret_value(),
            "virtualhost": cfg.vhost,
            "heartbeat": cfg.heartbeat,
            "ssl": ssl_context is not None,
        }
        if ssl_context is not None:
            kwargs["ssl_context"] = ssl_context
        return kwargs

    async def start(self) -> AbstractChannel:
        """Connect to the first reachable endpoint and open the channel.

        Raises :class:`BrokerConnectionError` when no endpoint accepts the
        connection (unreachable host, refused login, handshake failure).
        """
        ssl_context = build_ssl_context(self._config)
        kwargs = self._connect_kwargs(ssl_context)

        failures: dict[str, str] = {}
        for host, port in self._config.endpoints:
            try:
                connection = await self._factory(host=host, port=port, **kwargs)
            except (AMQPConnectionError, OSError) as exc:
                failures[f"{host}:{port}"] = str(exc) or type(exc).__name__
                logger.warning("broker_connect_failed", host=host, port=port, error=str(exc))
                continue
            break
        else:
            raise BrokerConnectionError(f"no broker endpoint reachable: {failures}")

        self._connection = connection
        try:
            channel = await connection.channel()
            await channel.set_qos(prefetch_count=self._config.prefetch_count)
        except (AMQPError, OSError) as exc:
            await self.stop()
            raise BrokerConnectionError(f"cannot open channel on {host}:{port}: {exc}") from exc

        self._channel = channel
        logger.info(
            "broker_connected",
            host=host,
            port=port,
            vhost=self._config.vhost,
            tls=ssl_context is not None,
            prefetch_count=self._config.prefetch_count,
        )
        return channel

    async def acknowledge(self, delivery: Delivery) -> None:
        """Positively acknowledge this delivery only (``multiple=False``)."""
        async with self._lock:
            await delivery.message.ack(multiple=False)

    async def reject(self, delivery: Delivery, *, requeue: bool = True) -> None:
        async with self._lock:
            await delivery.message.reject(requeue=requeue)

    async def stop(self) -> None:
        """Close the connection and its channel.  Safe to call repeatedly."""
        connection = self._connection
        self._connection = None
        self._channel = None
        if connection is None:
            return

        # Waits for a pending acknowledge / reject to reach the channel.
        async with self._lock:
            await connection.close()
        logger.info("broker_connection_closed")
