"""Queue declaration and exchange binding."""

from __future__ import annotations

import structlog
from aio_pika.abc import AbstractChannel, AbstractQueue
from aio_pika.exceptions import ChannelClosed

from .config import AmqpConfig
from .errors import ConfigError, TopologyError

logger = structlog.get_logger()


async def declare_queue(
    channel: AbstractChannel,
    name: str,
    *,
    passive: bool = False,
    durable: bool = False,
    exclusive: bool = False,
    auto_delete: bool = False,
) -> AbstractQueue:
    """Declare *name* with the given properties, or attach to it if *passive*.

    Raises :class:`TopologyError` if a passive declaration finds no queue
    or an existing queue was declared with different properties.
    """
    try:
        queue = await channel.declare_queue(
            name,
            passive=passive,
            durable=durable,
            exclusive=exclusive,
            auto_delete=auto_delete,
        )
    except ChannelClosed as exc:
        raise TopologyError(f"cannot declare queue {name!r}: {exc}") from exc

    logger.info(
        "queue_declared",
        queue=name,
        passive=passive,
        durable=durable,
        exclusive=exclusive,
        auto_delete=auto_delete,
    )
    return queue


async def bind_queue(queue: AbstractQueue, exchange: str, routing_key: str) -> None:
    """Bind *queue* to *exchange* under the *routing_key* pattern.

    Topic exchanges apply broker wildcards: ``#`` matches zero or more
    words, ``*`` exactly one.  Raises :class:`TopologyError` if the
    exchange does not exist.
    """
    logger.info("queue_binding", queue=queue.name, exchange=exchange, routing_key=routing_key)
    try:
        await queue.bind(exchange, routing_key=routing_key)
    except ChannelClosed as exc:
        raise TopologyError(
            f"cannot bind queue {queue.name!r} to exchange {exchange!r}: {exc}"
        ) from exc


async def setup_topology(channel: AbstractChannel, config: AmqpConfig) -> AbstractQueue:
    """Declare the configured queue and bind it when binding is enabled."""
    if not config.queue:
        raise ConfigError("'host(s)' and 'queue' must be all specified.")
    queue = await declare_queue(
        channel,
        config.queue,
        passive=config.passive,
        durable=config.durable,
        exclusive=config.exclusive,
        auto_delete=config.auto_delete,
    )
    if config.bind_exchange:
        await bind_queue(queue, config.exchange, config.routing_key)
    return queue
