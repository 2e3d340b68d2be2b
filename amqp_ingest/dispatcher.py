"""Message dispatcher: the per-delivery consumer callback."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol

import structlog
from aio_pika.exceptions import AMQPError

from .config import RetryConfig
from .errors import DeliveryError
from .models import Delivery, DispatchOutcome, DispatchStats
from .payload import PayloadResolver
from .router import Router, forward
from .tagging import TagResolver
from .timing import TimeResolver

if TYPE_CHECKING:
    from aio_pika.abc import AbstractIncomingMessage

logger = structlog.get_logger()


class Acknowledger(Protocol):
    """Settles deliveries on the channel (see :class:`ConnectionManager`)."""

    async def acknowledge(self, delivery: Delivery) -> None: ...

    async def reject(self, delivery: Delivery, *, requeue: bool = True) -> None: ...


class MessageDispatcher:
    """Parse, label, timestamp and forward each delivery, then settle it.

    Registered as the queue consumer in manual-acknowledgment mode.  For
    every delivery exactly one of the following happens:

    * the router accepted the record: the delivery tag is acknowledged
      (``multiple=False``);
    * resolution or forwarding failed: the delivery is rejected with
      ``requeue=True`` and the broker redelivers it.

    There is no redelivery limit and no dead-letter routing, so a
    message that always fails is redelivered indefinitely.

    Deliveries are handled one at a time.  :meth:`drain` waits for the
    delivery in progress and stops accepting new ones, so shutdown never
    settles a delivery against a closed channel.
    """

    def __init__(
        self,
        acknowledger: Acknowledger,
        router: Router,
        payload: PayloadResolver,
        tags: TagResolver,
        times: TimeResolver,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self._acknowledger = acknowledger
        self._router = router
        self._payload = payload
        self._tags = tags
        self._times = times
        self._retry_config = retry_config or RetryConfig()
        self._lock = asyncio.Lock()
        self._draining = False
        self.stats = DispatchStats()

    async def __call__(self, message: AbstractIncomingMessage) -> None:
        await self.dispatch(Delivery.from_message(message))

    async def dispatch(self, delivery: Delivery) -> DispatchOutcome | None:
        """Handle one delivery; returns ``None`` if the dispatcher is drained.

        A delivery refused after :meth:`drain` is left unsettled; the
        broker requeues it when the channel closes.
        """
        async with self._lock:
            if self._draining:
                logger.info("delivery_refused_draining", delivery_tag=delivery.delivery_tag)
                return None
            return await self._handle(delivery)

    async def drain(self) -> None:
        """Wait for the in-flight delivery and refuse all later ones."""
        async with self._lock:
            self._draining = True
        logger.info("dispatcher_drained", **self.stats.as_dict())

    async def _handle(self, delivery: Delivery) -> DispatchOutcome:
        log = logger.bind(delivery_tag=delivery.delivery_tag, routing_key=delivery.routing_key)
        log.debug("message_received", size_bytes=len(delivery.body), redelivered=delivery.redelivered)

        try:
            record = self._payload.resolve(delivery.body)
            tag = self._tags.resolve(delivery.routing_key, delivery.headers)
            time = self._times.resolve(delivery.headers)
        except DeliveryError as exc:
            log.warning("delivery_unresolvable", error=str(exc))
            return await self._requeue(delivery, log)
        except Exception:
            log.exception("delivery_resolution_failed")
            return await self._requeue(delivery, log)

        result = await forward(self._router, tag, time, record, self._retry_config)
        if not result.ok:
            log.warning(
                "forward_rejected",
                tag=tag,
                attempts=result.attempts,
                error=str(result.error),
            )
            return await self._requeue(delivery, log)

        try:
            await self._acknowledger.acknowledge(delivery)
        except (AMQPError, RuntimeError):
            log.exception("acknowledge_failed", tag=tag)
        else:
            self.stats.acked += 1
            log.debug("message_acknowledged", tag=tag)
        return DispatchOutcome.ACKED

    async def _requeue(self, delivery: Delivery, log: structlog.stdlib.BoundLogger) -> DispatchOutcome:
        try:
            await self._acknowledger.reject(delivery, requeue=True)
        except (AMQPError, RuntimeError):
            log.exception("reject_failed")
        else:
            self.stats.requeued += 1
            log.warning("message_requeued", redelivered=delivery.redelivered)
        return DispatchOutcome.REQUEUED
