"""Router interface — the downstream pipeline that receives records."""

from __future__ import annotations

import abc
from datetime import datetime

import structlog

from .config import RetryConfig
from .models import ForwardResult, Record
from .retry import with_retry

logger = structlog.get_logger()


class Router(abc.ABC):
    """Accept ``(tag, time, record)`` triples.

    :meth:`emit` raises on failure; the dispatcher never sees those
    exceptions directly, it gets a :class:`ForwardResult` from
    :func:`forward`.  Implementations must tolerate duplicates: a
    requeued delivery is emitted again when the broker redelivers it.
    """

    async def start(self) -> None:
        """Open downstream resources.  Called once before consuming starts."""

    async def stop(self) -> None:
        """Release downstream resources.  Called once after consuming stops."""

    @abc.abstractmethod
    async def emit(self, tag: str, time: datetime, record: Record) -> None:
        """Hand one record to the downstream pipeline."""


async def forward(
    router: Router,
    tag: str,
    time: datetime,
    record: Record,
    retry_config: RetryConfig,
) -> ForwardResult:
    """Emit one record and report the outcome explicitly.

    With ``retry_config.max_attempts == 1`` (the default) the router is
    called exactly once.
    """
    attempts = 0

    @with_retry(retry_config)
    async def _emit() -> None:
        nonlocal attempts
        attempts += 1
        await router.emit(tag, time, record)

    try:
        await _emit()
    except Exception as exc:
        logger.warning("forward_failed", tag=tag, attempts=attempts, error=str(exc))
        return ForwardResult.failure(exc, attempts=attempts)
    return ForwardResult.success(attempts=attempts)
