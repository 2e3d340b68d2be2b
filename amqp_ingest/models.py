"""Data models for the AMQP ingest connector."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from aio_pika.abc import AbstractIncomingMessage

Record = dict[str, Any]


class ConnectorStatus(str, Enum):
    """Runtime status of a connector instance."""

    STARTING = "starting"
    RUNNING = "running"
    DEGRADED = "degraded"
    STOPPING = "stopping"
    STOPPED = "stopped"


class DispatchOutcome(str, Enum):
    """How a delivery was settled with the broker."""

    ACKED = "acked"
    REQUEUED = "requeued"


@dataclass(frozen=True)
class Delivery:
    """One in-flight broker message.

    Built from the broker client's incoming message; the original object
    is kept so the connection manager can settle it on the channel.
    """

    delivery_tag: int | None
    routing_key: str
    body: bytes
    headers: dict[str, Any] = field(default_factory=dict)
    redelivered: bool = False
    message: Any = field(default=None, repr=False, compare=False)

    @classmethod
    def from_message(cls, message: AbstractIncomingMessage) -> Delivery:
        return cls(
            delivery_tag=message.delivery_tag,
            routing_key=message.routing_key or "",
            body=message.body,
            headers=dict(message.headers or {}),
            redelivered=bool(message.redelivered),
            message=message,
        )


@dataclass(frozen=True)
class ForwardResult:
    """Explicit outcome of handing a record to the router."""

    ok: bool
    attempts: int = 1
    error: BaseException | None = None

    @classmethod
    def success(cls, attempts: int = 1) -> ForwardResult:
        return cls(ok=True, attempts=attempts)

    @classmethod
    def failure(cls, error: BaseException, attempts: int = 1) -> ForwardResult:
        return cls(ok=False, attempts=attempts, error=error)


@dataclass
class DispatchStats:
    """Per-process delivery counters, reported by the health endpoint."""

    acked: int = 0
    requeued: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "messages_acked": self.acked,
            "messages_requeued": self.requeued,
        }


class HealthStatus(BaseModel):
    """Response model for the /health K8s probe endpoint."""

    connector_name: str = Field(description="Name of the connector")
    status: ConnectorStatus = Field(description="Current connector status")
    uptime_seconds: float = Field(description="Seconds since the connector started")
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Connector-specific health details (queue, counters, connection state)",
    )
