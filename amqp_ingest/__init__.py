"""AMQP ingest connector.

Consumes one RabbitMQ queue, turns every message into a tagged,
timestamped record and forwards it to a router, acknowledging the
message on success and requeuing it on failure.

Public API re-exported here for convenience::

    from amqp_ingest import AmqpConnector, ConnectorConfig, Router
"""

from .config import AmqpConfig, ConnectorConfig, KafkaConfig, RetryConfig
from .connection import ConnectionManager, build_ssl_context
from .connector import AmqpConnector
from .dispatcher import MessageDispatcher
from .errors import (
    BrokerConnectionError,
    ConfigError,
    ConnectorError,
    DeliveryError,
    TimeParseError,
    TopologyError,
)
from .health import create_health_app
from .kafka_router import KafkaRouter
from .logging import setup_logging
from .models import (
    ConnectorStatus,
    Delivery,
    DispatchOutcome,
    ForwardResult,
    HealthStatus,
)
from .payload import PayloadResolver
from .router import Router, forward
from .tagging import TagResolver
from .timing import TimeResolver
from .topology import bind_queue, declare_queue, setup_topology

__all__ = [
    "AmqpConfig",
    "AmqpConnector",
    "BrokerConnectionError",
    "ConfigError",
    "ConnectionManager",
    "ConnectorConfig",
    "ConnectorError",
    "ConnectorStatus",
    "Delivery",
    "DeliveryError",
    "DispatchOutcome",
    "ForwardResult",
    "HealthStatus",
    "KafkaConfig",
    "KafkaRouter",
    "MessageDispatcher",
    "PayloadResolver",
    "RetryConfig",
    "Router",
    "TagResolver",
    "TimeParseError",
    "TimeResolver",
    "TopologyError",
    "bind_queue",
    "build_ssl_context",
    "create_health_app",
    "declare_queue",
    "forward",
    "setup_logging",
    "setup_topology",
]
