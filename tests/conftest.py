"""Shared test fixtures for the amqp_ingest test suite."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from amqp_ingest.config import AmqpConfig, ConnectorConfig, KafkaConfig, RetryConfig
from amqp_ingest.models import Delivery, Record
from amqp_ingest.router import Router

FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=UTC)


class RecordingRouter(Router):
    """In-memory router that records every emitted triple."""

    def __init__(self, fail_with: BaseException | None = None) -> None:
        self.emitted: list[tuple[str, datetime, Record]] = []
        self.fail_with = fail_with
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def emit(self, tag: str, time: datetime, record: Record) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.emitted.append((tag, time, record))


def make_message(
    *,
    delivery_tag: int = 1,
    routing_key: str = "",
    body: bytes = b'{"x":1}',
    headers: dict[str, Any] | None = None,
    redelivered: bool = False,
) -> MagicMock:
    """A stand-in for an aio-pika incoming message."""
    message = MagicMock()
    message.delivery_tag = delivery_tag
    message.routing_key = routing_key
    message.body = body
    message.headers = headers or {}
    message.redelivered = redelivered
    message.ack = AsyncMock()
    message.reject = AsyncMock()
    return message


def make_delivery(**kwargs: Any) -> Delivery:
    return Delivery.from_message(make_message(**kwargs))


@pytest.fixture
def clock() -> MagicMock:
    return MagicMock(return_value=FIXED_NOW)


@pytest.fixture
def amqp_config() -> AmqpConfig:
    return AmqpConfig(
        host="rabbit.test",
        queue="ingest",
        tag="hunter.amqp",
    )


@pytest.fixture
def make_amqp_config():
    """Factory to create AmqpConfig instances with overrides."""

    def _make(**overrides: Any) -> AmqpConfig:
        defaults: dict[str, Any] = dict(host="rabbit.test", queue="ingest", tag="hunter.amqp")
        defaults.update(overrides)
        return AmqpConfig(**defaults)

    return _make


@pytest.fixture
def kafka_config() -> KafkaConfig:
    return KafkaConfig(
        bootstrap_servers="localhost:9092",
        records_topic="amqp-records",
    )


@pytest.fixture
def retry_config() -> RetryConfig:
    return RetryConfig(
        max_attempts=1,
        initial_wait_seconds=0.01,
        max_wait_seconds=0.1,
    )


@pytest.fixture
def connector_config(
    amqp_config: AmqpConfig,
    kafka_config: KafkaConfig,
    retry_config: RetryConfig,
) -> ConnectorConfig:
    return ConnectorConfig(
        name="amqp-test",
        health_port=18080,
        amqp=amqp_config,
        kafka=kafka_config,
        retry=retry_config,
    )


@pytest.fixture
def router() -> RecordingRouter:
    return RecordingRouter()


@pytest.fixture
def acknowledger() -> AsyncMock:
    """A mock ConnectionManager exposing acknowledge / reject."""
    ack = AsyncMock()
    ack.acknowledge = AsyncMock()
    ack.reject = AsyncMock()
    return ack


@pytest.fixture
def broker():
    """Mock aio-pika connection, channel and queue wired to a factory."""
    queue = MagicMock()
    queue.name = "ingest"
    queue.bind = AsyncMock()
    queue.consume = AsyncMock(return_value="ctag-1")
    queue.cancel = AsyncMock()

    channel = MagicMock()
    channel.set_qos = AsyncMock()
    channel.declare_queue = AsyncMock(return_value=queue)

    connection = MagicMock()
    connection.is_closed = False
    connection.channel = AsyncMock(return_value=channel)
    connection.close = AsyncMock()

    factory = AsyncMock(return_value=connection)
    return MagicMock(factory=factory, connection=connection, channel=channel, queue=queue)
