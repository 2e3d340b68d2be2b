"""Tests for amqp_ingest.models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from amqp_ingest.models import (
    ConnectorStatus,
    Delivery,
    DispatchStats,
    ForwardResult,
    HealthStatus,
)

from conftest import make_message


class TestDelivery:
    def test_from_message(self):
        message = make_message(
            delivery_tag=42,
            routing_key="orders.created",
            body=b"payload",
            headers={"sent_at": "2025-06-01T12:00:00Z"},
            redelivered=True,
        )
        delivery = Delivery.from_message(message)

        assert delivery.delivery_tag == 42
        assert delivery.routing_key == "orders.created"
        assert delivery.body == b"payload"
        assert delivery.headers == {"sent_at": "2025-06-01T12:00:00Z"}
        assert delivery.redelivered is True
        assert delivery.message is message

    def test_missing_routing_key_and_headers(self):
        message = make_message()
        message.routing_key = None
        message.headers = None
        delivery = Delivery.from_message(message)
        assert delivery.routing_key == ""
        assert delivery.headers == {}

    def test_frozen(self):
        delivery = Delivery(delivery_tag=1, routing_key="", body=b"")
        with pytest.raises(AttributeError):
            delivery.body = b"x"  # type: ignore[misc]


class TestForwardResult:
    def test_success(self):
        result = ForwardResult.success(attempts=2)
        assert result.ok
        assert result.attempts == 2
        assert result.error is None

    def test_failure(self):
        err = RuntimeError("down")
        result = ForwardResult.failure(err, attempts=3)
        assert not result.ok
        assert result.error is err
        assert result.attempts == 3


class TestDispatchStats:
    def test_as_dict(self):
        stats = DispatchStats()
        stats.acked += 2
        stats.requeued += 1
        assert stats.as_dict() == {"messages_acked": 2, "messages_requeued": 1}


class TestHealthStatus:
    def test_construction(self):
        status = HealthStatus(
            connector_name="amqp",
            status=ConnectorStatus.RUNNING,
            uptime_seconds=3.5,
        )
        assert status.details == {}
        assert status.model_dump(mode="json")["status"] == "running"

    def test_invalid_status(self):
        with pytest.raises(ValidationError):
            HealthStatus(connector_name="amqp", status="exploded", uptime_seconds=0)
