"""Router that publishes records to a Kafka topic."""

from __future__ import annotations

import base64
import json
from datetime import datetime
from typing import Any

import structlog
from aiokafka import AIOKafkaProducer

from .config import KafkaConfig
from .models import Record
from .router import Router

logger = structlog.get_logger()


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(value).decode("ascii")
    return str(value)


def encode_event(tag: str, time: datetime, record: Record) -> bytes:
    """Serialize a forwarded record as a JSON event.

    Binary values (a non-UTF-8 fallback body) are base64 encoded; any
    other non-JSON value is stringified.
    """
    event = {"tag": tag, "time": time.isoformat(), "record": record}
    return json.dumps(event, default=_json_default, ensure_ascii=False).encode("utf-8")


class KafkaRouter(Router):
    """Thin async wrapper around :class:`AIOKafkaProducer`.

    Each record is sent with ``send_and_wait`` so a broker failure is
    known before the AMQP delivery is acknowledged.  The tag is used as
    the Kafka message key, keeping records with the same tag ordered
    within a partition.
    """

    def __init__(self, config: KafkaConfig) -> None:
        self._config = config
        self._producer: AIOKafkaProducer | None = None

    async def start(self) -> None:
        self._producer = AIOKafkaProducer(
            bootstrap_servers=self._config.bootstrap_servers,
            acks=self._config.producer_acks,
            compression_type=self._config.producer_compression,
        )
        await self._producer.start()
        logger.info(
            "kafka_router_started",
            servers=self._config.bootstrap_servers,
            topic=self._config.records_topic,
        )

    async def stop(self) -> None:
        if self._producer is not None:
            await self._producer.stop()
            self._producer = None
            logger.info("kafka_router_stopped")

    async def emit(self, tag: str, time: datetime, record: Record) -> None:
        assert self._producer is not None, "Producer not started"
        await self._producer.send_and_wait(
            self._config.records_topic,
            value=encode_event(tag, time, record),
            key=tag.encode("utf-8"),
        )
        logger.debug("record_published", topic=self._config.records_topic, tag=tag)
