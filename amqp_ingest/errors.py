"""Exception hierarchy for the AMQP ingest connector.

Startup faults (:class:`ConfigError`, :class:`BrokerConnectionError`,
:class:`TopologyError`) abort :meth:`AmqpConnector.start`.  Per-delivery
faults (:class:`DeliveryError` and subclasses) only decide the fate of a
single message: it is rejected with requeue.
"""

from __future__ import annotations


class ConnectorError(Exception):
    """Base class for all connector errors."""


class ConfigError(ConnectorError):
    """Configuration is missing required values or is inconsistent."""


class BrokerConnectionError(ConnectorError, ConnectionError):
    """No configured broker endpoint accepted the connection."""


class TopologyError(ConnectorError):
    """Queue declaration or exchange binding was refused by the broker."""


class DeliveryError(ConnectorError):
    """A single delivery could not be turned into a record."""


class TimeParseError(DeliveryError, ValueError):
    """The time header of a delivery holds an unparseable value."""

    def __init__(self, header: str, value: object) -> None:
        super().__init__(f"cannot parse time header {header!r}: {value!r}")
        self.header = header
        self.value = value
