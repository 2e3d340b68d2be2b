"""Time resolver: pick the event time for a delivery."""

from __future__ import annotations

import email.utils
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from .config import AmqpConfig
from .errors import TimeParseError
from .tagging import header_text

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_time_value(value: Any) -> datetime:
    """Convert a header value into an aware UTC datetime.

    Accepts ``datetime`` (AMQP timestamp fields), epoch seconds and
    ISO-8601 or RFC 2822 strings.  Naive values are taken as UTC.
    Raises :class:`ValueError` when the value cannot be interpreted.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(value, UTC)
    else:
        text = header_text(value).strip()
        if not text:
            raise ValueError("empty time value")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            try:
                parsed = email.utils.parsedate_to_datetime(text)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"unrecognised time format: {text!r}") from exc

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


class TimeResolver:
    """Resolve the event time from a header, else the ingestion clock.

    A present but unparseable header raises :class:`TimeParseError`; the
    dispatcher requeues such deliveries instead of silently restamping
    them with the ingestion time.
    """

    def __init__(self, header_name: str | None = None, clock: Clock = utc_now) -> None:
        self._header_name = header_name
        self._clock = clock

    @classmethod
    def from_config(cls, config: AmqpConfig, clock: Clock = utc_now) -> TimeResolver:
        return cls(header_name=config.time_header, clock=clock)

    def resolve(self, headers: Mapping[str, Any] | None) -> datetime:
        if self._header_name and headers:
            value = headers.get(self._header_name)
            if value is not None:
                try:
                    return parse_time_value(value)
                except (ValueError, OverflowError, OSError) as exc:
                    raise TimeParseError(self._header_name, value) from exc
        return self._clock()
