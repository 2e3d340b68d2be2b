"""Tests for amqp_ingest.timing."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from amqp_ingest.errors import TimeParseError
from amqp_ingest.timing import TimeResolver, parse_time_value, utc_now

from conftest import FIXED_NOW


class TestParseTimeValue:
    def test_iso_with_z(self):
        assert parse_time_value("2024-01-01T00:00:00Z") == datetime(2024, 1, 1, tzinfo=UTC)

    def test_iso_with_offset_converted_to_utc(self):
        assert parse_time_value("2024-01-01T02:00:00+02:00") == datetime(2024, 1, 1, tzinfo=UTC)

    def test_naive_is_utc(self):
        assert parse_time_value("2024-01-01 10:30:00") == datetime(2024, 1, 1, 10, 30, tzinfo=UTC)

    def test_rfc2822(self):
        value = "Mon, 01 Jan 2024 00:00:00 +0000"
        assert parse_time_value(value) == datetime(2024, 1, 1, tzinfo=UTC)

    def test_bytes(self):
        assert parse_time_value(b"2024-01-01T00:00:00Z") == datetime(2024, 1, 1, tzinfo=UTC)

    def test_epoch_seconds(self):
        assert parse_time_value(1704067200) == datetime(2024, 1, 1, tzinfo=UTC)

    def test_datetime_passthrough(self):
        local = datetime(2024, 1, 1, 1, 0, tzinfo=timezone(timedelta(hours=1)))
        assert parse_time_value(local) == datetime(2024, 1, 1, tzinfo=UTC)

    @pytest.mark.parametrize("value", ["yesterday", "", b"\x00\x01", True])
    def test_unparseable(self, value):
        with pytest.raises(ValueError):
            parse_time_value(value)


class TestTimeResolver:
    def test_header_value(self, clock):
        resolver = TimeResolver("x-sent-at", clock=clock)
        result = resolver.resolve({"x-sent-at": "2024-01-01T00:00:00Z"})
        assert result == datetime(2024, 1, 1, tzinfo=UTC)
        clock.assert_not_called()

    def test_header_absent_uses_clock(self, clock):
        resolver = TimeResolver("x-sent-at", clock=clock)
        assert resolver.resolve({}) == FIXED_NOW
        clock.assert_called_once()

    def test_no_header_configured_uses_clock(self, clock):
        resolver = TimeResolver(None, clock=clock)
        assert resolver.resolve({"x-sent-at": "2024-01-01T00:00:00Z"}) == FIXED_NOW

    def test_malformed_header_raises(self, clock):
        resolver = TimeResolver("x-sent-at", clock=clock)
        with pytest.raises(TimeParseError) as excinfo:
            resolver.resolve({"x-sent-at": "not a time"})
        assert excinfo.value.header == "x-sent-at"
        assert excinfo.value.value == "not a time"
        clock.assert_not_called()

    def test_ingestion_time_is_non_decreasing(self):
        resolver = TimeResolver(None)
        first = resolver.resolve(None)
        second = resolver.resolve(None)
        assert first.tzinfo is not None
        assert second >= first

    def test_from_config(self, make_amqp_config):
        resolver = TimeResolver.from_config(make_amqp_config(time_header="x-ts"), clock=utc_now)
        assert resolver.resolve({"x-ts": 0}) == datetime(1970, 1, 1, tzinfo=UTC)
