"""Built-in payload parsers."""

from __future__ import annotations

import csv
import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

from ..errors import ConfigError
from ..models import Record
from .base import BaseParser, decode_body

NOT_FOUND: tuple[Record | None, bool] = (None, False)


class JsonParser(BaseParser):
    """Body must be a JSON object; arrays and scalars are not records."""

    format = "json"

    def parse(self, body: bytes) -> tuple[Record | None, bool]:
        try:
            value = json.loads(body)
        except (ValueError, RecursionError):
            return NOT_FOUND
        if not isinstance(value, dict):
            return NOT_FOUND
        return value, True


class LtsvParser(BaseParser):
    """Labeled tab-separated values: ``host:web1<TAB>status:200``."""

    format = "ltsv"

    def __init__(self, delimiter: str = "\t", label_delimiter: str = ":") -> None:
        self._delimiter = delimiter
        self._label_delimiter = label_delimiter

    def parse(self, body: bytes) -> tuple[Record | None, bool]:
        text = decode_body(body).rstrip("\r\n")
        record: Record = {}
        for pair in text.split(self._delimiter):
            label, sep, value = pair.partition(self._label_delimiter)
            if not sep or not label:
                return NOT_FOUND
            record[label] = value
        return record, True


class CsvParser(BaseParser):
    """A single CSV line mapped onto a fixed list of keys."""

    format = "csv"

    def __init__(self, keys: Sequence[str], delimiter: str = ",") -> None:
        if not keys:
            raise ConfigError("csv payload format requires 'keys'")
        self._keys = list(keys)
        self._delimiter = delimiter

    def parse(self, body: bytes) -> tuple[Record | None, bool]:
        lines = decode_body(body).splitlines()
        if len(lines) != 1:
            return NOT_FOUND
        try:
            row = next(csv.reader(lines, delimiter=self._delimiter))
        except (csv.Error, StopIteration):
            return NOT_FOUND
        if len(row) != len(self._keys):
            return NOT_FOUND
        return dict(zip(self._keys, row)), True


class RegexpParser(BaseParser):
    """Named groups of a regular expression become record fields."""

    format = "regexp"

    def __init__(self, expression: str) -> None:
        try:
            self._pattern = re.compile(expression)
        except re.error as exc:
            raise ConfigError(f"invalid regexp expression {expression!r}: {exc}") from exc
        if not self._pattern.groupindex:
            raise ConfigError("regexp expression must contain named groups")

    def parse(self, body: bytes) -> tuple[Record | None, bool]:
        match = self._pattern.search(decode_body(body))
        if match is None:
            return NOT_FOUND
        return match.groupdict(), True


class NoneParser(BaseParser):
    """Keep the body as text under a single key."""

    format = "none"

    def __init__(self, message_key: str = "message") -> None:
        self._message_key = message_key

    def parse(self, body: bytes) -> tuple[Record | None, bool]:
        return {self._message_key: decode_body(body)}, True


class ChainParser(BaseParser):
    """Try several parsers in order; the first record found wins."""

    def __init__(self, parsers: Sequence[BaseParser]) -> None:
        self._parsers = list(parsers)

    @property
    def format(self) -> str:
        return ",".join(p.format for p in self._parsers)

    @property
    def parsers(self) -> list[BaseParser]:
        return list(self._parsers)

    def parse(self, body: bytes) -> tuple[Record | None, bool]:
        for parser in self._parsers:
            record, found = parser.parse(body)
            if found:
                return record, True
        return NOT_FOUND


# Factories take the ``parse_options`` mapping from the configuration.


def json_factory(options: Mapping[str, Any]) -> BaseParser:
    return JsonParser()


def ltsv_factory(options: Mapping[str, Any]) -> BaseParser:
    return LtsvParser(
        delimiter=options.get("delimiter", "\t"),
        label_delimiter=options.get("label_delimiter", ":"),
    )


def csv_factory(options: Mapping[str, Any]) -> BaseParser:
    keys = options.get("keys") or []
    if isinstance(keys, str):
        keys = [k.strip() for k in keys.split(",") if k.strip()]
    return CsvParser(keys, delimiter=options.get("delimiter", ","))


def regexp_factory(options: Mapping[str, Any]) -> BaseParser:
    expression = options.get("expression")
    if not expression:
        raise ConfigError("regexp payload format requires 'expression'")
    return RegexpParser(expression)


def none_factory(options: Mapping[str, Any]) -> BaseParser:
    return NoneParser(message_key=options.get("message_key", "message"))
