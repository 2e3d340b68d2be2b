"""Payload resolver: turn a message body into a record."""

from __future__ import annotations

import structlog

from .models import Record
from .parsers.base import BaseParser

logger = structlog.get_logger()

FALLBACK_KEY = "message"


class PayloadResolver:
    """Produce a record for every body; malformed input is never dropped.

    With a parser configured, its record is used when one is found.
    Otherwise (no parser, or the parser found nothing) the body is
    wrapped as ``{"message": <original body>}`` and still forwarded.
    """

    def __init__(self, parser: BaseParser | None) -> None:
        self._parser = parser
        self.parse_failures = 0

    @property
    def parser(self) -> BaseParser | None:
        return self._parser

    def resolve(self, body: bytes) -> Record:
        if self._parser is None:
            return self.fallback(body)

        record, found = self._parser.parse(body)
        if not found or record is None:
            self.parse_failures += 1
            logger.warning(
                "payload_parse_failed",
                format=self._parser.format,
                size_bytes=len(body),
            )
            return self.fallback(body)
        return record

    @staticmethod
    def fallback(body: bytes) -> Record:
        """Wrap *body* as ``{"message": ...}``.

        UTF-8 bodies become text; any other body is kept as the original
        bytes so nothing is lost before the router encodes it.
        """
        try:
            return {FALLBACK_KEY: body.decode("utf-8")}
        except UnicodeDecodeError:
            return {FALLBACK_KEY: bytes(body)}
