"""Abstract base class for payload parsers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import Record


def decode_body(body: bytes) -> str:
    """Decode a message body as UTF-8, replacing undecodable bytes."""
    return body.decode("utf-8", errors="replace")


class BaseParser(ABC):
    """Turn a raw message body into a record.

    Parsers never raise for malformed input: they report ``found=False``
    and the payload resolver substitutes a fallback record.
    """

    @property
    @abstractmethod
    def format(self) -> str:
        """The payload format name this parser handles."""

    @abstractmethod
    def parse(self, body: bytes) -> tuple[Record | None, bool]:
        """Return ``(record, found)`` for *body*.

        Synchronous: parsing is pure data transformation, no I/O.
        """
