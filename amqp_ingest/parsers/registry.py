"""Parser registry: maps payload format names to parser factories."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import structlog

from ..errors import ConfigError
from .base import BaseParser
from .formats import (
    ChainParser,
    csv_factory,
    json_factory,
    ltsv_factory,
    none_factory,
    regexp_factory,
)

logger = structlog.get_logger()

ParserFactory = Callable[[Mapping[str, Any]], BaseParser]


class ParserRegistry:
    """Registry of parser factories, keyed by format name.

    Formats are resolved once, when the connector is built; the resulting
    parser instance is reused for every delivery.
    """

    def __init__(self) -> None:
        self._factories: dict[str, ParserFactory] = {}

    def register(self, name: str, factory: ParserFactory) -> None:
        """Register *factory* under *name*, replacing any previous one."""
        key = name.strip().lower()
        self._factories[key] = factory
        logger.debug("parser_registered", format=key)

    def create(
        self,
        payload_format: str | None,
        options: Mapping[str, Any] | None = None,
    ) -> BaseParser | None:
        """Build the parser for *payload_format*.

        Returns ``None`` when no format is configured.  A comma-separated
        format list produces a :class:`ChainParser`.  Raises
        :class:`ConfigError` for unknown formats.
        """
        names = [n.strip().lower() for n in (payload_format or "").split(",") if n.strip()]
        if not names:
            return None

        opts = options or {}
        parsers: list[BaseParser] = []
        for name in names:
            factory = self._factories.get(name)
            if factory is None:
                raise ConfigError(
                    f"unknown payload_format {name!r}; supported: {', '.join(self.supported_formats)}"
                )
            parsers.append(factory(opts))

        if len(parsers) == 1:
            return parsers[0]
        return ChainParser(parsers)

    @property
    def supported_formats(self) -> list[str]:
        """Format names that have registered factories."""
        return sorted(self._factories)


def default_registry() -> ParserRegistry:
    """A registry holding the built-in formats."""
    registry = ParserRegistry()
    registry.register("json", json_factory)
    registry.register("ltsv", ltsv_factory)
    registry.register("csv", csv_factory)
    registry.register("regexp", regexp_factory)
    registry.register("none", none_factory)
    return registry
