"""Payload parsers for the AMQP ingest connector."""

from .base import BaseParser
from .formats import (
    ChainParser,
    CsvParser,
    JsonParser,
    LtsvParser,
    NoneParser,
    RegexpParser,
)
from .registry import ParserFactory, ParserRegistry, default_registry

__all__ = [
    "BaseParser",
    "ChainParser",
    "CsvParser",
    "JsonParser",
    "LtsvParser",
    "NoneParser",
    "ParserFactory",
    "ParserRegistry",
    "RegexpParser",
    "default_registry",
]
