"""Tag resolver: pick the routing label for a delivery."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .config import AmqpConfig


def header_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


@dataclass(frozen=True)
class TagResolver:
    """Resolve a tag in strict priority order.

    1. The routing key, when ``use_routing_key`` is set and it is non-empty.
    2. The ``header_name`` header, when configured and present.
    3. The static tag.
    """

    static_tag: str
    use_routing_key: bool = False
    header_name: str | None = None

    @classmethod
    def from_config(cls, config: AmqpConfig) -> TagResolver:
        return cls(
            static_tag=config.tag,
            use_routing_key=config.tag_key,
            header_name=config.tag_header,
        )

    def resolve(self, routing_key: str | None, headers: Mapping[str, Any] | None) -> str:
        if self.use_routing_key and routing_key:
            return routing_key
        if self.header_name and headers:
            value = headers.get(self.header_name)
            if value is not None:
                return header_text(value)
        return self.static_tag
