"""Shared ingestion data types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Union

# Opaque key naming one item in a source's list endpoint.
Identifier = Union[int, str]

# Raw decoded per-item payload.
DetailRecord = Dict[str, Any]


@dataclass(frozen=True)
class RenderableItem:
    """Normalized title/link projection used for report rendering."""

    title: str
    url: str
    source: Optional[str] = None

    def formatted(self) -> str:
        return f"Title: {self.title}\nUrl: {self.url}"


class ItemFormatter(Protocol):
    def produce(self, title: str, url: str) -> RenderableItem:
        ...
