from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from markview.models.base import WireModel


@dataclass
class CacheEntry:
    """A value held by the response cache."""

    key: str
    value: Any
    size: int  # Serialized byte length, computed at insertion
    ttl: float  # Seconds before the entry reads as absent
    inserted_at: float
    accessed_at: float
    sliding: bool = True  # Count ttl from the last read rather than from insertion

    def expired(self, now: float) -> bool:
        start = self.accessed_at if self.sliding else self.inserted_at
        return now - start > self.ttl


class CacheStats(WireModel):
    size: int
    calculated_size: int
    max: int
    max_size: int
    hits: int = 0
    misses: int = 0
