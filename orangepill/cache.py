from __future__ import annotations

import math
import time
from enum import Enum
from typing import Callable

from pydantic import BaseModel, ConfigDict, field_validator

FRESH_TTL_MS = 300_000
STALE_TTL_MS = 1_800_000

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


class PriceQuote(BaseModel):
    """One normalized BTC/PEN observation."""

    model_config = ConfigDict(frozen=True)

    pen: float
    provider: str
    timestamp: int

    @field_validator("pen", mode="before")
    @classmethod
    def _numeric_only(cls, v):
        # No lax coercion: True would become 1.0 and "5" would become 5.0
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError(f"price must be a number, got {v!r}")
        return v

    @field_validator("pen")
    @classmethod
    def _positive_finite(cls, v: float) -> float:
        if not math.isfinite(v) or v <= 0:
            raise ValueError(f"price must be positive and finite, got {v!r}")
        return v


class CacheState(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    MISS = "miss"


class CacheLookup(BaseModel):
    state: CacheState
    quote: PriceQuote | None = None


class CacheEntry(BaseModel):
    """Snapshot of the single price slot."""

    quote: PriceQuote | None = None
    cached_at: int | None = None
    error: str | None = None


class PriceCache:
    """In-memory single-slot price cache for a single-worker async app.

    A stored quote is *fresh* while younger than ``fresh_ttl_ms``, *stale*
    (usable only as a fallback) until ``stale_ttl_ms``, and expired after
    that. Reads and writes are not locked; the last writer wins.
    """

    def __init__(
        self,
        fresh_ttl_ms: int = FRESH_TTL_MS,
        stale_ttl_ms: int = STALE_TTL_MS,
        clock: Clock = now_ms,
    ) -> None:
        if fresh_ttl_ms < 0 or stale_ttl_ms < 0:
            raise ValueError("cache TTLs must not be negative")
        if stale_ttl_ms < fresh_ttl_ms:
            raise ValueError("stale TTL must be >= fresh TTL")
        self.fresh_ttl_ms = fresh_ttl_ms
        self.stale_ttl_ms = stale_ttl_ms
        self._clock = clock
        self._entry = CacheEntry()

    def read(self) -> CacheLookup:
        entry = self._entry
        if entry.quote is None or entry.cached_at is None:
            return CacheLookup(state=CacheState.MISS)
        age = self._clock() - entry.cached_at
        if age < self.fresh_ttl_ms:
            return CacheLookup(state=CacheState.FRESH, quote=entry.quote)
        if age < self.stale_ttl_ms:
            return CacheLookup(state=CacheState.STALE, quote=entry.quote)
        return CacheLookup(state=CacheState.MISS)

    def write(self, quote: PriceQuote) -> None:
        self._entry = CacheEntry(quote=quote, cached_at=self._clock(), error=None)

    def set_error(self, error: str) -> None:
        # Keep the quote; it may still serve as a stale fallback
        self._entry = self._entry.model_copy(update={"error": error})

    def age_ms(self) -> int | None:
        if self._entry.cached_at is None:
            return None
        return self._clock() - self._entry.cached_at

    def snapshot(self) -> CacheEntry:
        return self._entry
