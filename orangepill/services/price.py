"""Cache-fronted BTC/PEN price lookups.

Serves fresh cache hits without touching providers, refreshes on a miss
or a stale hit, and falls back to the stale quote when every provider
fails.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from pydantic import BaseModel

from orangepill.cache import CacheLookup, CacheState, Clock, PriceCache, PriceQuote, now_ms
from orangepill.errors import AllProvidersFailed, NoDataAvailable
from orangepill.services.aggregator import aggregate
from orangepill.services.providers import Provider

log = logging.getLogger(__name__)


class PriceResult(BaseModel):
    quote: PriceQuote
    stale: bool = False

    def to_payload(self) -> dict:
        body: dict = {"bitcoin": self.quote.model_dump()}
        if self.stale:
            body["stale"] = True
        return body


class PriceService:
    """Owns the price cache and the provider chain for one app.

    Without ``single_flight`` concurrent misses each run the aggregator
    and the last write wins. With it, refreshes are serialised and
    waiters reuse the outcome of the refresh they queued behind: its
    fresh quote, or on failure the stale quote or the same error.
    """

    def __init__(
        self,
        cache: PriceCache,
        providers: Sequence[Provider],
        clock: Clock = now_ms,
        *,
        single_flight: bool = False,
    ) -> None:
        self.cache = cache
        self.providers = list(providers)
        self._clock = clock
        self._lock = asyncio.Lock() if single_flight else None
        # Completed refreshes; lets lock waiters spot one that finished meanwhile
        self._refreshes = 0
        self._last_failure: AllProvidersFailed | None = None

    @property
    def single_flight(self) -> bool:
        return self._lock is not None

    async def get_price(self) -> PriceResult:
        lookup = self.cache.read()
        if lookup.state is CacheState.FRESH:
            return PriceResult(quote=lookup.quote)

        if self._lock is None:
            return await self._refresh(lookup)

        seen = self._refreshes
        async with self._lock:
            # Another request may have refreshed while we waited
            lookup = self.cache.read()
            if lookup.state is CacheState.FRESH:
                return PriceResult(quote=lookup.quote)
            if self._refreshes != seen and self._last_failure is not None:
                return self._fall_back(lookup, self._last_failure)
            return await self._refresh(lookup)

    async def _refresh(self, lookup: CacheLookup) -> PriceResult:
        try:
            quote = await aggregate(self.providers, self._clock)
        except AllProvidersFailed as e:
            self._refreshes += 1
            self._last_failure = e
            self.cache.set_error(str(e))
            return self._fall_back(lookup, e)

        self._refreshes += 1
        self._last_failure = None
        self.cache.write(quote)
        return PriceResult(quote=quote)

    def _fall_back(self, lookup: CacheLookup, error: AllProvidersFailed) -> PriceResult:
        if lookup.state is CacheState.STALE:
            log.warning("Serving stale price from %s (%s)", lookup.quote.provider, error)
            return PriceResult(quote=lookup.quote, stale=True)
        log.error("No Bitcoin price available: %s", error)
        raise NoDataAvailable(str(error)) from error
