from __future__ import annotations

import asyncio

import pytest

from orangepill.config import KNOWN_PROVIDERS, Settings
from orangepill.errors import ProviderTimeout
from orangepill.services.providers import Provider

T0 = 1_700_000_000_000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = T0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeProvider:
    """Scripted provider: returns *result*, or raises it if it's an exception."""

    def __init__(self, name: str, result, delay: float = 0.0) -> None:
        self.name = name
        self.result = result
        self.delay = delay
        self.calls = 0

    async def __call__(self) -> float:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result

    @property
    def provider(self) -> Provider:
        return Provider(self.name, self)


def failing(name: str) -> FakeProvider:
    return FakeProvider(name, ProviderTimeout(f"{name} timed out"))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    s = Settings()
    s.PRICE_PROVIDERS = list(KNOWN_PROVIDERS)
    s.PRICE_FRESH_TTL_MS = 300_000
    s.PRICE_STALE_TTL_MS = 1_800_000
    s.PRICE_SINGLE_FLIGHT = False
    s.PROVIDER_TIMEOUT_MS = 5000
    s.RATE_LIMIT_MAX = 100
    s.RATE_LIMIT_WINDOW = 900
    s.COINGECKO_URL = "https://api.coingecko.com"
    s.KRAKEN_URL = "https://api.kraken.com"
    s.BINANCE_URL = "https://api.binance.com"
    s.COINDESK_URL = "https://api.coindesk.com"
    s.FX_RATE_URL = "https://open.er-api.com/v6/latest/USD"
    s.CORS_ORIGINS = ["https://orange-pill-peru.com", "http://localhost:3000"]
    return s
