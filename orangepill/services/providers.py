"""Provider plumbing shared by the vendor adapters.

Each adapter is a coroutine ``fetch(client) -> float`` that returns the
BTC price in PEN. ``build_providers`` binds them to a shared
``httpx.AsyncClient``, wraps each in a time bound, and returns them in
the configured priority order.
"""
from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from orangepill.config import Settings
from orangepill.errors import InvalidResponse, ProviderError, ProviderTimeout

log = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[float]]


@dataclass(frozen=True)
class Provider:
    name: str
    fetch: Fetcher


def positive_number(value: Any, field: str) -> float:
    """Coerce a vendor value to a positive finite float or raise."""
    # bool is an int subclass; a JSON true is never a price
    if isinstance(value, bool) or value is None:
        raise InvalidResponse(f"{field}: expected a number, got {value!r}")
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            raise InvalidResponse(f"{field}: not numeric: {value!r}") from None
    if not isinstance(value, (int, float)):
        raise InvalidResponse(f"{field}: expected a number, got {type(value).__name__}")
    number = float(value)
    if not math.isfinite(number) or number <= 0:
        raise InvalidResponse(f"{field}: expected a positive price, got {number!r}")
    return number


def dig(data: Any, *path: str | int) -> Any:
    """Walk nested dicts/lists, raising InvalidResponse on a missing step."""
    cur = data
    walked: list[str] = []
    for step in path:
        walked.append(str(step))
        try:
            cur = cur[step]
        except (KeyError, IndexError, TypeError):
            raise InvalidResponse(f"missing field {'.'.join(walked)}") from None
    return cur


async def get_json(
    client: httpx.AsyncClient, url: str, params: dict[str, str] | None = None
) -> Any:
    """GET *url* and decode JSON, mapping transport failures to ProviderError."""
    try:
        resp = await client.get(url, params=params)
    except httpx.TimeoutException as e:
        raise ProviderTimeout(f"{url}: {e.__class__.__name__}") from e
    except httpx.HTTPError as e:
        raise ProviderError(f"{url}: {e}") from e
    if resp.status_code >= 400:
        raise ProviderError(f"{url}: HTTP {resp.status_code}")
    try:
        return resp.json()
    except ValueError as e:
        raise InvalidResponse(f"{url}: body is not JSON") from e


def with_timeout(name: str, fetch: Fetcher, timeout: float) -> Fetcher:
    """Bound *fetch* to *timeout* seconds; overrun raises ProviderTimeout."""

    async def bounded() -> float:
        try:
            return await asyncio.wait_for(fetch(), timeout=timeout)
        except asyncio.TimeoutError:
            raise ProviderTimeout(
                f"{name} did not answer within {timeout * 1000:.0f} ms"
            ) from None

    return bounded


def build_providers(client: httpx.AsyncClient, settings: Settings) -> list[Provider]:
    """Instantiate the configured providers in priority order."""
    from orangepill.services import binance, coindesk, coingecko, kraken

    factories: dict[str, tuple[str, Callable[[], Awaitable[float]]]] = {
        "coingecko": ("CoinGecko", lambda: coingecko.fetch_price(client, settings)),
        "kraken": ("Kraken", lambda: kraken.fetch_price(client, settings)),
        "binance": ("Binance", lambda: binance.fetch_price(client, settings)),
        "coindesk": ("CoinDesk", lambda: coindesk.fetch_price(client, settings)),
    }
    providers: list[Provider] = []
    for key in settings.enabled_providers():
        label, fetch = factories[key]
        providers.append(
            Provider(label, with_timeout(label, fetch, settings.provider_timeout))
        )
    log.info("Price providers: %s", ", ".join(p.name for p in providers))
    return providers
