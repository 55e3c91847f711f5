"""Kraken public ticker client (XBT/USD, converted to PEN)."""
from __future__ import annotations

import httpx

from orangepill.config import Settings
from orangepill.errors import InvalidResponse, ProviderError
from orangepill.services.fx import usd_to_pen
from orangepill.services.providers import dig, get_json, positive_number


async def fetch_usd(client: httpx.AsyncClient, settings: Settings) -> float:
    """Last trade price for XBTUSD.

    Kraken answers ``{"error": [...], "result": {"XXBTZUSD": {"c": [price, vol]}}}``.
    The result key is Kraken's internal pair name, so take the first one.
    """
    data = await get_json(
        client, f"{settings.KRAKEN_URL}/0/public/Ticker", params={"pair": "XBTUSD"}
    )
    errors = data.get("error") if isinstance(data, dict) else None
    if errors:
        raise ProviderError(f"Kraken: {', '.join(map(str, errors))}")
    result = dig(data, "result")
    if not isinstance(result, dict) or not result:
        raise InvalidResponse("Kraken: empty ticker result")
    ticker = next(iter(result.values()))
    return positive_number(dig(ticker, "c", 0), "result.c[0]")


async def fetch_price(client: httpx.AsyncClient, settings: Settings) -> float:
    return await usd_to_pen(client, settings, fetch_usd(client, settings))
