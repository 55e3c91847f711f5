"""USD -> PEN exchange rate (open.er-api.com shape, no API key required)."""
from __future__ import annotations

import asyncio
from typing import Coroutine

import httpx

from orangepill.config import Settings
from orangepill.errors import ProviderError
from orangepill.services.providers import dig, get_json, positive_number


async def fetch_usd_pen(client: httpx.AsyncClient, settings: Settings) -> float:
    """Return how many PEN one USD buys."""
    data = await get_json(client, settings.FX_RATE_URL)
    # open.er-api reports failures in-band with HTTP 200
    if isinstance(data, dict) and data.get("result") == "error":
        raise ProviderError(f"FX rate lookup failed: {data.get('error-type', 'unknown')}")
    return positive_number(dig(data, "rates", "PEN"), "rates.PEN")


async def usd_to_pen(
    client: httpx.AsyncClient, settings: Settings, price_usd: Coroutine[None, None, float]
) -> float:
    """Await a USD price and the FX rate concurrently, return the PEN price.

    Failure of either side fails the whole conversion and cancels the
    other side before returning, so no request outlives this call.
    """
    tasks = [
        asyncio.ensure_future(price_usd),
        asyncio.ensure_future(fetch_usd_pen(client, settings)),
    ]
    try:
        usd, rate = await asyncio.gather(*tasks)
    except BaseException:
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return positive_number(usd * rate, "price_usd * fx_rate")
