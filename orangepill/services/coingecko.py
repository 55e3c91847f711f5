"""CoinGecko simple-price client (quotes PEN directly)."""
from __future__ import annotations

import httpx

from orangepill.config import Settings
from orangepill.services.providers import dig, get_json, positive_number


async def fetch_price(client: httpx.AsyncClient, settings: Settings) -> float:
    data = await get_json(
        client,
        f"{settings.COINGECKO_URL}/api/v3/simple/price",
        params={"ids": "bitcoin", "vs_currencies": "pen"},
    )
    return positive_number(dig(data, "bitcoin", "pen"), "bitcoin.pen")
