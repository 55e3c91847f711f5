"""CoinDesk Bitcoin Price Index client, PEN endpoint."""
from __future__ import annotations

import httpx

from orangepill.config import Settings
from orangepill.services.providers import dig, get_json, positive_number


async def fetch_price(client: httpx.AsyncClient, settings: Settings) -> float:
    data = await get_json(client, f"{settings.COINDESK_URL}/v1/bpi/currentprice/PEN.json")
    return positive_number(dig(data, "bpi", "PEN", "rate_float"), "bpi.PEN.rate_float")
