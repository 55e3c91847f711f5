"""Binance spot ticker client (BTC/USDT, converted to PEN)."""
from __future__ import annotations

import httpx

from orangepill.config import Settings
from orangepill.services.fx import usd_to_pen
from orangepill.services.providers import dig, get_json, positive_number


async def fetch_usd(client: httpx.AsyncClient, settings: Settings) -> float:
    data = await get_json(
        client, f"{settings.BINANCE_URL}/api/v3/ticker/price", params={"symbol": "BTCUSDT"}
    )
    return positive_number(dig(data, "price"), "price")


async def fetch_price(client: httpx.AsyncClient, settings: Settings) -> float:
    return await usd_to_pen(client, settings, fetch_usd(client, settings))
