from __future__ import annotations

import time

from fastapi import APIRouter, Request

router = APIRouter()

_start_time = time.time()
_VERSION = "0.1.0"


@router.get("/healthz")
async def healthz(request: Request):
    service = request.app.state.price_service
    entry = service.cache.snapshot()
    return {
        "status": "ok",
        "version": _VERSION,
        "uptime_seconds": round(time.time() - _start_time),
        "price_cached_at": entry.cached_at,
        "price_age_ms": service.cache.age_ms(),
        "price_error": entry.error,
        "providers": [p.name for p in service.providers],
    }
