"""Orange Pill Peru API: BTC/PEN price with cached multi-provider fallback."""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Sequence

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from orangepill.cache import Clock, PriceCache, now_ms
from orangepill.config import Settings, settings as default_settings
from orangepill.ratelimit import RateLimiter, enforce_rate_limit
from orangepill.routes import bitcoin, health
from orangepill.services.price import PriceService
from orangepill.services.providers import Provider, build_providers

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("orangepill")

_NO_STORE = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def create_app(
    settings: Settings = default_settings,
    providers: Sequence[Provider] | None = None,
    clock: Clock = now_ms,
) -> FastAPI:
    """Build the app. *providers* and *clock* replace the real ones in tests."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings.validate()

        client = httpx.AsyncClient(timeout=httpx.Timeout(settings.provider_timeout))
        app.state.http = client

        chain = list(providers) if providers is not None else build_providers(client, settings)
        cache = PriceCache(
            fresh_ttl_ms=settings.PRICE_FRESH_TTL_MS,
            stale_ttl_ms=settings.PRICE_STALE_TTL_MS,
            clock=clock,
        )
        app.state.price_service = PriceService(
            cache, chain, clock, single_flight=settings.PRICE_SINGLE_FLIGHT
        )
        app.state.rate_limiter = RateLimiter(
            settings.RATE_LIMIT_MAX, settings.RATE_LIMIT_WINDOW
        )

        log.info(
            "Orange Pill API started: %d price providers, cache %d/%d ms, port %s",
            len(chain),
            settings.PRICE_FRESH_TTL_MS,
            settings.PRICE_STALE_TTL_MS,
            settings.PORT,
        )
        yield

        await client.aclose()
        log.info("Orange Pill API shutdown complete")

    app = FastAPI(
        title="Orange Pill Peru API",
        version="0.1.0",
        lifespan=lifespan,
        dependencies=[Depends(enforce_rate_limit)],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
        max_age=86400,
    )

    @app.middleware("http")
    async def api_headers_and_log(request: Request, call_next):
        start = time.monotonic()
        response = await call_next(request)
        if request.url.path.startswith("/api"):
            response.headers.update(_NO_STORE)
            log.info(
                "%s %s %s in %dms",
                request.method,
                request.url.path,
                response.status_code,
                (time.monotonic() - start) * 1000,
            )
        return response

    @app.exception_handler(StarletteHTTPException)
    async def api_errors(request: Request, exc: StarletteHTTPException):
        headers = getattr(exc, "headers", None)
        if not request.url.path.startswith("/api"):
            return JSONResponse(
                status_code=exc.status_code, content={"detail": exc.detail}, headers=headers
            )
        if exc.status_code == 404:
            message = "API endpoint not found"
        else:
            message = exc.detail
        return JSONResponse(
            status_code=exc.status_code, content={"error": message}, headers=headers
        )

    app.include_router(health.router)
    app.include_router(bitcoin.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "orangepill.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_level="info",
    )
