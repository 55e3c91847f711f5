from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger(__name__)

KNOWN_PROVIDERS = ("coingecko", "kraken", "binance", "coindesk")

_DEFAULT_CORS_ORIGINS = (
    "https://orange-pill-peru.com,"
    "https://www.orange-pill-peru.com,"
    "http://localhost:5000,"
    "http://localhost:3000,"
    "http://0.0.0.0:5000,"
    "http://0.0.0.0:3000"
)


def _csv_list(key: str, default: str = "") -> list[str]:
    raw = os.getenv(key, default)
    return [x.strip() for x in raw.split(",") if x.strip()]


def _env(primary: str, *fallbacks: str, default: str = "") -> str:
    """Read env var with fallback aliases."""
    val = os.getenv(primary)
    if val is not None:
        return val
    for fb in fallbacks:
        val = os.getenv(fb)
        if val is not None:
            return val
    return default


def _bool(key: str, default: str = "false") -> bool:
    return os.getenv(key, default).lower() in ("true", "1", "yes")


class Settings:
    # --- Server ---
    HOST: str = _env("ORANGEPILL_HOST", "HOST", default="0.0.0.0")
    PORT: int = int(_env("ORANGEPILL_PORT", "PORT", default="5000"))

    # --- Price cache (milliseconds) ---
    PRICE_FRESH_TTL_MS: int = int(os.getenv("PRICE_FRESH_TTL_MS", "300000"))
    PRICE_STALE_TTL_MS: int = int(os.getenv("PRICE_STALE_TTL_MS", "1800000"))
    PRICE_SINGLE_FLIGHT: bool = _bool("PRICE_SINGLE_FLIGHT")

    # --- Providers, in priority order ---
    PRICE_PROVIDERS: list[str] = [
        p.lower() for p in _csv_list("PRICE_PROVIDERS", ",".join(KNOWN_PROVIDERS))
    ]
    PROVIDER_TIMEOUT_MS: int = int(os.getenv("PROVIDER_TIMEOUT_MS", "5000"))

    COINGECKO_URL: str = os.getenv("COINGECKO_URL", "https://api.coingecko.com")
    KRAKEN_URL: str = os.getenv("KRAKEN_URL", "https://api.kraken.com")
    BINANCE_URL: str = os.getenv("BINANCE_URL", "https://api.binance.com")
    COINDESK_URL: str = os.getenv("COINDESK_URL", "https://api.coindesk.com")
    FX_RATE_URL: str = os.getenv("FX_RATE_URL", "https://open.er-api.com/v6/latest/USD")

    # --- Rate limiting (per client IP, fixed window) ---
    RATE_LIMIT_WINDOW: int = int(os.getenv("RATE_LIMIT_WINDOW", "900"))
    RATE_LIMIT_MAX: int = int(os.getenv("RATE_LIMIT_MAX", "100"))

    # --- CORS ---
    CORS_ORIGINS: list[str] = _csv_list("CORS_ORIGINS", _DEFAULT_CORS_ORIGINS)

    @property
    def provider_timeout(self) -> float:
        """Provider bound in seconds, as asyncio and httpx expect it."""
        return self.PROVIDER_TIMEOUT_MS / 1000

    def enabled_providers(self) -> list[str]:
        return [p for p in self.PRICE_PROVIDERS if p in KNOWN_PROVIDERS]

    def validate(self) -> None:
        """Log warnings for odd settings; exit on unusable ones."""
        fatal = False
        for name in self.PRICE_PROVIDERS:
            if name not in KNOWN_PROVIDERS:
                log.warning(
                    "Unknown price provider %r ignored (known: %s)",
                    name,
                    ", ".join(KNOWN_PROVIDERS),
                )
        if not self.enabled_providers():
            log.error("PRICE_PROVIDERS leaves no usable provider")
            fatal = True
        if self.PRICE_FRESH_TTL_MS < 0 or self.PRICE_STALE_TTL_MS < self.PRICE_FRESH_TTL_MS:
            log.error(
                "PRICE_STALE_TTL_MS (%d) must be >= PRICE_FRESH_TTL_MS (%d) >= 0",
                self.PRICE_STALE_TTL_MS,
                self.PRICE_FRESH_TTL_MS,
            )
            fatal = True
        if self.PROVIDER_TIMEOUT_MS <= 0:
            log.error("PROVIDER_TIMEOUT_MS must be positive")
            fatal = True
        if self.RATE_LIMIT_MAX <= 0:
            log.warning("RATE_LIMIT_MAX is %d; rate limiting disabled", self.RATE_LIMIT_MAX)
        if fatal:
            sys.exit(1)


settings = Settings()
