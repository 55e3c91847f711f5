"""Try price providers in priority order until one answers."""
from __future__ import annotations

import logging
from typing import Sequence

from orangepill.cache import Clock, PriceQuote, now_ms
from orangepill.errors import AllProvidersFailed
from orangepill.services.providers import Provider

log = logging.getLogger(__name__)


async def aggregate(providers: Sequence[Provider], clock: Clock = now_ms) -> PriceQuote:
    """Return a quote from the first provider that succeeds.

    Providers run one at a time; later ones are not touched once a price
    is obtained. If all fail, ``AllProvidersFailed`` carries only the
    last error seen.
    """
    last_error: BaseException | None = None
    for provider in providers:
        try:
            value = await provider.fetch()
            quote = PriceQuote(pen=value, provider=provider.name, timestamp=clock())
        except Exception as e:
            # Includes PriceQuote rejecting a non-positive value
            log.warning("Price provider %s failed: %s", provider.name, e)
            last_error = e
            continue
        log.debug("Price from %s: %.2f PEN", provider.name, quote.pen)
        return quote

    err = AllProvidersFailed(last_error)
    log.warning("%s", err)
    raise err
