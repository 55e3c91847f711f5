"""Price pipeline exceptions.

Provider-level errors (``ProviderError`` and subclasses) never leave the
aggregator. ``AllProvidersFailed`` never leaves the price service.
``NoDataAvailable`` is the only one a route turns into a 503.
"""
from __future__ import annotations


class PriceError(Exception):
    """Base class for everything the price pipeline raises."""


class ProviderError(PriceError):
    """A provider call failed (bad status, transport error, ...)."""


class ProviderTimeout(ProviderError):
    """A provider call exceeded its time bound."""


class InvalidResponse(ProviderError):
    """A provider answered, but not with a usable positive price."""


class AllProvidersFailed(PriceError):
    def __init__(self, last_error: BaseException | None = None) -> None:
        self.last_error = last_error
        if last_error is None:
            msg = "No price providers configured"
        else:
            msg = f"All price providers failed; last error: {last_error}"
        super().__init__(msg)


class NoDataAvailable(PriceError):
    """Nothing fresh, nothing stale, and every provider failed."""

    def __init__(self, details: str) -> None:
        self.details = details
        super().__init__(details)
