"""Failure taxonomy for fetch streams.

Every error below except `InvalidInputError` is scoped to a single stream: it
stops that stream and is turned into a failure value by the paginator or the
resolver, so sibling streams keep running.
"""

from __future__ import annotations

from typing import Optional


class FetchError(Exception):
    """Base class for failures that end one fetch stream."""


class TransientRateLimited(FetchError):
    """Raised internally for a 403/429 that is still within the retry budget."""

    def __init__(self, status: int, wait_sec: float) -> None:
        super().__init__(f"rate limited (HTTP {status}), retry in {wait_sec:g}s")
        self.status = status
        self.wait_sec = wait_sec


class RemoteRejected(FetchError):
    """Non-2xx, non-rate-limit response (or a GraphQL error payload)."""

    def __init__(self, status: int, message: Optional[str] = None) -> None:
        text = f"HTTP {status}"
        if message:
            text = f"{text}: {message}"
        super().__init__(text)
        self.status = status
        self.message = message


class MalformedResponse(FetchError):
    """The body could not be parsed into the expected shape."""


class RetryBudgetExhausted(FetchError):
    """Rate limiting persisted past the per-stream retry bound."""

    def __init__(self, retries: int) -> None:
        super().__init__(f"rate limited after {retries} retries")
        self.retries = retries


class TransportFailure(FetchError):
    """Connection, DNS or timeout failure raised by the HTTP library."""


class NotFound(FetchError):
    """The API answered successfully but the entity is absent."""


class InvalidInputError(ValueError):
    """Malformed entity/container identifier, reported before any fetching."""


__all__ = [
    "FetchError",
    "TransientRateLimited",
    "RemoteRejected",
    "MalformedResponse",
    "RetryBudgetExhausted",
    "TransportFailure",
    "NotFound",
    "InvalidInputError",
]
