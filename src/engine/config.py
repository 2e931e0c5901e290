"""Central configuration constants for the aggregation engine."""

from __future__ import annotations

import os

USER_AGENT = "comment-harvester/1.0"
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "90"))
MAX_WORKERS = int(os.getenv("MAX_WORKERS", "8"))

# Rate-limit policy: 403/429 are retried at most this many times per stream.
MAX_RATE_LIMIT_RETRIES = 5
DEFAULT_RETRY_AFTER_SEC = 60

__all__ = [
    "USER_AGENT",
    "REQUEST_TIMEOUT",
    "MAX_WORKERS",
    "MAX_RATE_LIMIT_RETRIES",
    "DEFAULT_RETRY_AFTER_SEC",
]
