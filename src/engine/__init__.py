"""Paginated, concurrent, memoized aggregation engine."""

from .aggregator import Aggregator
from .flatten import flatten_flat, flatten_threads
from .http_client import RateLimitRetryPolicy, build_session, run_graphql_query
from .models import (
    AggregatedEntity,
    AggregationResult,
    CommentNode,
    FailureReport,
    FetchOutcome,
    FetchState,
    Page,
)
from .pagination import CursorPaginator
from .resolver import MemoizedResolver

__all__ = [
    "Aggregator",
    "flatten_flat",
    "flatten_threads",
    "RateLimitRetryPolicy",
    "build_session",
    "run_graphql_query",
    "AggregatedEntity",
    "AggregationResult",
    "CommentNode",
    "FailureReport",
    "FetchOutcome",
    "FetchState",
    "Page",
    "CursorPaginator",
    "MemoizedResolver",
]
