"""Plain data records shared by the engine and the API collectors."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Page:
    """One round trip of a paginated query.

    A page without a cursor can never claim more data; `has_more` is forced to
    False in that case so the paginator cannot loop on a missing token.
    """

    items: List[Any]
    cursor: Optional[str] = None
    has_more: bool = False

    def __post_init__(self) -> None:
        if not self.cursor and self.has_more:
            object.__setattr__(self, "has_more", False)


class FetchState(enum.Enum):
    NOT_STARTED = "not_started"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchOutcome:
    """Result of one memoized entity fetch: a value or a failure reason."""

    entity_id: str
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, entity_id: str, reason: str) -> "FetchOutcome":
        return cls(entity_id=entity_id, error=reason or "unknown error")


@dataclass(frozen=True)
class CommentNode:
    id: str
    author: str
    text: str
    published_at: Optional[str]
    parent_id: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class AggregatedEntity:
    """A video, issue or discussion with its flattened comment list."""

    id: str
    kind: str
    fields: Dict[str, Any]
    comments: Tuple[CommentNode, ...] = ()
    warning: Optional[str] = None


@dataclass(frozen=True)
class FailureReport:
    scope: str  # "entity" or "container"
    source_id: str
    reason: str


@dataclass
class AggregationResult:
    """Final collection handed to the output collaborator."""

    entities: List[AggregatedEntity] = field(default_factory=list)
    failures: List[FailureReport] = field(default_factory=list)
    warnings: List[FailureReport] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.entities)

    @property
    def failed(self) -> int:
        return sum(1 for report in self.failures if report.scope == "entity")

    def summary(self) -> str:
        containers = sum(1 for report in self.failures if report.scope == "container")
        parts = [f"{self.succeeded} succeeded", f"{self.failed} failed"]
        if containers:
            parts.append(f"{containers} container scans incomplete")
        if self.warnings:
            parts.append(f"{len(self.warnings)} partial")
        return ", ".join(parts)


__all__ = [
    "Page",
    "FetchState",
    "FetchOutcome",
    "CommentNode",
    "AggregatedEntity",
    "FailureReport",
    "AggregationResult",
]
