"""Merge concurrent result streams into one ordered, deduplicated collection."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Iterable, Iterator, List, Optional, Sequence, Set, Tuple, Union

from .models import AggregatedEntity, AggregationResult, FailureReport, FetchOutcome

StreamItem = Union["Future[FetchOutcome]", FetchOutcome, None]
# What a container scan returns: member handles and the reason it stopped early.
Listing = Tuple[Sequence[StreamItem], Optional[str]]


class Aggregator:
    """Collect entity outcomes from several sources.

    Output order follows the order in which sources were added and, inside a
    source, the order of its items; completion order of the underlying
    fetches never matters because `collect` waits on each handle in turn.
    The first occurrence of an ID wins.
    """

    def __init__(self, label: str = "entities") -> None:
        self.label = label
        self._sources: List[Tuple[str, Iterable[StreamItem]]] = []
        self._container_failures: List[FailureReport] = []

    def add_source(self, name: str, outcomes: Iterable[StreamItem]) -> None:
        self._sources.append((name, outcomes))

    def add_container(self, container_id: str, listing: Union["Future[Listing]", Listing]) -> None:
        """Register a container whose listing yields member handles plus an optional error."""
        self.add_source(f"container {container_id}", self._expand(container_id, listing))

    def record_container_failure(self, container_id: str, reason: str) -> None:
        print(f"[warn] {self.label}: container {container_id} incomplete -> {reason}")
        self._container_failures.append(FailureReport("container", container_id, reason))

    def _expand(self, container_id: str, listing) -> Iterator[StreamItem]:
        try:
            members, error = listing.result() if isinstance(listing, Future) else listing
        except Exception as exc:
            self.record_container_failure(container_id, f"{type(exc).__name__}: {exc}")
            return
        if error:
            self.record_container_failure(container_id, error)
        yield from members

    @staticmethod
    def _settle(item: StreamItem) -> Optional[FetchOutcome]:
        if isinstance(item, Future):
            return item.result()
        return item

    def collect(self) -> AggregationResult:
        result = AggregationResult()
        seen: Set[str] = set()
        failed: Set[str] = set()

        for name, outcomes in self._sources:
            for item in outcomes:
                outcome = self._settle(item)
                if outcome is None:
                    print(f"[warn] {self.label}: {name} produced an empty result; skipped")
                    continue
                if not outcome.ok:
                    if outcome.entity_id not in failed and outcome.entity_id not in seen:
                        failed.add(outcome.entity_id)
                        print(f"[warn] {self.label}: dropping {outcome.entity_id} -> {outcome.error}")
                        result.failures.append(FailureReport("entity", outcome.entity_id, outcome.error))
                    continue
                entity: AggregatedEntity = outcome.value
                if entity.id in seen:
                    continue
                seen.add(entity.id)
                result.entities.append(entity)
                if entity.warning:
                    result.warnings.append(FailureReport("entity", entity.id, entity.warning))

        result.failures.extend(self._container_failures)
        return result


__all__ = ["StreamItem", "Listing", "Aggregator"]
