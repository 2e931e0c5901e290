"""Memoized, concurrent entity fetching keyed by entity ID."""

from __future__ import annotations

import threading
from concurrent.futures import Executor, Future
from typing import Any, Callable, Dict

from .errors import FetchError
from .models import FetchOutcome, FetchState


class MemoizedResolver:
    """Start each entity fetch at most once per run and share its outcome.

    `submit` installs a future for an unseen ID under a lock, so concurrent
    requests for the same ID always get the same handle. Fetch functions may
    raise or return None; both become failure outcomes instead of exceptions.
    """

    def __init__(self, fetch: Callable[..., Any], executor: Executor, *, label: str = "entity") -> None:
        self._fetch = fetch
        self._executor = executor
        self.label = label
        self._tasks: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self.fetch_count = 0

    def submit(self, entity_id: str, *args: Any) -> "Future[FetchOutcome]":
        """Return the shared handle for `entity_id`, scheduling the fetch if new.

        Extra arguments are forwarded to the fetch function by the first
        caller only.
        """
        with self._lock:
            task = self._tasks.get(entity_id)
            if task is None:
                self.fetch_count += 1
                task = self._executor.submit(self._run, entity_id, *args)
                self._tasks[entity_id] = task
        return task

    def resolve(self, entity_id: str, *args: Any) -> FetchOutcome:
        return self.submit(entity_id, *args).result()

    def state(self, entity_id: str) -> FetchState:
        with self._lock:
            task = self._tasks.get(entity_id)
        if task is None:
            return FetchState.NOT_STARTED
        if not task.done():
            return FetchState.IN_FLIGHT
        if task.cancelled():
            return FetchState.FAILED
        return FetchState.SUCCEEDED if task.result().ok else FetchState.FAILED

    def _run(self, entity_id: str, *args: Any) -> FetchOutcome:
        try:
            value = self._fetch(entity_id, *args)
        except FetchError as exc:
            print(f"[warn] {self.label} {entity_id} failed -> {exc}")
            return FetchOutcome.failed(entity_id, str(exc))
        except Exception as exc:
            print(f"[error] {self.label} {entity_id}: unexpected {type(exc).__name__}: {exc}")
            return FetchOutcome.failed(entity_id, f"{type(exc).__name__}: {exc}")
        if value is None:
            return FetchOutcome.failed(entity_id, f"{self.label} not available")
        return FetchOutcome(entity_id=entity_id, value=value)


__all__ = ["MemoizedResolver"]
