"""Cursor-driven pagination over any page-fetch function."""

from __future__ import annotations

import threading
from typing import Any, Callable, Iterator, List, Optional

from .errors import FetchError
from .models import Page

PageFetcher = Callable[[Optional[str]], Page]


class CursorPaginator:
    """Lazily walk a paginated query until the API reports no more pages.

    Page N+1 is requested only once the consumer has taken page N. A terminal
    `FetchError` ends the walk without raising: pages already yielded stay
    with the consumer and a warning is printed. `error` holds the reason and
    `exception` the raised error. The sequence can be iterated once.
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        *,
        label: str = "",
        start_cursor: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.fetch_page = fetch_page
        self.label = label
        self.start_cursor = start_cursor
        self.cancel_event = cancel_event
        self.pages_fetched = 0
        self.items_seen = 0
        self.error: Optional[str] = None
        self.exception: Optional[FetchError] = None
        self.cancelled = False
        self._started = False

    @property
    def complete(self) -> bool:
        return self._started and self.error is None and not self.cancelled

    def __iter__(self) -> Iterator[Page]:
        if self._started:
            raise RuntimeError(f"paginator for {self.label or 'stream'} was already consumed")
        self._started = True
        return self._walk()

    def _walk(self) -> Iterator[Page]:
        cursor = self.start_cursor
        while True:
            if self.cancel_event is not None and self.cancel_event.is_set():
                self.cancelled = True
                print(f"[warn] {self.label}: cancelled after {self.pages_fetched} pages")
                return
            try:
                page = self.fetch_page(cursor)
            except FetchError as exc:
                self.error = str(exc)
                self.exception = exc
                print(
                    f"[warn] {self.label}: stopped after {self.pages_fetched} pages "
                    f"({self.items_seen} items kept) -> {exc}"
                )
                return
            self.pages_fetched += 1
            self.items_seen += len(page.items)
            yield page
            if not page.has_more:
                return
            cursor = page.cursor

    def collect(self) -> List[Any]:
        """Concatenate the items of every page in order."""
        items: List[Any] = []
        for page in self:
            items.extend(page.items)
        return items


__all__ = ["PageFetcher", "CursorPaginator"]
