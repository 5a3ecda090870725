# Overview: Collection controller: cached copy of one remote collection plus local search/pagination.

"""
Collection Controller

One controller per list screen. It owns:

- items: the last successfully loaded rows (a cache, never durable truth)
- a view projection: search query + current page over the cache
- every mutation, serialized through the remote store

RULES:
- No optimistic updates. The cache changes only after the store confirms,
  and always with the row the store returned (ids/timestamps are the
  store's, never the draft's).
- Every remote failure is caught here: the cache stays as it was and one
  destructive notification is posted. Every success posts one notification.
- is_loading is true while any call is in flight and false on every exit path.
- Loads carry a sequence number. A response is applied only if no newer load
  or mutation has been applied since it was issued, so a slow stale response
  cannot overwrite newer data.
"""
from __future__ import annotations

import logging
import math
import threading
from contextlib import contextmanager
from typing import Any, Optional

from ..remote import Filter, Order, RemoteStore, RemoteStoreError, SelectResult
from ..services.notifications import Notifier

logger = logging.getLogger(__name__)


class CollectionController:
    table: str = ""
    entity: str = "item"
    order: Optional[Order] = None
    search_fields: tuple[str, ...] = ()
    items_per_page: int = 10

    def __init__(self, store: RemoteStore, notifier: Notifier, *, items_per_page: int | None = None):
        self.store = store
        self.notifier = notifier
        if items_per_page is not None:
            if items_per_page < 1:
                raise ValueError("items_per_page must be >= 1")
            self.items_per_page = items_per_page

        self.items: list[dict] = []
        self.search_query = ""
        self.current_page = 1
        self.loaded = False
        # Most recent remote failure, for callers that map it to a status
        self.last_error: RemoteStoreError | None = None

        self._lock = threading.RLock()
        self._in_flight = 0
        # Bumped whenever a load is issued or a mutation is applied
        self._generation = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @contextmanager
    def _busy(self):
        with self._lock:
            self._in_flight += 1
        try:
            yield
        finally:
            with self._lock:
                self._in_flight -= 1

    def _bump(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def display_name(self, row: dict | None) -> str:
        if not row:
            return ""
        return str(row.get("name") or f"{self.entity} #{row.get('id')}")

    def get(self, item_id: Any) -> dict | None:
        for row in self.items:
            if _same_id(row.get("id"), item_id):
                return row
        return None

    # ------------------------------------------------------------------
    # Remote operations
    # ------------------------------------------------------------------
    def _fetch(self, page: int | None) -> SelectResult:
        return self.store.select(self.table, order=self.order)

    def _apply(self, result: SelectResult, page: int | None) -> None:
        self.items = list(result.rows)

    def load(self, page: int | None = None) -> bool:
        """Replace the cache with a fresh read. Returns True if applied."""
        seq = self._bump()
        with self._busy():
            try:
                result = self._fetch(page)
            except RemoteStoreError as exc:
                logger.warning("Loading %s failed: %s", self.table, exc.message)
                self.last_error = exc
                if seq == self._generation:
                    self.notifier.failure(
                        f"Failed to fetch {self.entity.lower()}s",
                        exc.message or f"An error occurred while fetching {self.entity.lower()}s.",
                    )
                return False

            with self._lock:
                if seq != self._generation:
                    logger.debug("Discarding stale %s response (request %s, latest %s)",
                                 self.table, seq, self._generation)
                    return False
                self._apply(result, page)
                self.loaded = True
                self._clamp_page()
        return True

    def ensure_loaded(self) -> None:
        """Fetch on first use (screen mount)."""
        if not self.loaded:
            self.load()

    def _prepare_insert(self, draft: dict) -> dict:
        return draft

    def add(self, draft: dict) -> dict | None:
        """Insert a row; on success append the stored row and return it."""
        payload = self._prepare_insert(dict(draft))
        payload.pop("id", None)
        with self._busy():
            try:
                rows = self.store.insert(self.table, [payload])
                if not rows:
                    raise RemoteStoreError("")
            except RemoteStoreError as exc:
                self._fail("add", exc)
                return None

            row = rows[0]
            with self._lock:
                self.items.append(row)
                self._bump()
                self._after_mutation()

        self.notifier.success(
            f"{self.entity} added",
            f"{self.display_name(row)} has been added successfully.",
        )
        return row

    def update(self, item_id: Any, patch: dict) -> dict | None:
        """Update a row by id; on success swap in the stored row and return it."""
        patch = {k: v for k, v in patch.items() if k != "id"}
        with self._busy():
            try:
                rows = self.store.update(self.table, [Filter.eq("id", item_id)], patch)
                if not rows:
                    raise RemoteStoreError(f"{self.entity} not found.", status=404)
            except RemoteStoreError as exc:
                self._fail("update", exc)
                return None

            row = rows[0]
            with self._lock:
                self.items = [row if _same_id(r.get("id"), item_id) else r for r in self.items]
                self._bump()
                self._after_mutation()

        self.notifier.success(
            f"{self.entity} updated",
            f"{self.display_name(row)} has been updated successfully.",
        )
        return row

    def delete(self, item_id: Any) -> bool:
        """Delete a row by id; on success drop it from the cache."""
        # Captured first: the row is gone from the cache afterwards
        name = self.display_name(self.get(item_id))
        with self._busy():
            try:
                self.store.delete(self.table, [Filter.eq("id", item_id)])
            except RemoteStoreError as exc:
                self._fail("delete", exc)
                return False

            with self._lock:
                self.items = [r for r in self.items if not _same_id(r.get("id"), item_id)]
                self._bump()
                self._after_mutation()

        self.notifier.success(
            f"{self.entity} deleted",
            f"{name} has been deleted." if name else f"{self.entity} deleted.",
        )
        return True

    def _after_mutation(self) -> None:
        self._clamp_page()

    def _fail(self, action: str, exc: RemoteStoreError) -> None:
        self.last_error = exc
        logger.warning("Failed to %s %s: %s", action, self.entity.lower(), exc.message)
        self.notifier.failure(
            f"Failed to {action} {self.entity.lower()}",
            exc.message or f"An error occurred while trying to {action} the {self.entity.lower()}.",
        )

    # ------------------------------------------------------------------
    # Local view
    # ------------------------------------------------------------------
    def search(self, query: str | None) -> list[dict]:
        self.search_query = query or ""
        self.current_page = 1
        return self.visible_items

    @property
    def visible_items(self) -> list[dict]:
        q = self.search_query.lower()
        if not q:
            return list(self.items)
        return [
            row for row in self.items
            if any(q in str(row.get(f) or "").lower() for f in self.search_fields)
        ]

    @property
    def total_count(self) -> int:
        return len(self.visible_items)

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total_count / self.items_per_page))

    def _clamp_page(self) -> None:
        self.current_page = min(max(self.current_page, 1), self.total_pages)

    def set_page(self, page: int) -> int:
        """Clamp into [1, total_pages]; out-of-range values are never rejected."""
        self.current_page = min(max(int(page), 1), self.total_pages)
        return self.current_page

    @property
    def page_items(self) -> list[dict]:
        start = (self.current_page - 1) * self.items_per_page
        return self.visible_items[start:start + self.items_per_page]

    def snapshot(self) -> dict:
        return {
            "items": self.page_items,
            "is_loading": self.is_loading,
            "search": self.search_query,
            "page": self.current_page,
            "per_page": self.items_per_page,
            "total_pages": self.total_pages,
            "total_count": self.total_count,
        }


def _same_id(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return False
    return a == b or str(a) == str(b)
