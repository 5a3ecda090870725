# Overview: Order controller; paging and search are delegated to the remote store.

from __future__ import annotations

import logging
import math

from ..remote import Filter, Order, Range, SelectResult
from .collection import CollectionController

logger = logging.getLogger(__name__)


class OrderController(CollectionController):
    """
    Server-paginated variant.

    items holds exactly one page as returned by the store; total_count is the
    store's exact count of the (filtered) collection. Changing page or search
    issues a new ranged select instead of slicing locally.
    """
    table = "orders"
    entity = "Order"
    order = Order("created_at", ascending=False)
    search_fields = ("customer_name", "status")
    items_per_page = 10

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._total_count = 0

    def display_name(self, row: dict | None) -> str:
        if not row:
            return ""
        return f"Order #{row.get('id')}"

    def _fetch(self, page: int | None) -> SelectResult:
        page = max(page or self.current_page, 1)
        any_of = [Filter.contains(f, self.search_query) for f in self.search_fields] if self.search_query else []
        return self.store.select(
            self.table,
            any_of=any_of,
            order=self.order,
            range=Range.for_page(page, self.items_per_page),
            count=True,
        )

    def _apply(self, result: SelectResult, page: int | None) -> None:
        self.items = list(result.rows)
        self._total_count = result.count if result.count is not None else len(result.rows)
        self.current_page = max(page or self.current_page, 1)

    @property
    def visible_items(self) -> list[dict]:
        return list(self.items)

    @property
    def page_items(self) -> list[dict]:
        return list(self.items)

    @property
    def total_count(self) -> int:
        return self._total_count

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self._total_count / self.items_per_page))

    def set_page(self, page: int) -> int:
        """Clamp, then fetch that page from the store."""
        target = min(max(int(page), 1), self.total_pages)
        self.load(target)
        return self.current_page

    def search(self, query: str | None) -> list[dict]:
        self.search_query = query or ""
        self.current_page = 1
        self.load(1)
        return self.visible_items

    def delete(self, item_id) -> bool:
        """Delete, then refetch the current page so it stays a full page."""
        if not super().delete(item_id):
            return False
        self._total_count = max(self._total_count - 1, 0)
        self._clamp_page()
        self.load(self.current_page)
        return True
