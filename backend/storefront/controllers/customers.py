# Overview: Customer controller.

from __future__ import annotations

from ..remote import Order
from .collection import CollectionController


class CustomerController(CollectionController):
    table = "customers"
    entity = "Customer"
    order = Order("last_order", ascending=False)
    search_fields = ("name",)
    items_per_page = 5

    @property
    def active_count(self) -> int:
        """Customers with at least one (stored) order."""
        return sum(1 for row in self.items if (row.get("orders") or 0) > 0)

    def snapshot(self) -> dict:
        data = super().snapshot()
        data["active_count"] = self.active_count
        data["customer_count"] = len(self.items)
        return data
