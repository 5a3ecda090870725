# Overview: Dashboard overview numbers computed from the rows the controllers have loaded.

from __future__ import annotations

from storefront.timestamps import month_label


def monthly_sales(orders: list[dict]) -> list[dict]:
    """Sum order totals per month label ("Jan", "Feb", ...), in first-seen order."""
    totals: dict[str, float] = {}
    for order in orders:
        month = month_label(order.get("created_at"))
        if month is None:
            continue
        totals[month] = totals.get(month, 0) + float(order.get("total") or 0)
    return [{"name": name, "sales": round(sales, 2)} for name, sales in totals.items()]


def category_counts(products: list[dict]) -> list[dict]:
    counts: dict[str, int] = {}
    for product in products:
        category = product.get("category") or "Other"
        counts[category] = counts.get(category, 0) + 1
    return [{"name": name, "value": value} for name, value in counts.items()]


def build_summary(
    products: list[dict],
    orders: list[dict],
    customers: list[dict],
    *,
    order_count: int | None = None,
) -> dict:
    """
    Overview cards and chart series.

    Figures cover only what has been loaded: orders are server-paginated, so
    revenue and monthly sales reflect the loaded order page. order_count may
    carry the store's exact count instead.
    """
    revenue = sum(float(o.get("total") or 0) for o in orders)
    return {
        "product_count": len(products),
        "order_count": len(orders) if order_count is None else order_count,
        "revenue": round(revenue, 2),
        "customer_count": len(customers),
        "monthly_sales": monthly_sales(orders),
        "category_counts": category_counts(products),
    }
