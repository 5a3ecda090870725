# Overview: Flask API routes for order operations; paging and search are answered by the remote store.

from flask import Blueprint, request

from ..decorators import require_auth
from ..workspace import current_workspace, failure_status, respond

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders():
    """
    One page of orders, newest first.

    Query params:
    - search: str (optional) - matched against customer name and status; resets to page 1
    - page: int (optional) - clamped into [1, total_pages]
    - reload: 1 (optional) - refetch the current page first
    """
    orders = current_workspace().orders
    if request.args.get("reload") == "1":
        orders.load(orders.current_page)
    else:
        orders.ensure_loaded()

    search = request.args.get("search")
    if search is not None and search != orders.search_query:
        orders.search(search)

    page = request.args.get("page", type=int)
    if page is not None and page != orders.current_page:
        orders.set_page(page)

    return respond(orders.snapshot())


@orders_bp.delete("/<int:order_id>")
@require_auth
def delete_order_route(order_id: int):
    orders = current_workspace().orders
    orders.ensure_loaded()
    if not orders.delete(order_id):
        return respond({**orders.snapshot(), "error": "Failed to delete order"}, failure_status(orders.last_error))
    return respond(orders.snapshot())
