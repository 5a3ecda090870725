# Overview: Flask API route for the dashboard overview (cards + chart series).

from flask import Blueprint

from ..decorators import require_auth
from ..services.stats_service import build_summary
from ..workspace import current_workspace, respond

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/summary")
@require_auth
def summary():
    workspace = current_workspace()
    for controller in (workspace.products, workspace.orders, workspace.customers):
        controller.ensure_loaded()

    body = build_summary(
        workspace.products.items,
        workspace.orders.items,
        workspace.customers.items,
        order_count=workspace.orders.total_count,
    )
    body["user"] = workspace.auth.user.to_dict() if workspace.auth.user else None
    return respond(body)
