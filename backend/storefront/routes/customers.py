# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import require_auth
from ..models import Customer
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_customer,
    ValidationError,
)
from ..workspace import current_workspace, failure_status, respond, respond_invalid

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "orders", "spent", "last_order"},
    required_on_create={"name", "email", "orders", "spent", "last_order"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers():
    """
    Query params:
    - search: str (optional) - case-insensitive match on name; resets to page 1
    - page: int (optional) - clamped into [1, total_pages]
    - reload: 1 (optional) - refetch from the remote store first
    """
    customers = current_workspace().customers
    if request.args.get("reload") == "1":
        customers.load()
    else:
        customers.ensure_loaded()

    if "search" in request.args:
        customers.search(request.args.get("search"))
    page = request.args.get("page", type=int)
    if page is not None:
        customers.set_page(page)

    return respond(customers.snapshot())


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer(customer_id: int):
    customers = current_workspace().customers
    customers.ensure_loaded()
    row = customers.get(customer_id)
    if row is None:
        return respond({"error": "Customer not found"}, 404)
    return respond({"customer": row})


@customers_bp.post("")
@require_auth
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        enforce_rules_customer(patch)
    except ValidationError as e:
        return respond_invalid(e.errors)

    customers = current_workspace().customers
    customers.ensure_loaded()
    row = customers.add(patch)
    if row is None:
        return respond({**customers.snapshot(), "error": "Failed to add customer"}, failure_status(customers.last_error))
    return respond({**customers.snapshot(), "customer": row}, 201)


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        enforce_rules_customer(patch)
    except ValidationError as e:
        return respond_invalid(e.errors)

    customers = current_workspace().customers
    customers.ensure_loaded()
    row = customers.update(customer_id, patch)
    if row is None:
        return respond({**customers.snapshot(), "error": "Failed to update customer"}, failure_status(customers.last_error))
    return respond({**customers.snapshot(), "customer": row})


@customers_bp.delete("/<int:customer_id>")
@require_auth
def delete_customer_route(customer_id: int):
    customers = current_workspace().customers
    customers.ensure_loaded()
    if not customers.delete(customer_id):
        return respond({**customers.snapshot(), "error": "Failed to delete customer"}, failure_status(customers.last_error))
    return respond(customers.snapshot())
