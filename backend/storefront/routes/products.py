# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/storefront/routes/products.py
"""
Product inventory routes.

All routes require authentication. Reads come from the workspace's
ProductController cache (loaded on first use or with ?reload=1); writes go
through the controller, which calls the remote store and queues the
notification returned with the response.
"""
from flask import Blueprint, request

from ..controllers import ImageUpload
from ..decorators import require_auth
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
)
from ..workspace import current_workspace, failure_status, respond, respond_invalid

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price", "stock", "category", "image_url", "featured"},
    required_on_create={"name", "description", "price", "stock", "category"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _body(controller) -> dict:
    return {**controller.snapshot(), "categories": controller.categories}


def _read_form() -> tuple[dict, ImageUpload | None]:
    """JSON body, or multipart form fields plus an optional `image` file."""
    if request.mimetype == "multipart/form-data":
        payload = {k: v for k, v in request.form.items() if k != "image"}
        file = request.files.get("image")
        if file is not None and file.filename:
            return payload, ImageUpload(file.filename, file.read(), file.mimetype)
        return payload, None
    return request.get_json(silent=True) or {}, None


@products_bp.get("")
@require_auth
def list_products():
    """
    Current page of the product list.

    Query params:
    - search: str (optional) - case-insensitive match on name/category/description; resets to page 1
    - page: int (optional) - clamped into [1, total_pages]
    - reload: 1 (optional) - refetch from the remote store first
    """
    products = current_workspace().products
    if request.args.get("reload") == "1":
        products.load()
    else:
        products.ensure_loaded()

    if "search" in request.args:
        products.search(request.args.get("search"))
    page = request.args.get("page", type=int)
    if page is not None:
        products.set_page(page)

    return respond(_body(products))


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    products = current_workspace().products
    products.ensure_loaded()
    row = products.get(product_id)
    if row is None:
        return respond({"error": "Product not found"}, 404)
    return respond({"product": row})


@products_bp.post("")
@require_auth
def create_product_route():
    """
    Create a product.

    Accepts JSON, or multipart/form-data with an `image` file that is
    uploaded to blob storage before the insert.
    """
    payload, image = _read_form()
    if image is not None:
        payload.pop("image_url", None)

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return respond_invalid(e.errors)

    products = current_workspace().products
    products.ensure_loaded()
    row = products.add(patch, image=image)
    if row is None:
        return respond({**_body(products), "error": "Failed to add product"}, failure_status(products.last_error))
    return respond({**_body(products), "product": row}, 201)


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload, image = _read_form()

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return respond_invalid(e.errors)

    products = current_workspace().products
    products.ensure_loaded()
    if image is not None:
        url = products.upload_image(image)
        if url is None:
            return respond({**_body(products), "error": "Failed to upload image"}, failure_status(products.last_error))
        patch["image_url"] = url

    row = products.update(product_id, patch)
    if row is None:
        return respond({**_body(products), "error": "Failed to update product"}, failure_status(products.last_error))
    return respond({**_body(products), "product": row})


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    products = current_workspace().products
    products.ensure_loaded()
    if not products.delete(product_id):
        return respond({**_body(products), "error": "Failed to delete product"}, failure_status(products.last_error))
    return respond(_body(products))
