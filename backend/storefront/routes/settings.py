# Overview: Flask API routes for the caller's store settings record.

from flask import Blueprint, request

from ..decorators import require_auth
from ..models import StoreSettings
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_settings,
    ValidationError,
)
from ..workspace import current_workspace, failure_status, respond, respond_invalid

SETTINGS_POLICY = ModelValidationPolicy(
    writable_fields={
        "store_name", "email", "phone", "address", "currency_symbol",
        "notify_new_orders", "notify_low_stock", "enable_guest_checkout", "enable_reviews",
    },
    required_on_create=set(),
)

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings():
    """The caller's settings, or the defaults when none were saved yet."""
    settings = current_workspace().settings
    if not settings.load():
        return respond({**settings.snapshot(), "error": "Failed to fetch settings"}, failure_status(settings.last_error))
    return respond(settings.snapshot())


@settings_bp.put("")
@require_auth
def save_settings():
    """Insert the caller's row on first save, update it afterwards."""
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=StoreSettings, payload=payload, policy=SETTINGS_POLICY, partial=True)
        enforce_rules_settings(patch)
    except ValidationError as e:
        return respond_invalid(e.errors)

    settings = current_workspace().settings
    if settings.save(patch) is None:
        return respond({**settings.snapshot(), "error": "Failed to save settings"}, failure_status(settings.last_error))
    return respond(settings.snapshot())
