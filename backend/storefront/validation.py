from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from storefront.timestamps import parse_day, parse_timestamp

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

LOGIN_PASSWORD_MIN = 8
REGISTER_PASSWORD_MIN = 6


class ValidationError(ValueError):
    """
    400-level input problem.

    errors maps field name -> message so forms can show them inline.
    """

    def __init__(self, errors: dict[str, str] | str):
        if isinstance(errors, str):
            errors = {"_": errors}
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" if k != "_" else v for k, v in errors.items()))


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what forms are allowed to set
    - required_on_create: fields required when creating
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError({col.key: f"{col.key} must be a number"})
            if 'e' in stripped.lower() or '.' in stripped:
                raise ValidationError({col.key: f"{col.key} must be a whole number"})
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError({col.key: f"{col.key} must be a number"})
        raise ValidationError({col.key: f"{col.key} must be a whole number"})

    # Floats (prices, totals)
    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError({col.key: f"{col.key} must be a number"})
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                raise ValidationError({col.key: f"{col.key} must be a number"})
        else:
            raise ValidationError({col.key: f"{col.key} must be a number"})
        # NaN and infinities parse as floats but are not amounts
        if not math.isfinite(number):
            raise ValidationError({col.key: f"{col.key} must be a finite number"})
        return number

    # Booleans (HTML forms send "true"/"on")
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"true", "on", "1", "yes"}
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, str):
            try:
                dt = parse_timestamp(value)
            except ValueError:
                raise ValidationError({col.key: f"{col.key} must be an ISO-8601 datetime"})
            if dt is None:
                raise ValidationError({col.key: f"{col.key} must be an ISO-8601 datetime"})
        return value

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes an incoming form payload against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    Unlike a fail-fast check, every field problem is collected so the form
    can render all of them at once.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors: dict[str, str] = {}

    required = policy.required_on_create or set()
    if not partial:
        for f in sorted(required):
            if f not in payload or payload[f] is None or (isinstance(payload[f], str) and not payload[f].strip()):
                errors[f] = f"{f} is required"

    cols = _columns_by_key(model)

    patch: dict = {}
    for k, raw in payload.items():
        if k in errors:
            continue
        if k not in policy.writable_fields or k not in cols:
            errors[k] = f"Field not allowed: {k}"
            continue
        col = cols[k]

        if raw is None:
            if not col.nullable:
                errors[k] = f"{k} cannot be null"
                continue
            patch[k] = None
            continue

        try:
            val = _coerce_value(col, raw)
        except ValidationError as e:
            errors.update(e.errors)
            continue

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable and val == "":
            errors[k] = f"{k} cannot be blank"
            continue

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                errors[k] = f"{k} exceeds max length {col.type.length}"
                continue

        patch[k] = val

    if errors:
        raise ValidationError(errors)
    return patch


def _is_email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_RE.match(value.strip()))


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def enforce_rules_product(patch: dict) -> None:
    """Business rules that are not captured by SQLAlchemy metadata alone."""
    errors = {}
    if patch.get("price") is not None and patch["price"] < 0:
        errors["price"] = "price must be >= 0"
    if patch.get("stock") is not None and patch["stock"] < 0:
        errors["stock"] = "stock must be >= 0"
    if patch.get("image_url") and not _is_http_url(patch["image_url"]):
        errors["image_url"] = "Invalid URL format"
    if errors:
        raise ValidationError(errors)


def enforce_rules_customer(patch: dict) -> None:
    errors = {}
    if "email" in patch and not _is_email(patch["email"]):
        errors["email"] = "Invalid email"
    if patch.get("orders") is not None and patch["orders"] < 0:
        errors["orders"] = "orders must be >= 0"
    if patch.get("spent") is not None and patch["spent"] < 0:
        errors["spent"] = "spent must be >= 0"
    if patch.get("last_order"):
        try:
            parse_day(patch["last_order"])
        except ValueError:
            errors["last_order"] = "last_order must be a YYYY-MM-DD date"
    if errors:
        raise ValidationError(errors)


def enforce_rules_settings(patch: dict) -> None:
    errors = {}
    if patch.get("email") and not _is_email(patch["email"]):
        errors["email"] = "Invalid email"
    if "currency_symbol" in patch and not (patch["currency_symbol"] or "").strip():
        errors["currency_symbol"] = "currency_symbol cannot be blank"
    if errors:
        raise ValidationError(errors)


# -----------------------------------------------------------------------------
# Auth forms (no backing model)
# -----------------------------------------------------------------------------

def _form(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _check_email(form: dict, errors: dict) -> str:
    email = str(form.get("email") or "").strip()
    if not email:
        errors["email"] = "Email is required"
    elif not _is_email(email):
        errors["email"] = "Invalid email"
    return email


def _check_password(form: dict, errors: dict, minimum: int, field: str = "password") -> str:
    password = str(form.get(field) or "")
    if not password:
        errors[field] = "Password is required"
    elif len(password) < minimum:
        errors[field] = f"Password must be at least {minimum} characters"
    return password


def _check_confirmation(form: dict, errors: dict, password: str) -> None:
    confirm = str(form.get("confirm_password") or "")
    if not confirm:
        errors["confirm_password"] = "Please confirm your password"
    elif confirm != password:
        errors["confirm_password"] = "Passwords do not match"


def validate_login_form(payload: Any) -> tuple[str, str]:
    form, errors = _form(payload), {}
    email = _check_email(form, errors)
    password = _check_password(form, errors, LOGIN_PASSWORD_MIN)
    if errors:
        raise ValidationError(errors)
    return email, password


def validate_register_form(payload: Any) -> tuple[str, str, str]:
    form, errors = _form(payload), {}
    name = str(form.get("name") or "").strip()
    if not name:
        errors["name"] = "Name is required"
    email = _check_email(form, errors)
    password = _check_password(form, errors, REGISTER_PASSWORD_MIN)
    if "password" not in errors:
        _check_confirmation(form, errors, password)
    if errors:
        raise ValidationError(errors)
    return name, email, password


def validate_email_form(payload: Any) -> str:
    form, errors = _form(payload), {}
    email = _check_email(form, errors)
    if errors:
        raise ValidationError(errors)
    return email


def validate_new_password_form(payload: Any) -> str:
    form, errors = _form(payload), {}
    password = _check_password(form, errors, REGISTER_PASSWORD_MIN)
    if "password" not in errors:
        _check_confirmation(form, errors, password)
    if errors:
        raise ValidationError(errors)
    return password
