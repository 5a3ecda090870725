# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/storefront/routes/auth.py
"""
Authentication API routes.

Authentication is delegated to the remote auth provider through the
workspace's AuthGate. These routes validate the form, call the gate and
return the resulting identity plus the queued notifications.
"""

from flask import Blueprint, request, current_app

from ..decorators import require_auth
from ..validation import (
    ValidationError,
    validate_email_form,
    validate_login_form,
    validate_new_password_form,
    validate_register_form,
)
from ..workspace import (
    current_workspace,
    release_workspace,
    request_workspace,
    respond,
    respond_invalid,
    sign_in_workspace,
)


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_body(workspace) -> dict:
    user = workspace.auth.user if workspace is not None else None
    return {
        "authenticated": user is not None,
        "user": user.to_dict() if user else None,
    }


@auth_bp.post("/login")
def login_route():
    """
    Sign in with email + password.

    Returns 200 with the user on success, 401 when the provider rejects the
    credentials (the reason is in the notification).
    """
    try:
        email, password = validate_login_form(request.get_json(silent=True))
    except ValidationError as e:
        return respond_invalid(e.errors)

    workspace = request_workspace()
    try:
        ok = workspace.auth.login(email, password)
    except Exception:
        current_app.logger.exception("Login failed unexpectedly")
        return respond({"error": "Internal server error"}, 500)

    if not ok:
        return respond({**_session_body(workspace), "error": "Invalid credentials"}, 401)

    workspace.idle.touch()
    sign_in_workspace(workspace)
    return respond({**_session_body(workspace), "redirect": "/dashboard"})


@auth_bp.post("/register")
def register_route():
    """
    Create an account with the remote provider.

    The new account still has to verify its email, so no session is
    established here.
    """
    try:
        name, email, password = validate_register_form(request.get_json(silent=True))
    except ValidationError as e:
        return respond_invalid(e.errors)

    workspace = request_workspace()
    if not workspace.auth.register(name, email, password):
        return respond({"error": "Registration failed"}, 400)
    return respond({"redirect": "/login"}, 201)


@auth_bp.post("/logout")
def logout_route():
    workspace = current_workspace()
    if workspace is not None and workspace.auth.is_authenticated:
        workspace.auth.logout()
    release_workspace()
    return respond({**_session_body(workspace), "redirect": "/login"})


@auth_bp.post("/forgot-password")
def forgot_password_route():
    try:
        email = validate_email_form(request.get_json(silent=True))
    except ValidationError as e:
        return respond_invalid(e.errors)

    workspace = request_workspace()
    if not workspace.auth.reset_password(email):
        return respond({"error": "Reset failed"}, 400)
    return respond({"sent": True})


@auth_bp.post("/update-password")
@require_auth
def update_password_route():
    try:
        password = validate_new_password_form(request.get_json(silent=True))
    except ValidationError as e:
        return respond_invalid(e.errors)

    workspace = current_workspace()
    if not workspace.auth.update_password(password):
        return respond({"error": "Password update failed"}, 400)
    return respond({**_session_body(workspace), "redirect": "/dashboard"})


@auth_bp.get("/session")
def session_route():
    """Current identity; also reports an idle-expired session as signed out."""
    workspace = current_workspace()
    if workspace is not None and workspace.auth.is_authenticated and workspace.idle.expired():
        workspace.auth.expire()
        release_workspace()
    return respond(_session_body(workspace))
