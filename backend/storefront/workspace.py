# Overview: Per-browser-session state containers, built at the composition root and found via the session cookie.

"""
Workspaces

A Workspace is everything one signed-in browser tab-group needs:
its own remote client (and therefore its own caller identity), a
notification queue, the auth gate, the idle timer and one controller per
screen. Workspaces are built by the WorkspaceRegistry that create_app() stores in
app.extensions. Only a successful sign-in registers one; the browser then
holds an opaque key in the signed Flask session cookie. Sign-out, idle
expiry and the sweep on every new registration drop it again.

Two workspaces never share cached rows, and nothing reconciles them.
"""
from __future__ import annotations

import logging
import secrets
import threading
from datetime import timedelta
from typing import Callable, Mapping

from flask import current_app, g, jsonify, session

from .controllers import CustomerController, OrderController, ProductController, SettingsController
from .remote import RemoteClient, connect
from .remote.base import SIGNED_IN, SIGNED_OUT
from .services.auth_service import AuthGate
from .services.notifications import Notifier
from .services.session_service import IdleTimer

logger = logging.getLogger(__name__)

SESSION_KEY = "workspace"


class Workspace:
    def __init__(self, client: RemoteClient, config: Mapping):
        self.client = client
        self.notifier = Notifier()
        self.auth = AuthGate(
            client.auth,
            self.notifier,
            reset_redirect_url=config.get("PASSWORD_RESET_REDIRECT_URL"),
        )
        self.idle = IdleTimer(timedelta(seconds=config.get("SESSION_IDLE_TIMEOUT_SECONDS", 1800)))

        self.products = ProductController(
            client.store,
            self.notifier,
            storage=client.storage,
            items_per_page=config.get("PRODUCTS_PER_PAGE"),
        )
        self.customers = CustomerController(
            client.store, self.notifier, items_per_page=config.get("CUSTOMERS_PER_PAGE")
        )
        self.orders = OrderController(
            client.store, self.notifier, items_per_page=config.get("ORDERS_PER_PAGE")
        )
        self.settings = SettingsController(client.store, self.notifier, self._user_id)

        self._unsubscribe = client.auth.on_auth_state_change(self._on_auth_change)

    def _user_id(self) -> str | None:
        return self.auth.user.id if self.auth.user else None

    def _on_auth_change(self, event: str, _session) -> None:
        # A different identity must not see the previous one's cached record
        if event in (SIGNED_IN, SIGNED_OUT):
            self.settings.reset()

    def close(self) -> None:
        self._unsubscribe()
        self.auth.close()
        self.client.close()


class WorkspaceRegistry:
    """Maps opaque session keys to live workspaces."""

    def __init__(self, client_factory: Callable[[Mapping], RemoteClient] = connect):
        self.client_factory = client_factory
        self._workspaces: dict[str, Workspace] = {}
        self._lock = threading.Lock()

    def build(self, config: Mapping) -> Workspace:
        """A workspace that is not registered yet (anonymous requests, sign-in attempts)."""
        return Workspace(self.client_factory(config), config)

    def adopt(self, workspace: Workspace) -> str:
        """Register a workspace under a fresh key; idle ones are evicted first."""
        self.sweep()
        key = secrets.token_urlsafe(24)
        with self._lock:
            self._workspaces[key] = workspace
        logger.debug("Opened workspace %s", key[:8])
        return key

    def sweep(self) -> int:
        """Close and drop every workspace whose idle timer has run out."""
        with self._lock:
            stale = [key for key, ws in self._workspaces.items() if ws.idle.expired()]
            evicted = [self._workspaces.pop(key) for key in stale]
        for workspace in evicted:
            workspace.close()
        if evicted:
            logger.info("Evicted %d idle workspace(s)", len(evicted))
        return len(evicted)

    def get(self, key: str | None) -> Workspace | None:
        if not key:
            return None
        with self._lock:
            return self._workspaces.get(key)

    def discard(self, key: str | None) -> None:
        with self._lock:
            workspace = self._workspaces.pop(key, None) if key else None
        if workspace is not None:
            workspace.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._workspaces)


def current_workspace() -> Workspace | None:
    """
    The caller's registered workspace, or None.

    Never opens one: only a successful sign-in registers a workspace, so
    anonymous traffic does not grow the registry.
    """
    cached = g.get("workspace")
    if cached is not None:
        return cached

    registry: WorkspaceRegistry = current_app.extensions["workspaces"]
    workspace = registry.get(session.get(SESSION_KEY))
    if workspace is None:
        session.pop(SESSION_KEY, None)
        return None
    g.workspace = workspace
    return workspace


def request_workspace() -> Workspace:
    """
    The registered workspace, else an unregistered one for this request only.

    The temporary workspace is closed when the app context tears down unless
    sign_in_workspace() registered it meanwhile.
    """
    workspace = current_workspace()
    if workspace is None:
        workspace = current_app.extensions["workspaces"].build(current_app.config)
        g.workspace = workspace
        g.temporary_workspace = workspace
    return workspace


def sign_in_workspace(workspace: Workspace) -> None:
    """Bind a freshly signed-in workspace to the session cookie."""
    if g.get("temporary_workspace") is workspace:
        g.temporary_workspace = None
        session[SESSION_KEY] = current_app.extensions["workspaces"].adopt(workspace)


def release_workspace() -> None:
    """
    Drop the caller's workspace from the registry and the cookie.

    g.workspace is kept so the response can still carry the notifications
    queued by the sign-out.
    """
    current_app.extensions["workspaces"].discard(session.pop(SESSION_KEY, None))


def end_request(_exc=None) -> None:
    """Forget the request's workspace and close it if it was never registered."""
    g.pop("workspace", None)
    workspace = g.pop("temporary_workspace", None)
    if workspace is not None:
        workspace.close()


def respond(body: dict | None = None, status: int = 200):
    """JSON response carrying the notifications queued during this request."""
    payload = dict(body or {})
    workspace = g.get("workspace")
    payload["notifications"] = workspace.notifier.drain() if workspace is not None else []
    return jsonify(payload), status


def failure_status(error) -> int:
    """HTTP status for a remote failure: the store's own 4xx, else 502."""
    status = getattr(error, "status", None)
    if status is not None and 400 <= status < 500:
        return status
    return 502


def respond_invalid(errors: dict):
    """400 for a form that failed validation; nothing reached the remote store."""
    return respond({"error": "Validation failed", "fields": errors}, 400)
