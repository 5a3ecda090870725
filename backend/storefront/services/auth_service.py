# Overview: Identity gate over the remote auth provider; exposes the signed-in user to the dashboard.

"""
Authentication gate.

Authentication itself is delegated entirely to the remote auth provider.
The gate only:
- subscribes to the provider's session changes and mirrors the current
  identity (or its absence) as `user` / `is_authenticated`
- turns each auth action into exactly one notification
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..remote import AuthProvider, AuthSession, Identity, RemoteStoreError
from .notifications import Notifier

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "customer"
ROLES = {"admin", "customer", "seller"}


@dataclass(frozen=True)
class DashboardUser:
    id: str
    name: str
    email: str
    role: str = DEFAULT_ROLE

    @classmethod
    def from_identity(cls, identity: Identity) -> "DashboardUser":
        meta = identity.metadata or {}
        role = meta.get("role") or DEFAULT_ROLE
        return cls(
            id=identity.id,
            name=meta.get("name") or "",
            email=identity.email or "",
            role=role if role in ROLES else DEFAULT_ROLE,
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role}


class AuthGate:
    def __init__(self, provider: AuthProvider, notifier: Notifier, *, reset_redirect_url: str | None = None):
        self.provider = provider
        self.notifier = notifier
        self.reset_redirect_url = reset_redirect_url or None
        self.user: DashboardUser | None = None
        self.is_loading = False

        self._unsubscribe = provider.on_auth_state_change(self._on_change)
        self._on_change("INITIAL_SESSION", provider.get_session())

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def _on_change(self, event: str, session: Optional[AuthSession]) -> None:
        self.user = DashboardUser.from_identity(session.user) if session else None
        logger.debug("Auth state %s (authenticated=%s)", event, self.user is not None)

    def login(self, email: str, password: str) -> bool:
        self.is_loading = True
        try:
            session = self.provider.sign_in_with_password(email, password)
        except RemoteStoreError as exc:
            logger.info("Sign-in failed for %s: %s", email, exc.message)
            self.notifier.failure("Login failed", exc.message or "Invalid credentials")
            return False
        finally:
            self.is_loading = False

        self.user = DashboardUser.from_identity(session.user)
        self.notifier.success("Login successful", f"Welcome back, {self.user.name or 'User'}!")
        return True

    def register(self, name: str, email: str, password: str) -> bool:
        self.is_loading = True
        try:
            self.provider.sign_up(email, password, {"name": name, "role": DEFAULT_ROLE})
        except RemoteStoreError as exc:
            logger.info("Sign-up failed for %s: %s", email, exc.message)
            self.notifier.failure("Registration failed", exc.message or "Please try again.")
            return False
        finally:
            self.is_loading = False

        self.notifier.success("Registration successful", "Check your email to verify your account.")
        return True

    def _sign_out(self) -> None:
        try:
            self.provider.sign_out()
        except RemoteStoreError as exc:
            # The local identity is dropped regardless
            logger.warning("Remote sign-out failed: %s", exc.message)
        self.user = None

    def logout(self) -> None:
        self._sign_out()
        self.notifier.success("Logged out", "You have been logged out successfully.")

    def expire(self) -> None:
        """Idle sign-out."""
        self._sign_out()
        self.notifier.failure("Session Expired", "You have been logged out due to inactivity.")

    def reset_password(self, email: str) -> bool:
        self.is_loading = True
        try:
            self.provider.reset_password_for_email(email, redirect_to=self.reset_redirect_url)
        except RemoteStoreError as exc:
            logger.info("Password reset failed for %s: %s", email, exc.message)
            self.notifier.failure("Reset failed", exc.message or "Something went wrong.")
            return False
        finally:
            self.is_loading = False

        self.notifier.success("Password reset email sent", "Check inbox to reset your password.")
        return True

    def update_password(self, password: str) -> bool:
        self.is_loading = True
        try:
            identity = self.provider.update_user(password=password)
        except RemoteStoreError as exc:
            logger.info("Password update failed: %s", exc.message)
            self.notifier.failure("Password update failed", exc.message or "Something went wrong.")
            return False
        finally:
            self.is_loading = False

        self.user = DashboardUser.from_identity(identity)
        self.notifier.success("Password updated", "Your password has been changed successfully.")
        return True

    def close(self) -> None:
        self._unsubscribe()
