# Overview: Remote store boundary: query vocabulary, errors, and the client interfaces.

"""
Remote store boundary.

Everything the dashboard persists lives behind three interfaces:

- RemoteStore: collection CRUD (select / insert / update / delete)
- BlobStorage: product images (upload / get_public_url)
- AuthProvider: identity (sign-in, sign-up, sign-out, password reset)

Every failure raises RemoteStoreError. Callers catch it at the call site;
nothing here retries.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

logger = logging.getLogger(__name__)

FILTER_OPS = {"eq", "ilike"}

# Auth state change events (names follow the hosted provider)
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
USER_UPDATED = "USER_UPDATED"


class RemoteStoreError(Exception):
    """A remote call failed (network, auth, or constraint)."""

    def __init__(self, message: str = "", status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass(frozen=True)
class Filter:
    column: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter op: {self.op}")

    @classmethod
    def eq(cls, column: str, value: Any) -> "Filter":
        return cls(column, "eq", value)

    @classmethod
    def contains(cls, column: str, text: str) -> "Filter":
        """Case-insensitive substring match."""
        escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        return cls(column, "ilike", f"%{escaped}%")


@dataclass(frozen=True)
class Order:
    column: str
    ascending: bool = True


@dataclass(frozen=True)
class Range:
    """Inclusive row offsets, e.g. Range(0, 9) is the first ten rows."""
    start: int
    end: int

    @classmethod
    def for_page(cls, page: int, per_page: int) -> "Range":
        start = (max(page, 1) - 1) * per_page
        return cls(start, start + per_page - 1)

    @property
    def limit(self) -> int:
        return self.end - self.start + 1


@dataclass
class SelectResult:
    rows: list[dict]
    count: int | None = None


@dataclass
class Identity:
    id: str
    email: str
    metadata: dict = field(default_factory=dict)


@dataclass
class AuthSession:
    user: Identity
    access_token: str | None = None


class RemoteStore(ABC):
    @abstractmethod
    def select(
        self,
        table: str,
        *,
        filters: Iterable[Filter] = (),
        any_of: Iterable[Filter] = (),
        order: Optional[Order] = None,
        range: Optional[Range] = None,
        count: bool = False,
    ) -> SelectResult:
        """Rows matching all `filters` and at least one of `any_of` (if given)."""

    @abstractmethod
    def insert(self, table: str, rows: list[dict]) -> list[dict]:
        """Insert rows; returns the stored rows including server-assigned fields."""

    @abstractmethod
    def update(self, table: str, filters: Iterable[Filter], patch: dict) -> list[dict]:
        """Apply patch to matching rows; returns the updated rows."""

    @abstractmethod
    def delete(self, table: str, filters: Iterable[Filter]) -> None:
        """Delete matching rows."""


class BlobStorage(ABC):
    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        """Store data at path inside the bucket; returns the stored path."""

    @abstractmethod
    def get_public_url(self, path: str) -> str:
        ...


class AuthProvider(ABC):
    """
    Identity boundary.

    Subclasses call _emit() whenever the session changes; listeners receive
    (event, session_or_None).
    """

    def __init__(self):
        self._listeners: list[Callable[[str, Optional[AuthSession]], None]] = []
        self.session: AuthSession | None = None

    def on_auth_state_change(self, callback: Callable[[str, Optional[AuthSession]], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def get_session(self) -> AuthSession | None:
        return self.session

    def _emit(self, event: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self.session)
            except Exception:
                logger.exception("Auth state listener failed for %s", event)

    @abstractmethod
    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        ...

    @abstractmethod
    def sign_up(self, email: str, password: str, metadata: dict | None = None) -> Identity:
        ...

    @abstractmethod
    def sign_out(self) -> None:
        ...

    @abstractmethod
    def reset_password_for_email(self, email: str, redirect_to: str | None = None) -> None:
        ...

    @abstractmethod
    def update_user(self, *, password: str) -> Identity:
        ...


@dataclass
class RemoteClient:
    """The three boundaries bound to one caller identity."""
    store: RemoteStore
    storage: BlobStorage
    auth: AuthProvider
    backend: str = ""
    on_close: Callable[[], None] | None = None

    def close(self) -> None:
        if self.on_close is not None:
            self.on_close()
