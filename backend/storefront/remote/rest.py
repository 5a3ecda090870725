# Overview: httpx client for the hosted backend (PostgREST tables, GoTrue auth, object storage).

"""
Hosted backend client.

URL layout follows the hosted service:
- /rest/v1/<table>                 collection CRUD
- /auth/v1/...                     identity
- /storage/v1/object/<bucket>/...  blobs

Every request carries the project's anon key in the `apikey` header and a
bearer token: the signed-in user's access token when there is one, else the
anon key. That token is the implicit caller identity row-level policies see.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional
from urllib.parse import quote

import httpx

from .base import (
    AuthProvider,
    AuthSession,
    BlobStorage,
    Filter,
    Identity,
    Order,
    Range,
    RemoteClient,
    RemoteStore,
    RemoteStoreError,
    SelectResult,
    SIGNED_IN,
    SIGNED_OUT,
    USER_UPDATED,
)

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase or f"HTTP {response.status_code}"


def _parse_content_range(value: str | None) -> int | None:
    # "0-9/42" or "*/0"; total may be "*" when no count was requested
    if not value or "/" not in value:
        return None
    total = value.rsplit("/", 1)[1]
    if total == "*":
        return None
    try:
        return int(total)
    except ValueError:
        return None


def _like_pattern(pattern: str) -> str:
    """
    Rewrite a LIKE pattern for PostgREST, whose URL wildcard is *.

    Escaped pairs (\\%, \\_, \\\\) pass through untouched. PostgREST turns every *
    into %, so a literal * can only be sent as _ (any single character).
    """
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(pattern[i:i + 2])
            i += 2
            continue
        if ch == "%":
            out.append("*")
        elif ch == "*":
            out.append("_")
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def _quoted(value: str) -> str:
    """Double-quote a value inside a logic tree, where , ( ) are reserved."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _encode_value(f: Filter) -> str:
    if f.op == "ilike":
        return _like_pattern(str(f.value))
    if isinstance(f.value, bool):
        return "true" if f.value else "false"
    return str(f.value)


def _filter_params(filters: Iterable[Filter]) -> list[tuple[str, str]]:
    return [(f.column, f"{f.op}.{_encode_value(f)}") for f in filters]


class _Transport:
    """Shared httpx client + the auth session that supplies the bearer token."""

    def __init__(self, client: httpx.Client, api_key: str):
        self.client = client
        self.api_key = api_key
        self.access_token: str | None = None

    def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
        }
        headers.update(kwargs.pop("headers", None) or {})
        try:
            response = self.client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise RemoteStoreError(str(exc) or exc.__class__.__name__) from exc

        if response.is_error:
            message = _error_message(response)
            logger.warning("%s %s -> %s %s", method, path, response.status_code, message)
            raise RemoteStoreError(message, status=response.status_code)
        return response


class RestStore(RemoteStore):
    def __init__(self, transport: _Transport):
        self.transport = transport

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
        params = [("select", "*")] + _filter_params(filters)

        any_of = list(any_of)
        if any_of:
            parts = ",".join(f"{f.column}.{f.op}.{_quoted(_encode_value(f))}" for f in any_of)
            params.append(("or", f"({parts})"))

        if order is not None:
            params.append(("order", f"{order.column}.{'asc' if order.ascending else 'desc'}"))

        headers = {}
        if range is not None:
            headers["Range-Unit"] = "items"
            headers["Range"] = f"{range.start}-{range.end}"
        if count:
            headers["Prefer"] = "count=exact"

        response = self.transport.request("GET", f"/rest/v1/{table}", params=params, headers=headers)
        rows = response.json() or []
        total = _parse_content_range(response.headers.get("Content-Range")) if count else None
        return SelectResult(rows=rows, count=total)

    def insert(self, table: str, rows: list[dict]) -> list[dict]:
        response = self.transport.request(
            "POST",
            f"/rest/v1/{table}",
            json=rows,
            headers={"Prefer": "return=representation"},
        )
        return response.json() or []

    def update(self, table: str, filters: Iterable[Filter], patch: dict) -> list[dict]:
        response = self.transport.request(
            "PATCH",
            f"/rest/v1/{table}",
            params=_filter_params(filters),
            json=patch,
            headers={"Prefer": "return=representation"},
        )
        return response.json() or []

    def delete(self, table: str, filters: Iterable[Filter]) -> None:
        self.transport.request("DELETE", f"/rest/v1/{table}", params=_filter_params(filters))


class RestStorage(BlobStorage):
    def __init__(self, transport: _Transport, bucket: str, base_url: str):
        self.transport = transport
        self.bucket = bucket
        self.base_url = base_url.rstrip("/")

    def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        self.transport.request(
            "POST",
            f"/storage/v1/object/{self.bucket}/{quote(path)}",
            content=data,
            headers={"Content-Type": content_type or "application/octet-stream"},
        )
        return path

    def get_public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(path)}"


def _identity_from_json(data: dict) -> Identity:
    return Identity(
        id=str(data.get("id", "")),
        email=data.get("email") or "",
        metadata=data.get("user_metadata") or {},
    )


class RestAuth(AuthProvider):
    def __init__(self, transport: _Transport):
        super().__init__()
        self.transport = transport

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        response = self.transport.request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        body = response.json()
        self.session = AuthSession(
            user=_identity_from_json(body.get("user") or {}),
            access_token=body.get("access_token"),
        )
        self.transport.access_token = self.session.access_token
        self._emit(SIGNED_IN)
        return self.session

    def sign_up(self, email: str, password: str, metadata: dict | None = None) -> Identity:
        response = self.transport.request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": metadata or {}},
        )
        body = response.json()
        # Confirmation-enabled projects return the user at top level
        return _identity_from_json(body.get("user") or body)

    def sign_out(self) -> None:
        try:
            if self.transport.access_token:
                self.transport.request("POST", "/auth/v1/logout")
        finally:
            self.session = None
            self.transport.access_token = None
            self._emit(SIGNED_OUT)

    def reset_password_for_email(self, email: str, redirect_to: str | None = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        self.transport.request("POST", "/auth/v1/recover", params=params, json={"email": email})

    def update_user(self, *, password: str) -> Identity:
        if self.session is None:
            raise RemoteStoreError("Auth session missing!", status=401)
        response = self.transport.request("PUT", "/auth/v1/user", json={"password": password})
        identity = _identity_from_json(response.json())
        self.session.user = identity
        self._emit(USER_UPDATED)
        return identity


def connect_rest(config, *, transport: httpx.BaseTransport | None = None) -> RemoteClient:
    """Build a client bundle for one workspace against the hosted backend."""
    base_url = config.get("REMOTE_URL") or ""
    if not base_url:
        raise RuntimeError("REMOTE_URL must be set when REMOTE_BACKEND=rest")

    client = httpx.Client(
        base_url=base_url,
        timeout=config.get("REMOTE_TIMEOUT", 10),
        transport=transport,
    )
    shared = _Transport(client, config.get("REMOTE_API_KEY") or "")
    return RemoteClient(
        store=RestStore(shared),
        storage=RestStorage(shared, config.get("PRODUCT_IMAGE_BUCKET", "product-images"), base_url),
        auth=RestAuth(shared),
        backend="rest",
        on_close=client.close,
    )
