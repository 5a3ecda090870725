# Overview: Local backend: the remote store contract served from Flask-SQLAlchemy models and a blob directory.

"""
Local backend.

Serves the same contract as the hosted backend so the dashboard can run
without network access (development, demos, tests):

- server-assigned ids and timestamps come back from insert()
- exact counts, ilike filters and offset ranges on select()
- store_settings rows are owned: every call is scoped to the signed-in
  account, the way row-level policies scope them on the hosted side
- error messages mirror the hosted service's wording where one exists

Must be used inside a Flask application context.
"""
from __future__ import annotations

import logging
import secrets
from pathlib import Path
from typing import Callable, Iterable, Optional

import bcrypt
from sqlalchemy import Boolean, DateTime, Float, Integer
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Account, TABLES
from ..timestamps import parse_timestamp, utcnow
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

# Tables whose rows belong to exactly one account (column holding the owner id)
OWNED_TABLES = {"store_settings": "user_id"}


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12."""
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _model_for(table: str):
    model = TABLES.get(table)
    if model is None:
        raise RemoteStoreError(f'relation "public.{table}" does not exist', status=404)
    return model


def _column(model, name: str):
    col = model.__table__.columns.get(name)
    if col is None:
        raise RemoteStoreError(
            f"Could not find the '{name}' column of '{model.__tablename__}' in the schema cache",
            status=400,
        )
    return col


def _coerce(col, value):
    """Bring JSON-ish values to what the column type stores."""
    if value is None:
        return None
    coltype = col.type
    try:
        if isinstance(coltype, DateTime):
            return parse_timestamp(value)
        if isinstance(coltype, Boolean):
            if isinstance(value, str):
                return value.strip().lower() in {"true", "t", "1", "yes"}
            return bool(value)
        if isinstance(coltype, Integer):
            if isinstance(value, float) and not value.is_integer():
                raise ValueError(value)
            return int(value)
        if isinstance(coltype, Float):
            return float(value)
    except (TypeError, ValueError):
        raise RemoteStoreError(f'invalid input syntax for type {coltype}: "{value}"', status=400)
    return value


def _clause(model, f: Filter):
    col = _column(model, f.column)
    if f.op == "eq":
        return col == _coerce(col, f.value)
    return col.ilike(str(f.value), escape="\\")


class SqlStore(RemoteStore):
    def __init__(self, identity: Callable[[], Optional[str]]):
        # Returns the signed-in account id, or None
        self.identity = identity

    def _scoped(self, table: str, model):
        query = db.session.query(model)
        owner_col = OWNED_TABLES.get(table)
        if owner_col is not None:
            owner = self.identity()
            if owner is None:
                raise RemoteStoreError("JWT required: sign in to access this table", status=401)
            query = query.filter(getattr(model, owner_col) == owner)
        return query

    def _filtered(self, table: str, filters: Iterable[Filter]):
        model = _model_for(table)
        query = self._scoped(table, model)
        for f in filters:
            query = query.filter(_clause(model, f))
        return model, query

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
        model, query = self._filtered(table, filters)

        any_of = list(any_of)
        if any_of:
            query = query.filter(db.or_(*[_clause(model, f) for f in any_of]))

        total = query.count() if count else None

        if order is not None:
            col = _column(model, order.column)
            query = query.order_by(col.asc() if order.ascending else col.desc())
        pk = list(model.__table__.primary_key.columns)[0]
        query = query.order_by(pk.asc())

        if range is not None:
            query = query.offset(range.start).limit(max(range.limit, 0))

        return SelectResult(rows=[obj.to_dict() for obj in query.all()], count=total)

    def insert(self, table: str, rows: list[dict]) -> list[dict]:
        model = _model_for(table)
        owner_col = OWNED_TABLES.get(table)
        created = []
        for row in rows:
            values = {k: _coerce(_column(model, k), v) for k, v in row.items()}
            if owner_col is not None:
                owner = self.identity()
                if owner is None:
                    raise RemoteStoreError("JWT required: sign in to access this table", status=401)
                if values.get(owner_col) not in (None, owner):
                    raise RemoteStoreError(
                        f'new row violates row-level security policy for table "{table}"',
                        status=403,
                    )
                values[owner_col] = owner
            obj = model(**values)
            db.session.add(obj)
            created.append(obj)
        self._commit(table)
        return [obj.to_dict() for obj in created]

    def update(self, table: str, filters: Iterable[Filter], patch: dict) -> list[dict]:
        model, query = self._filtered(table, filters)
        values = {k: _coerce(_column(model, k), v) for k, v in patch.items()}
        owner_col = OWNED_TABLES.get(table)
        if owner_col is not None:
            values.pop(owner_col, None)

        matched = query.all()
        for obj in matched:
            for k, v in values.items():
                setattr(obj, k, v)
        self._commit(table)
        return [obj.to_dict() for obj in matched]

    def delete(self, table: str, filters: Iterable[Filter]) -> None:
        _, query = self._filtered(table, filters)
        query.delete(synchronize_session=False)
        self._commit(table)

    def _commit(self, table: str) -> None:
        try:
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            orig = getattr(exc, "orig", None)
            logger.warning("Write to %s rejected: %s", table, orig or exc)
            raise RemoteStoreError(str(orig or exc), status=409) from exc


class LocalStorage(BlobStorage):
    """Blobs as files under <root>/<bucket>/<path>."""

    def __init__(self, root: str, bucket: str, public_base: str):
        self.root = Path(root).resolve() / bucket
        self.bucket = bucket
        self.public_base = public_base.rstrip("/")

    def _target(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            raise RemoteStoreError("Invalid key", status=400)
        return target

    def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        target = self._target(path)
        if target.exists():
            raise RemoteStoreError("The resource already exists", status=409)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise RemoteStoreError(str(exc)) from exc
        return path

    def get_public_url(self, path: str) -> str:
        return f"{self.public_base}/{self.bucket}/{path}"


def _identity(account: Account) -> Identity:
    return Identity(
        id=account.id,
        email=account.email,
        metadata={"name": account.name, "role": account.role},
    )


class SqlAuth(AuthProvider):
    def __init__(self, reset_log: Callable[[str, str | None], None] | None = None):
        super().__init__()
        # Receives (email, redirect_to) for reset requests; there is no mailer locally
        self.reset_log = reset_log

    def current_user_id(self) -> str | None:
        return self.session.user.id if self.session else None

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        account = db.session.query(Account).filter_by(email=(email or "").strip().lower()).first()
        if account is None or not verify_password(password or "", account.password_hash):
            raise RemoteStoreError("Invalid login credentials", status=400)

        account.last_sign_in_at = utcnow()
        db.session.commit()

        self.session = AuthSession(user=_identity(account), access_token=secrets.token_hex(32))
        self._emit(SIGNED_IN)
        return self.session

    def sign_up(self, email: str, password: str, metadata: dict | None = None) -> Identity:
        return _identity(create_account(email, password, **(metadata or {})))

    def sign_out(self) -> None:
        self.session = None
        self._emit(SIGNED_OUT)

    def reset_password_for_email(self, email: str, redirect_to: str | None = None) -> None:
        # Same answer whether or not the address is known
        logger.info("Password reset requested for %s", email)
        if self.reset_log is not None:
            self.reset_log(email, redirect_to)

    def update_user(self, *, password: str) -> Identity:
        if self.session is None:
            raise RemoteStoreError("Auth session missing!", status=401)
        account = db.session.get(Account, self.session.user.id)
        if account is None:
            raise RemoteStoreError("User not found", status=404)
        account.password_hash = hash_password(password)
        db.session.commit()
        self.session.user = _identity(account)
        self._emit(USER_UPDATED)
        return self.session.user


def create_account(email: str, password: str, *, name: str = "", role: str = "customer") -> Account:
    """Create a local identity. Raises RemoteStoreError if the email is taken."""
    email = (email or "").strip().lower()
    if db.session.query(Account).filter_by(email=email).first() is not None:
        raise RemoteStoreError("User already registered", status=422)

    account = Account(email=email, password_hash=hash_password(password), name=name or "", role=role or "customer")
    db.session.add(account)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise RemoteStoreError(str(getattr(exc, "orig", exc)), status=409) from exc
    return account


def connect_sql(config) -> RemoteClient:
    """Build a client bundle for one workspace against the local database."""
    auth = SqlAuth()
    return RemoteClient(
        store=SqlStore(auth.current_user_id),
        storage=LocalStorage(
            config.get("BLOB_DIR", "instance/blobs"),
            config.get("PRODUCT_IMAGE_BUCKET", "product-images"),
            config.get("BLOB_PUBLIC_URL", "/blobs"),
        ),
        auth=auth,
        backend="sql",
    )
