"""
Pytest fixtures for storefront backend tests.

Provides an app bound to an in-memory database (local "sql" backend), test
clients, and an in-memory FakeStore for driving controllers directly with
injected failures and out-of-order responses.
"""

import copy
import re

import pytest

from storefront import create_app
from storefront.extensions import db
from storefront.remote import AuthProvider, AuthSession, Identity, RemoteStore, RemoteStoreError, SelectResult
from storefront.remote.base import SIGNED_IN, SIGNED_OUT, USER_UPDATED
from storefront.remote.sql import create_account
from storefront.services.notifications import Notifier

ADMIN_EMAIL = "owner@store.test"
ADMIN_PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """
    Create application for testing.

    No app context is held across the yield: each request pushes its own,
    so per-request state never carries over between test clients.
    """
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'REMOTE_BACKEND': 'sql',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BLOB_DIR': str(tmp_path_factory.mktemp('blobs')),
        'BLOB_PUBLIC_URL': 'http://blobs.test',
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client (fresh cookie jar, so a fresh workspace)."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def account(db_session):
    """Local sign-in account."""
    return create_account(ADMIN_EMAIL, ADMIN_PASSWORD, name="Store Owner", role="admin")


@pytest.fixture(scope='function')
def auth_client(client, account):
    """Test client whose workspace is signed in."""
    response = client.post('/api/auth/login', json={'email': ADMIN_EMAIL, 'password': ADMIN_PASSWORD})
    assert response.status_code == 200, response.json
    return client


@pytest.fixture(scope='function')
def notifier():
    return Notifier()


class FakeStore(RemoteStore):
    """
    In-memory remote store.

    - fail[op] = RemoteStoreError makes the next calls of that op raise
    - during_select(table) runs after a select has computed its result but
      before it returns, which lets a test issue a newer request while an
      older one is still "in flight"
    - insert returns rows with server-assigned ids
    - insert_returns_nothing simulates a store that confirms without rows
    - on_update(row) lets the store rewrite a row after applying a patch,
      the way server-side triggers and defaults do
    """

    def __init__(self, tables=None):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.next_id = 1 + max(
            (r.get("id", 0) for rows in self.tables.values() for r in rows if isinstance(r.get("id"), int)),
            default=0,
        )
        self.fail = {}
        self.during_select = None
        self.insert_returns_nothing = False
        self.on_update = None
        self.calls = []

    def _raise_if_failing(self, op):
        exc = self.fail.get(op)
        if exc is not None:
            raise exc

    def _matching(self, table, filters):
        return [r for r in self.tables.setdefault(table, []) if all(row_matches(f, r) for f in filters)]

    def select(self, table, *, filters=(), any_of=(), order=None, range=None, count=False):
        self.calls.append(("select", table))
        self._raise_if_failing("select")
        rows = self._matching(table, filters)
        any_of = list(any_of)
        if any_of:
            rows = [r for r in rows if any(row_matches(f, r) for f in any_of)]
        if order is not None:
            rows = sorted(rows, key=lambda r: (r.get(order.column) is None, r.get(order.column)),
                          reverse=not order.ascending)
        total = len(rows) if count else None
        if range is not None:
            rows = rows[range.start:range.end + 1]
        result = SelectResult(rows=copy.deepcopy(rows), count=total)

        hook, self.during_select = self.during_select, None
        if hook is not None:
            hook(table)
        return result

    def insert(self, table, rows):
        self.calls.append(("insert", table))
        self._raise_if_failing("insert")
        if self.insert_returns_nothing:
            return []
        created = []
        for row in rows:
            stored = {**row, "id": self.next_id}
            self.next_id += 1
            self.tables.setdefault(table, []).append(stored)
            created.append(dict(stored))
        return created

    def update(self, table, filters, patch):
        self.calls.append(("update", table))
        self._raise_if_failing("update")
        matched = self._matching(table, filters)
        for row in matched:
            row.update(patch)
            if self.on_update is not None:
                self.on_update(row)
        return copy.deepcopy(matched)

    def delete(self, table, filters):
        self.calls.append(("delete", table))
        self._raise_if_failing("delete")
        filters = list(filters)
        self.tables[table] = [
            r for r in self.tables.setdefault(table, []) if not all(row_matches(f, r) for f in filters)
        ]


class StubAuth(AuthProvider):
    """Auth provider with one known account; fail_next makes the next call raise."""

    def __init__(self):
        super().__init__()
        self.accounts = {"ann@shop.io": ("Password123", {"name": "Ann", "role": "seller"})}
        self.fail_next = None
        self.reset_requests = []

    def _maybe_fail(self):
        exc, self.fail_next = self.fail_next, None
        if exc is not None:
            raise exc

    def sign_in_with_password(self, email, password):
        self._maybe_fail()
        stored = self.accounts.get(email)
        if stored is None or stored[0] != password:
            raise RemoteStoreError("Invalid login credentials", status=400)
        self.session = AuthSession(Identity("u-1", email, dict(stored[1])), "token")
        self._emit(SIGNED_IN)
        return self.session

    def sign_up(self, email, password, metadata=None):
        self._maybe_fail()
        self.accounts[email] = (password, dict(metadata or {}))
        return Identity("u-2", email, dict(metadata or {}))

    def sign_out(self):
        self._maybe_fail()
        self.session = None
        self._emit(SIGNED_OUT)

    def reset_password_for_email(self, email, redirect_to=None):
        self._maybe_fail()
        self.reset_requests.append((email, redirect_to))

    def update_user(self, *, password):
        self._maybe_fail()
        self._emit(USER_UPDATED)
        return self.session.user


def make_product(i, **overrides):
    row = {
        "id": i,
        "name": f"Product {i}",
        "description": f"Description {i}",
        "price": 10.0 + i,
        "stock": i,
        "category": "General",
        "image_url": None,
        "featured": False,
        "created_at": f"2024-01-{i:02d}T00:00:00Z",
    }
    row.update(overrides)
    return row


@pytest.fixture(scope='function')
def offline():
    """A store error shaped like a network failure (no status)."""
    return RemoteStoreError("Failed to fetch")


def like_to_regex(pattern):
    """Translate an (i)like pattern into an anchored, case-insensitive regex."""
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "%":
            out.append(".*")
        elif ch == "_":
            out.append(".")
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("^" + "".join(out) + "$", re.IGNORECASE | re.DOTALL)


def row_matches(f, row):
    """Evaluate one Filter against an in-memory row."""
    actual = row.get(f.column)
    if f.op == "eq":
        return actual == f.value or (actual is not None and str(actual) == str(f.value))
    if actual is None:
        return False
    return like_to_regex(str(f.value)).search(str(actual)) is not None
