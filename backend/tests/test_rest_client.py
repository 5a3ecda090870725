"""
Hosted backend client, exercised against httpx.MockTransport.

Checks the wire shape (paths, query params, headers) and that every
failure surfaces as RemoteStoreError carrying the service's message.
"""

import json

import httpx
import pytest

from storefront.remote import Filter, Order, Range, RemoteStoreError
from storefront.remote.base import SIGNED_IN, SIGNED_OUT
from storefront.remote.rest import connect_rest

CONFIG = {
    "REMOTE_URL": "https://project.example.co",
    "REMOTE_API_KEY": "anon-key",
    "REMOTE_TIMEOUT": 5,
    "PRODUCT_IMAGE_BUCKET": "product-images",
}


class Recorder:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self):
        self.requests = []
        self.responses = []

    def queue(self, status=200, json_body=None, headers=None):
        self.responses.append((status, json_body, headers or {}))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body, headers = self.responses.pop(0) if self.responses else (200, [], {})
        return httpx.Response(status, json=body, headers=headers)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def client(recorder):
    remote = connect_rest(CONFIG, transport=httpx.MockTransport(recorder))
    yield remote
    remote.close()


def test_connect_requires_url():
    with pytest.raises(RuntimeError):
        connect_rest({"REMOTE_URL": ""})


def test_select_sends_order_range_and_count(client, recorder):
    recorder.queue(200, [{"id": 3}], {"Content-Range": "0-9/42"})

    result = client.store.select(
        "orders",
        any_of=[Filter.contains("customer_name", "ali"), Filter.contains("status", "ali")],
        order=Order("created_at", ascending=False),
        range=Range.for_page(1, 10),
        count=True,
    )

    assert result.rows == [{"id": 3}]
    assert result.count == 42

    req = recorder.last
    assert req.method == "GET"
    assert req.url.path == "/rest/v1/orders"
    assert req.url.params["order"] == "created_at.desc"
    assert req.url.params["or"] == '(customer_name.ilike."*ali*",status.ilike."*ali*")'
    assert req.headers["Range"] == "0-9"
    assert req.headers["Range-Unit"] == "items"
    assert req.headers["Prefer"] == "count=exact"
    assert req.headers["apikey"] == "anon-key"
    assert req.headers["Authorization"] == "Bearer anon-key"


def test_search_text_with_reserved_characters_is_quoted(client, recorder):
    client.store.select(
        "orders",
        any_of=[Filter.contains("customer_name", 'Smith, John (VIP)'), Filter.contains("status", 'say "hi"')],
    )
    assert recorder.last.url.params["or"] == (
        '(customer_name.ilike."*Smith, John (VIP)*",'
        'status.ilike."*say \\"hi\\"*")'
    )


def test_like_wildcards_in_search_text_stay_literal(client, recorder):
    client.store.select("orders", filters=[Filter.contains("customer_name", "50%_off*")])
    # % and _ stay escaped; a literal * can only be sent as a one-character wildcard
    assert recorder.last.url.params["customer_name"] == "ilike.*50\\%\\_off_*"

    client.store.select("orders", any_of=[Filter.contains("status", "a\\b")])
    assert recorder.last.url.params["or"] == '(status.ilike."*a\\\\\\\\b*")'


def test_select_without_count_ignores_content_range(client, recorder):
    recorder.queue(200, [], {"Content-Range": "*/0"})
    result = client.store.select("products", filters=[Filter.eq("featured", True)])
    assert result.count is None
    assert recorder.last.url.params["featured"] == "eq.true"


def test_insert_asks_for_representation(client, recorder):
    recorder.queue(201, [{"id": 7, "name": "Lamp"}])
    rows = client.store.insert("products", [{"name": "Lamp"}])
    assert rows == [{"id": 7, "name": "Lamp"}]
    assert recorder.last.method == "POST"
    assert recorder.last.headers["Prefer"] == "return=representation"
    assert json.loads(recorder.last.content) == [{"name": "Lamp"}]


def test_update_and_delete_filter_by_id(client, recorder):
    recorder.queue(200, [{"id": 7, "price": 2.5}])
    client.store.update("products", [Filter.eq("id", 7)], {"price": 2.5})
    assert recorder.last.method == "PATCH"
    assert recorder.last.url.params["id"] == "eq.7"

    recorder.queue(204, None)
    client.store.delete("products", [Filter.eq("id", 7)])
    assert recorder.last.method == "DELETE"
    assert recorder.last.url.params["id"] == "eq.7"


def test_error_response_carries_service_message(client, recorder):
    recorder.queue(409, {"code": "23505", "message": "duplicate key value violates unique constraint"})
    with pytest.raises(RemoteStoreError) as exc_info:
        client.store.insert("products", [{"name": "Lamp"}])
    assert exc_info.value.status == 409
    assert exc_info.value.message == "duplicate key value violates unique constraint"


def test_network_failure_becomes_remote_store_error():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    remote = connect_rest(CONFIG, transport=httpx.MockTransport(boom))
    with pytest.raises(RemoteStoreError) as exc_info:
        remote.store.select("products")
    assert exc_info.value.status is None
    assert "connection refused" in exc_info.value.message


def test_storage_upload_and_public_url(client, recorder):
    recorder.queue(200, {"Key": "product-images/abc.png"})
    path = client.storage.upload("abc.png", b"\x89PNG", "image/png")
    assert path == "abc.png"
    assert recorder.last.url.path == "/storage/v1/object/product-images/abc.png"
    assert recorder.last.headers["Content-Type"] == "image/png"
    assert client.storage.get_public_url("abc.png") == (
        "https://project.example.co/storage/v1/object/public/product-images/abc.png"
    )


def test_sign_in_sets_bearer_and_notifies_listeners(client, recorder):
    events = []
    client.auth.on_auth_state_change(lambda event, session: events.append((event, session)))

    recorder.queue(200, {
        "access_token": "user-jwt",
        "user": {"id": "u-1", "email": "a@b.co", "user_metadata": {"name": "Ann", "role": "admin"}},
    })
    session = client.auth.sign_in_with_password("a@b.co", "secret123")

    assert session.user.id == "u-1"
    assert session.user.metadata["name"] == "Ann"
    assert recorder.last.url.path == "/auth/v1/token"
    assert recorder.last.url.params["grant_type"] == "password"
    assert events[-1][0] == SIGNED_IN

    recorder.queue(200, [])
    client.store.select("store_settings")
    assert recorder.last.headers["Authorization"] == "Bearer user-jwt"

    recorder.queue(204, None)
    client.auth.sign_out()
    assert recorder.last.url.path == "/auth/v1/logout"
    assert events[-1] == (SIGNED_OUT, None)

    recorder.queue(200, [])
    client.store.select("products")
    assert recorder.last.headers["Authorization"] == "Bearer anon-key"


def test_bad_credentials(client, recorder):
    recorder.queue(400, {"error": "invalid_grant", "error_description": "Invalid login credentials"})
    with pytest.raises(RemoteStoreError) as exc_info:
        client.auth.sign_in_with_password("a@b.co", "wrong-password")
    assert exc_info.value.message == "Invalid login credentials"
    assert client.auth.get_session() is None


def test_sign_up_sends_profile_metadata(client, recorder):
    recorder.queue(200, {"id": "u-2", "email": "new@b.co", "user_metadata": {"name": "New"}})
    identity = client.auth.sign_up("new@b.co", "secret1", {"name": "New", "role": "customer"})
    assert identity.id == "u-2"
    body = json.loads(recorder.last.content)
    assert body["data"] == {"name": "New", "role": "customer"}


def test_reset_password_passes_redirect(client, recorder):
    recorder.queue(200, {})
    client.auth.reset_password_for_email("a@b.co", redirect_to="https://app.example.com/update-password")
    assert recorder.last.url.path == "/auth/v1/recover"
    assert recorder.last.url.params["redirect_to"] == "https://app.example.com/update-password"


def test_update_user_requires_session(client):
    with pytest.raises(RemoteStoreError) as exc_info:
        client.auth.update_user(password="newpass1")
    assert exc_info.value.status == 401
