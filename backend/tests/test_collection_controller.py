"""
Collection controller behaviour (products/customers flavour: local search and paging).

Covers:
- load / add / update / delete keep the cache equal to what the store confirmed
- failures leave the cache untouched and post exactly one destructive notification
- search and pagination are local views over the cache
- stale load responses never overwrite newer data
"""

import pytest

from storefront.controllers import CustomerController, ProductController
from storefront.remote import RemoteStoreError

from conftest import FakeStore, make_product


@pytest.fixture
def store():
    return FakeStore({"products": [make_product(i) for i in range(1, 4)]})


@pytest.fixture
def products(store, notifier):
    controller = ProductController(store, notifier)
    controller.load()
    notifier.drain()
    return controller


def test_load_replaces_items_in_created_order(products):
    assert [p["id"] for p in products.items] == [1, 2, 3]
    assert products.loaded
    assert not products.is_loading


def test_add_appends_server_row(products, store, notifier):
    draft = {"name": "Lamp", "description": "Desk lamp", "price": 20, "stock": 3, "category": "Home"}
    row = products.add(draft)

    assert row["id"] == 4
    assert products.items[-1] == row
    assert len(products.items) == 4
    # Server row, not the draft
    assert row["featured"] is False
    assert row["created_at"].endswith("Z")

    notes = notifier.drain()
    assert len(notes) == 1
    assert notes[0]["title"] == "Product added"
    assert notes[0]["description"] == "Lamp has been added successfully."
    assert notes[0]["variant"] == "default"


def test_add_ignores_client_supplied_id(products, store):
    row = products.add({"id": 99, "name": "X", "description": "d", "price": 1, "stock": 1, "category": "c"})
    assert row["id"] == 4


def test_failed_add_leaves_items_and_notifies_once(products, store, notifier):
    before = list(products.items)
    store.fail["insert"] = RemoteStoreError('duplicate key value violates unique constraint "products_pkey"', 409)

    assert products.add({"name": "Lamp", "description": "d", "price": 1, "stock": 1, "category": "c"}) is None

    assert products.items == before
    notes = notifier.drain()
    assert len(notes) == 1
    assert notes[0]["variant"] == "destructive"
    assert notes[0]["title"] == "Failed to add product"
    assert "duplicate key" in notes[0]["description"]
    assert not products.is_loading


def test_add_without_returned_row_is_a_failure(products, store, notifier):
    store.insert_returns_nothing = True
    assert products.add({"name": "Lamp", "description": "d", "price": 1, "stock": 1, "category": "c"}) is None
    assert len(products.items) == 3
    notes = notifier.drain()
    assert [n["variant"] for n in notes] == ["destructive"]
    assert notes[0]["description"] == "An error occurred while trying to add the product."


def test_update_swaps_in_server_row(products, store, notifier):
    row = products.update(2, {"price": 99.5, "id": 555})

    assert row["id"] == 2
    assert row["price"] == 99.5
    assert products.get(2) == row
    assert [p["id"] for p in products.items] == [1, 2, 3]
    assert notifier.drain()[0]["title"] == "Product updated"


def test_update_keeps_exactly_the_row_the_store_returned(products, store):
    # Someone else changed the stock since our last load
    store.tables["products"][1]["stock"] = 7

    def normalize(row):
        row["price"] = round(row["price"], 2)
        row["category"] = row["category"].upper()

    store.on_update = normalize
    row = products.update(2, {"price": 19.999})

    expected = {**make_product(2), "price": 20.0, "category": "GENERAL", "stock": 7}
    assert row == expected
    assert products.get(2) == expected
    # Not the cached row with the patch merged in
    assert products.get(2) != {**make_product(2), "price": 19.999}


def test_update_of_missing_row_fails(products, notifier):
    before = list(products.items)
    assert products.update(404, {"price": 1}) is None
    assert products.items == before
    notes = notifier.drain()
    assert notes[0]["variant"] == "destructive"
    assert notes[0]["title"] == "Failed to update product"


def test_failed_update_keeps_old_row(products, store, notifier):
    store.fail["update"] = RemoteStoreError("permission denied for table products", 403)
    assert products.update(1, {"price": 0}) is None
    assert products.get(1)["price"] == 11.0
    assert products.last_error.status == 403


def test_delete_removes_by_id_and_names_the_row(products, notifier):
    assert products.delete(2) is True
    assert [p["id"] for p in products.items] == [1, 3]
    notes = notifier.drain()
    assert notes == [{"title": "Product deleted", "description": "Product 2 has been deleted.", "variant": "default"}]


def test_failed_delete_keeps_row(products, store, notifier, offline):
    store.fail["delete"] = offline
    assert products.delete(2) is False
    assert [p["id"] for p in products.items] == [1, 2, 3]
    notes = notifier.drain()
    assert len(notes) == 1
    assert notes[0]["description"] == "Failed to fetch"


def test_failed_load_keeps_previous_items(products, store, notifier, offline):
    store.fail["select"] = offline
    assert products.load() is False
    assert [p["id"] for p in products.items] == [1, 2, 3]
    notes = notifier.drain()
    assert len(notes) == 1
    assert notes[0]["title"] == "Failed to fetch products"
    assert not products.is_loading


def test_is_loading_true_only_while_in_flight(products, store):
    seen = []
    store.during_select = lambda table: seen.append(products.is_loading)
    products.load()
    assert seen == [True]
    assert products.is_loading is False


def test_stale_load_response_is_discarded(products, store):
    store.tables["products"].append(make_product(4))

    def newer_request(table):
        store.tables["products"].append(make_product(5))
        products.load()

    # The first response (4 rows) arrives after the newer one (5 rows)
    store.during_select = newer_request
    assert products.load() is False
    assert [p["id"] for p in products.items] == [1, 2, 3, 4, 5]


def test_mutation_during_load_wins_over_stale_response(products, store):
    def mutate(table):
        products.add({"name": "Late", "description": "d", "price": 1, "stock": 1, "category": "c"})

    store.during_select = mutate
    assert products.load() is False
    assert products.items[-1]["name"] == "Late"


def test_search_is_case_insensitive_over_fields(notifier):
    store = FakeStore({"products": [
        make_product(1, name="Laptop", category="Electronics"),
        make_product(2, name="Mug", category="Kitchen"),
        make_product(3, name="Cable", description="Spare electronic part"),
    ]})
    controller = ProductController(store, notifier)
    controller.load()

    matches = controller.search("electr")
    assert [p["id"] for p in matches] == [1, 3]
    assert controller.current_page == 1
    # Underlying cache is untouched
    assert len(controller.items) == 3


def test_search_is_idempotent(products):
    products.set_page(1)
    first = products.search("product 1")
    again = products.search("product 1")
    assert first == again
    assert products.search("") == products.items


def test_search_query_is_not_trimmed(products):
    # " 2" only occurs inside "Product 2" and "Description 2"
    assert [p["id"] for p in products.search(" 2")] == [2]
    assert products.search("2 ") == []
    assert products.snapshot()["search"] == "2 "


def test_pagination_over_twelve_items(notifier):
    store = FakeStore({"products": [make_product(i) for i in range(1, 13)]})
    controller = ProductController(store, notifier)
    controller.load()

    assert controller.total_pages == 2
    assert len(controller.page_items) == 10
    controller.set_page(2)
    assert [p["id"] for p in controller.page_items] == [11, 12]


@pytest.mark.parametrize("requested, expected", [(0, 1), (-3, 1), (1, 1), (2, 2), (50, 2)])
def test_set_page_clamps(notifier, requested, expected):
    store = FakeStore({"products": [make_product(i) for i in range(1, 13)]})
    controller = ProductController(store, notifier)
    controller.load()
    assert controller.set_page(requested) == expected


def test_empty_collection_has_one_page(notifier):
    controller = ProductController(FakeStore(), notifier)
    controller.load()
    assert controller.total_pages == 1
    assert controller.set_page(3) == 1
    assert controller.page_items == []


def test_search_resets_page(notifier):
    store = FakeStore({"products": [make_product(i) for i in range(1, 13)]})
    controller = ProductController(store, notifier)
    controller.load()
    controller.set_page(2)
    controller.search("product")
    assert controller.current_page == 1


def test_delete_of_last_item_on_page_clamps(notifier):
    store = FakeStore({"products": [make_product(i) for i in range(1, 12)]})
    controller = ProductController(store, notifier)
    controller.load()
    controller.set_page(2)
    controller.delete(11)
    assert controller.current_page == 1


def test_categories_are_distinct_and_sorted(notifier):
    store = FakeStore({"products": [
        make_product(1, category="Toys"), make_product(2, category="Books"), make_product(3, category="Toys"),
    ]})
    controller = ProductController(store, notifier)
    controller.load()
    assert controller.categories == ["Books", "Toys"]


def test_customers_search_by_name_and_count_active(notifier):
    store = FakeStore({"customers": [
        {"id": 1, "name": "Alice", "email": "a@x.io", "orders": 2, "spent": 20.0, "last_order": "2024-03-01"},
        {"id": 2, "name": "Bob", "email": "alice@x.io", "orders": 0, "spent": 0.0, "last_order": "2024-05-01"},
        {"id": 3, "name": "Carol", "email": "c@x.io", "orders": 1, "spent": 5.0, "last_order": "2024-04-01"},
    ]})
    customers = CustomerController(store, notifier)
    customers.load()

    # Newest last_order first
    assert [c["id"] for c in customers.items] == [2, 3, 1]
    # Email is not a search field
    assert [c["id"] for c in customers.search("alice")] == [1]
    assert customers.active_count == 2
    assert customers.items_per_page == 5

    snap = customers.snapshot()
    assert snap["active_count"] == 2
    assert snap["customer_count"] == 3


def test_customer_snapshot_paginates_by_five(notifier):
    rows = [
        {"id": i, "name": f"C{i}", "email": f"c{i}@x.io", "orders": 0, "spent": 0.0, "last_order": f"2024-01-{i:02d}"}
        for i in range(1, 8)
    ]
    customers = CustomerController(FakeStore({"customers": rows}), notifier)
    customers.load()
    snap = customers.snapshot()
    assert snap["total_pages"] == 2
    assert len(snap["items"]) == 5
