import uuid

import pytest


@pytest.fixture
def tracked(client, product, actor_id):
    r = client.post(
        "/v1/stock",
        json={"product_id": str(product.id), "quantity_available": 100, "created_by": str(actor_id)},
    )
    assert r.status_code == 201, r.text
    return r.json()


def _patch(client, product, action, actor_id, **body):
    return client.patch(
        f"/v1/stock/product/{product.id}/{action}",
        json={"updated_by": str(actor_id), **body},
    )


def test_create_stock(tracked, product):
    assert tracked["product_id"] == str(product.id)
    assert tracked["quantity_available"] == 100
    assert tracked["quantity_reserved"] == 0
    assert tracked["quantity_total"] == 100
    assert tracked["is_low_stock"] is False
    assert tracked["product"]["sku"] == product.sku


def test_create_stock_twice_is_conflict(client, tracked, product, actor_id):
    r = client.post(
        "/v1/stock",
        json={"product_id": str(product.id), "quantity_available": 1, "created_by": str(actor_id)},
    )
    assert r.status_code == 409
    assert r.json()["error"] == "DuplicateStock"


def test_create_stock_negative_is_rejected_by_schema(client, product, actor_id):
    r = client.post(
        "/v1/stock",
        json={"product_id": str(product.id), "quantity_available": -5, "created_by": str(actor_id)},
    )
    assert r.status_code == 422


def test_create_stock_unknown_product(client, actor_id):
    r = client.post(
        "/v1/stock",
        json={"product_id": str(uuid.uuid4()), "quantity_available": 1, "created_by": str(actor_id)},
    )
    assert r.status_code == 404
    assert r.json()["error"] == "NotFound"


def test_reserve_release_consume_flow(client, tracked, product, actor_id):
    r = _patch(client, product, "reserve", actor_id, quantity=30)
    assert r.status_code == 200, r.text
    assert (r.json()["quantity_available"], r.json()["quantity_reserved"]) == (70, 30)

    r = _patch(client, product, "release", actor_id, quantity=10)
    assert (r.json()["quantity_available"], r.json()["quantity_reserved"]) == (80, 20)

    r = _patch(client, product, "consume", actor_id, quantity=20, from_reserved=True)
    assert (r.json()["quantity_available"], r.json()["quantity_reserved"]) == (80, 0)

    r = _patch(client, product, "receive", actor_id, quantity=5)
    assert r.json()["quantity_available"] == 85

    r = client.get(f"/v1/stock/product/{product.id}/reconcile")
    body = r.json()
    assert body["balanced"] is True
    assert body["transaction_count"] == 4


def test_error_statuses(client, tracked, product, actor_id):
    r = _patch(client, product, "reserve", actor_id, quantity=101)
    assert r.status_code == 409
    assert r.json() == {
        "detail": "Insufficient available stock. Available: 100, Requested: 101",
        "error": "InsufficientStock",
        "retryable": False,
    }

    r = _patch(client, product, "release", actor_id, quantity=1)
    assert r.status_code == 409
    assert r.json()["error"] == "OverRelease"

    r = _patch(client, product, "adjust", actor_id, quantity_change=0)
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidQuantity"

    r = _patch(client, product, "reserve", actor_id, quantity=0)
    assert r.status_code == 422

    r = client.get(f"/v1/stock/product/{uuid.uuid4()}")
    assert r.status_code == 404

    # nothing above touched the counters
    r = client.get(f"/v1/stock/product/{product.id}")
    assert (r.json()["quantity_available"], r.json()["quantity_reserved"]) == (100, 0)


def test_adjust_and_absolute_update(client, tracked, product, actor_id):
    r = _patch(client, product, "adjust", actor_id, quantity_change=-95, notes="stocktake")
    assert r.status_code == 200
    assert r.json()["quantity_available"] == 5
    assert r.json()["is_low_stock"] is True

    r = client.put(
        f"/v1/stock/product/{product.id}",
        json={"quantity_available": 40, "quantity_reserved": 10, "updated_by": str(actor_id)},
    )
    assert r.status_code == 200, r.text
    assert (r.json()["quantity_available"], r.json()["quantity_reserved"]) == (40, 10)
    assert client.get(f"/v1/stock/product/{product.id}/reconcile").json()["balanced"] is True


def test_summary_and_low_stock(client, tracked, product, actor_id):
    _patch(client, product, "adjust", actor_id, quantity_change=-91)

    summary = client.get(f"/v1/stock/product/{product.id}/summary").json()
    assert summary["total_quantity"] == 9
    assert summary["minimum_stock_level"] == 10
    assert summary["is_low_stock"] is True

    low = client.get("/v1/stock/low-stock").json()
    assert [s["product_sku"] for s in low] == [product.sku]
    assert client.get("/v1/stock/low-stock", params={"threshold": 5}).json() == []

    page = client.get("/v1/stock", params={"low_stock": True}).json()
    assert page["total"] == 1
    assert page["page"] == 1


def test_raw_transactions(client, product, actor_id):
    r = client.post(
        "/v1/stock/transactions",
        json={
            "product_id": str(product.id),
            "transaction_type": "IN",
            "quantity": 12,
            "reference_type": "PURCHASE",
            "created_by": str(actor_id),
        },
    )
    assert r.status_code == 201, r.text
    assert r.json()["sequence"] == 1

    r = client.post(
        "/v1/stock/transactions",
        json={
            "product_id": str(product.id),
            "transaction_type": "OUT",
            "quantity": 50,
            "reference_type": "SALE",
            "created_by": str(actor_id),
        },
    )
    assert r.status_code == 409

    r = client.get(f"/v1/stock/product/{product.id}")
    assert r.json()["quantity_available"] == 12


def test_list_transactions(client, tracked, product, actor_id):
    for qty in (3, 4):
        _patch(client, product, "receive", actor_id, quantity=qty)
    _patch(client, product, "reserve", actor_id, quantity=2)

    r = client.get("/v1/stock/transactions", params={"product_id": str(product.id), "order": "asc"})
    body = r.json()
    assert body["total"] == 3
    assert [t["sequence"] for t in body["data"]] == [1, 2, 3]

    r = client.get("/v1/stock/transactions", params={"transaction_type": "RESERVED"})
    assert r.json()["total"] == 1
    assert r.json()["data"][0]["quantity"] == 2

    r = client.get(f"/v1/stock/transactions/product/{product.id}", params={"limit": 2})
    body = r.json()
    assert body["limit"] == 2
    assert [t["sequence"] for t in body["data"]] == [3, 2]


def test_delete_stock(client, tracked, product, actor_id):
    r = client.delete(f"/v1/stock/product/{product.id}", params={"deleted_by": str(actor_id)})
    assert r.status_code == 204

    assert client.get(f"/v1/stock/product/{product.id}").status_code == 404
    assert client.get("/v1/stock").json()["total"] == 0
    assert client.get("/v1/stock", params={"with_deleted": True}).json()["total"] == 1


def test_restore_deleted_stock(client, tracked, product, actor_id):
    client.delete(f"/v1/stock/product/{product.id}", params={"deleted_by": str(actor_id)})

    # deleted stock is not silently recreated by a raw transaction
    r = client.post(
        "/v1/stock/transactions",
        json={
            "product_id": str(product.id),
            "transaction_type": "IN",
            "quantity": 5,
            "reference_type": "ADJUSTMENT",
            "created_by": str(actor_id),
        },
    )
    assert r.status_code == 404
    assert r.json()["error"] == "NotFound"

    r = client.patch(f"/v1/stock/product/{product.id}/restore", params={"restored_by": str(actor_id)})
    assert r.status_code == 200, r.text
    assert r.json()["quantity_available"] == 100

    r = client.patch(f"/v1/stock/product/{product.id}/restore", params={"restored_by": str(actor_id)})
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidState"
