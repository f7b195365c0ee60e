import uuid
from decimal import Decimal


def _create(client, supplier, product, actor_id, *, number="PO-2026-001", status="CONFIRMED", qty=10):
    return client.post(
        "/v1/purchase-orders",
        json={
            "order_number": number,
            "supplier_id": str(supplier.id),
            "status": status,
            "items": [
                {"product_id": str(product.id), "quantity_ordered": qty, "unit_cost": "2.25"},
            ],
            "created_by": str(actor_id),
        },
    )


def test_create_purchase_order(client, supplier, product, actor_id):
    r = _create(client, supplier, product, actor_id)
    assert r.status_code == 201, r.text
    po = r.json()

    assert po["status"] == "CONFIRMED"
    assert Decimal(po["total_amount"]) == Decimal("22.50")
    assert len(po["items"]) == 1
    assert po["items"][0]["quantity_outstanding"] == 10
    assert po["order_date"] is not None

    assert _create(client, supplier, product, actor_id).status_code == 409


def test_create_rejects_bad_references(client, supplier, product, actor_id, db_session):
    r = client.post(
        "/v1/purchase-orders",
        json={"order_number": "PO-X", "supplier_id": str(uuid.uuid4()), "created_by": str(actor_id)},
    )
    assert r.status_code == 400

    r = client.post(
        "/v1/purchase-orders",
        json={
            "order_number": "PO-Y",
            "supplier_id": str(supplier.id),
            "items": [{"product_id": str(uuid.uuid4()), "quantity_ordered": 1, "unit_cost": "1.00"}],
            "created_by": str(actor_id),
        },
    )
    assert r.status_code == 400
    # the rejected order was not half-written
    assert client.get("/v1/purchase-orders").json()["total"] == 0

    supplier.is_active = False
    db_session.commit()
    assert _create(client, supplier, product, actor_id).status_code == 400


def test_add_item_updates_total(client, supplier, product, make_product, actor_id):
    po = _create(client, supplier, product, actor_id, status="PENDING").json()
    other = make_product("EXTRA-1")

    r = client.post(
        f"/v1/purchase-orders/{po['id']}/items",
        json={"product_id": str(other.id), "quantity_ordered": 4, "unit_cost": "1.50", "created_by": str(actor_id)},
    )
    assert r.status_code == 201, r.text
    assert len(r.json()["items"]) == 2
    assert Decimal(r.json()["total_amount"]) == Decimal("28.50")


def test_receive_purchase_order_via_api(client, supplier, product, actor_id):
    po = _create(client, supplier, product, actor_id).json()
    item_id = po["items"][0]["id"]

    r = client.post(
        f"/v1/purchase-orders/{po['id']}/receive",
        json={"items": [{"item_id": item_id, "quantity": 4}], "received_by": str(actor_id)},
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "CONFIRMED"
    assert r.json()["items"][0]["quantity_received"] == 4

    r = client.post(f"/v1/purchase-orders/{po['id']}/receive", json={"received_by": str(actor_id)})
    assert r.status_code == 200
    assert r.json()["status"] == "RECEIVED"

    stock = client.get(f"/v1/stock/product/{product.id}").json()
    assert stock["quantity_available"] == 10

    txs = client.get("/v1/stock/transactions", params={"reference_id": po["id"]}).json()
    assert txs["total"] == 2
    assert {t["reference_type"] for t in txs["data"]} == {"PURCHASE"}

    # received orders are closed
    r = client.post(f"/v1/purchase-orders/{po['id']}/receive", json={"received_by": str(actor_id)})
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidState"

    r = client.post(
        f"/v1/purchase-orders/{po['id']}/items",
        json={"product_id": str(product.id), "quantity_ordered": 1, "unit_cost": "1.00", "created_by": str(actor_id)},
    )
    assert r.status_code == 400


def test_over_receipt_via_api(client, supplier, product, actor_id):
    po = _create(client, supplier, product, actor_id).json()

    r = client.post(
        f"/v1/purchase-orders/{po['id']}/receive",
        json={"items": [{"item_id": po["items"][0]["id"], "quantity": 11}], "received_by": str(actor_id)},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidQuantity"
    assert client.get(f"/v1/stock/product/{product.id}").status_code == 404


def test_status_changes(client, supplier, product, actor_id):
    po = _create(client, supplier, product, actor_id, status="PENDING").json()

    r = client.patch(f"/v1/purchase-orders/{po['id']}", json={"status": "RECEIVED", "updated_by": str(actor_id)})
    assert r.status_code == 400

    r = client.patch(f"/v1/purchase-orders/{po['id']}", json={"status": "CANCELLED", "updated_by": str(actor_id)})
    assert r.status_code == 200
    assert r.json()["status"] == "CANCELLED"

    r = client.patch(f"/v1/purchase-orders/{po['id']}", json={"notes": "late", "updated_by": str(actor_id)})
    assert r.status_code == 400


def test_list_filters_and_stats(client, supplier, product, actor_id):
    _create(client, supplier, product, actor_id, number="PO-1", status="PENDING")
    _create(client, supplier, product, actor_id, number="PO-2")
    doomed = _create(client, supplier, product, actor_id, number="PO-3").json()

    assert client.delete(
        f"/v1/purchase-orders/{doomed['id']}", params={"deleted_by": str(actor_id)}
    ).status_code == 204
    assert client.get(f"/v1/purchase-orders/{doomed['id']}").status_code == 404

    assert client.get("/v1/purchase-orders").json()["total"] == 2
    assert client.get("/v1/purchase-orders", params={"status": "PENDING"}).json()["total"] == 1
    assert client.get("/v1/purchase-orders", params={"supplier_id": str(supplier.id)}).json()["total"] == 2

    stats = client.get("/v1/purchase-orders/stats/overview").json()
    assert stats == {"pending": 1, "confirmed": 1, "received": 0, "cancelled": 0, "total": 2}


def test_receive_with_empty_items_takes_everything(client, supplier, product, actor_id):
    po = _create(client, supplier, product, actor_id, qty=6).json()

    r = client.post(f"/v1/purchase-orders/{po['id']}/receive", json={"items": [], "received_by": str(actor_id)})
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "RECEIVED"
    assert client.get(f"/v1/stock/product/{product.id}").json()["quantity_available"] == 6
