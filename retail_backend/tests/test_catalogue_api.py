import uuid


def _category(client, actor_id, name="Snacks", **extra):
    return client.post("/v1/categories", json={"name": name, "created_by": str(actor_id), **extra})


def _product(client, actor_id, sku="SNK-001", **extra):
    body = {
        "name": "Salted Crisps 150g",
        "sku": sku,
        "unit_price": "2.10",
        "minimum_stock_level": 5,
        "created_by": str(actor_id),
    }
    body.update(extra)
    return client.post("/v1/products", json=body)


# ---------- categories ----------
def test_category_crud(client, actor_id):
    r = _category(client, actor_id, description="Savoury")
    assert r.status_code == 201, r.text
    cat = r.json()

    assert _category(client, actor_id, name="snacks").status_code == 409

    r = client.patch(
        f"/v1/categories/{cat['id']}",
        json={"description": "Savoury snacks", "updated_by": str(actor_id)},
    )
    assert r.status_code == 200
    assert r.json()["description"] == "Savoury snacks"
    assert r.json()["updated_by"] == str(actor_id)

    r = client.delete(f"/v1/categories/{cat['id']}", params={"deleted_by": str(actor_id)})
    assert r.status_code == 204
    assert client.get(f"/v1/categories/{cat['id']}").status_code == 404
    assert client.get("/v1/categories").json()["total"] == 0
    assert client.get("/v1/categories", params={"with_deleted": True}).json()["total"] == 1

    r = client.patch(f"/v1/categories/{cat['id']}/restore", params={"restored_by": str(actor_id)})
    assert r.status_code == 200
    assert r.json()["deleted_at"] is None


def test_active_categories(client, actor_id):
    _category(client, actor_id, name="Dairy")
    _category(client, actor_id, name="Frozen", is_active=False)

    names = [c["name"] for c in client.get("/v1/categories/active").json()]
    assert names == ["Dairy"]
    assert client.get("/v1/categories", params={"search": "fro"}).json()["total"] == 1


# ---------- products ----------
def test_product_crud(client, category, actor_id):
    r = _product(client, actor_id, category_id=str(category.id), barcode="5000112637922")
    assert r.status_code == 201, r.text
    p = r.json()
    assert p["minimum_stock_level"] == 5

    assert client.get("/v1/products/sku/SNK-001").json()["id"] == p["id"]
    assert client.get("/v1/products/barcode/5000112637922").json()["id"] == p["id"]
    assert client.get("/v1/products/sku/NOPE").status_code == 404

    r = client.patch(
        f"/v1/products/{p['id']}",
        json={"unit_price": "2.25", "updated_by": str(actor_id)},
    )
    assert r.status_code == 200
    assert r.json()["unit_price"] == "2.25"

    r = client.delete(f"/v1/products/{p['id']}", params={"deleted_by": str(actor_id)})
    assert r.status_code == 204
    assert client.get(f"/v1/products/{p['id']}").status_code == 404
    assert client.get(f"/v1/products/{p['id']}", params={"with_deleted": True}).status_code == 200

    r = client.patch(f"/v1/products/{p['id']}/restore", params={"restored_by": str(actor_id)})
    assert r.status_code == 200


def test_product_uniqueness(client, actor_id):
    assert _product(client, actor_id, barcode="111").status_code == 201
    r = _product(client, actor_id)
    assert r.status_code == 409
    assert r.json()["detail"] == "SKU already exists"

    r = _product(client, actor_id, sku="SNK-002", barcode="111")
    assert r.status_code == 409
    assert r.json()["detail"] == "Barcode already exists"


def test_product_category_must_be_active(client, actor_id):
    inactive = _category(client, actor_id, name="Archive", is_active=False).json()

    r = _product(client, actor_id, category_id=inactive["id"])
    assert r.status_code == 400

    r = _product(client, actor_id, category_id=str(uuid.uuid4()))
    assert r.status_code == 400


def test_product_list_filters(client, category, actor_id):
    _product(client, actor_id, sku="A-1", name="Apple Juice", category_id=str(category.id))
    _product(client, actor_id, sku="A-2", name="Orange Juice", category_id=str(category.id))
    _product(client, actor_id, sku="B-1", name="Rye Bread", is_active=False)

    assert client.get("/v1/products", params={"search": "juice"}).json()["total"] == 2
    assert client.get("/v1/products", params={"category_id": str(category.id)}).json()["total"] == 2
    assert client.get("/v1/products", params={"is_active": False}).json()["total"] == 1

    page = client.get("/v1/products", params={"page": 2, "limit": 2}).json()
    assert page["total"] == 3
    assert [p["sku"] for p in page["data"]] == ["B-1"]

    assert client.get("/v1/products", params={"limit": 1000}).status_code == 422


# ---------- suppliers ----------
def test_supplier_crud(client, actor_id):
    r = client.post(
        "/v1/suppliers",
        json={"name": "Fresh Farms", "email": "sales@freshfarms.com", "created_by": str(actor_id)},
    )
    assert r.status_code == 201, r.text
    s = r.json()

    r = client.post("/v1/suppliers", json={"name": "Fresh Farms", "created_by": str(actor_id)})
    assert r.status_code == 409

    r = client.post("/v1/suppliers", json={"name": "Bad Mail", "email": "nope", "created_by": str(actor_id)})
    assert r.status_code == 422

    r = client.patch(f"/v1/suppliers/{s['id']}", json={"phone": "+33 1 23 45 67 89", "updated_by": str(actor_id)})
    assert r.json()["phone"] == "+33 1 23 45 67 89"

    assert client.get("/v1/suppliers", params={"name": "fresh"}).json()["total"] == 1

    assert client.delete(f"/v1/suppliers/{s['id']}", params={"deleted_by": str(actor_id)}).status_code == 204
    assert client.get(f"/v1/suppliers/{s['id']}").status_code == 404

    r = client.post(f"/v1/suppliers/{s['id']}/restore", params={"restored_by": str(actor_id)})
    assert r.status_code == 200
    assert client.get(f"/v1/suppliers/{s['id']}").status_code == 200
