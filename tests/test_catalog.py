from datetime import datetime, timezone

from sqlalchemy import select

from stockdesk.models.product import Product

API = "/api"


def _create_category(client, headers, name="Beverages", **extra):
    res = client.post(f"{API}/categories", json={"name": name, **extra}, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]


def _create_product(client, headers, sku="BEV-001", **extra):
    body = {"name": f"Product {sku}", "sku": sku, "unit_price": 2.5, **extra}
    res = client.post(f"{API}/products", json=body, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]


def test_category_create_wraps_response_in_envelope(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]

    res = client.post(
        f"{API}/categories",
        json={"name": "  Beverages ", "description": "Drinks"},
        headers=manager,
    )
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["statusCode"] == 201
    assert body["success"] is True
    assert body["message"] == "Category created successfully"
    assert body["data"]["name"] == "Beverages"
    assert body["data"]["is_active"] is True
    assert body["data"]["created_by"]


def test_category_name_is_unique_case_insensitive(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    _create_category(client, manager, "Beverages")

    duplicate = client.post(f"{API}/categories", json={"name": "beverages"}, headers=manager)
    assert duplicate.status_code == 409, duplicate.text
    body = duplicate.json()
    assert body["success"] is False
    assert body["message"] == "Category name already exists"
    assert body["error"]["code"] == "conflict"


def test_category_soft_delete_restore_and_with_deleted(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    admin = role_headers["ADMIN"]
    category = _create_category(client, manager, "Snacks")

    deleted = client.delete(f"{API}/categories/{category['id']}", headers=manager)
    assert deleted.status_code == 200, deleted.text
    assert deleted.json()["data"]["deleted_at"] is not None

    missing = client.get(f"{API}/categories/{category['id']}", headers=manager)
    assert missing.status_code == 404

    # Only admins see soft-deleted rows.
    staff_view = client.get(f"{API}/categories?withDeleted=true", headers=role_headers["STAFF"])
    assert staff_view.json()["data"]["pagination"]["total"] == 0
    admin_view = client.get(f"{API}/categories?withDeleted=true", headers=admin)
    assert admin_view.json()["data"]["pagination"]["total"] == 1

    forbidden = client.patch(f"{API}/categories/{category['id']}/restore", headers=manager)
    assert forbidden.status_code == 403

    restored = client.patch(f"{API}/categories/{category['id']}/restore", headers=admin)
    assert restored.status_code == 200, restored.text
    assert restored.json()["data"]["deleted_at"] is None

    again = client.patch(f"{API}/categories/{category['id']}/restore", headers=admin)
    assert again.status_code == 200


def test_category_in_use_cannot_be_soft_deleted_but_purge_detaches_products(test_context, role_headers):
    client, session_local = test_context
    manager = role_headers["MANAGER"]
    admin = role_headers["ADMIN"]
    category = _create_category(client, manager, "Dairy")
    product = _create_product(client, manager, sku="DAI-001", category_id=category["id"])
    assert product["category"]["name"] == "Dairy"

    blocked = client.delete(f"{API}/categories/{category['id']}", headers=manager)
    assert blocked.status_code == 400
    assert blocked.json()["message"] == "Category has products assigned"

    purged = client.delete(f"{API}/categories/{category['id']}/purge", headers=admin)
    assert purged.status_code == 200, purged.text
    assert purged.json()["data"] is None

    db = session_local()
    try:
        row = db.execute(select(Product).where(Product.id == product["id"])).scalar_one()
        assert row.category_id is None
    finally:
        db.close()


def test_category_list_paginates_and_sorts(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    for name in ("Cereal", "Bakery", "Audio"):
        _create_category(client, manager, name)

    res = client.get(
        f"{API}/categories?page=1&limit=2&sortBy=name&sortOrder=asc",
        headers=role_headers["STAFF"],
    )
    assert res.status_code == 200, res.text
    data = res.json()["data"]
    assert [c["name"] for c in data["items"]] == ["Audio", "Bakery"]
    assert data["pagination"] == {
        "total": 3,
        "page": 1,
        "limit": 2,
        "total_pages": 2,
        "count": 2,
        "has_next": True,
    }

    search = client.get(f"{API}/categories/search?q=ake", headers=role_headers["STAFF"])
    assert [c["name"] for c in search.json()["data"]] == ["Bakery"]

    count = client.get(f"{API}/categories/stats/count", headers=role_headers["STAFF"])
    assert count.json()["data"] == {"count": 3}


def test_product_sku_and_barcode_conflicts(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    first = _create_product(client, manager, sku="SKU-1", barcode="600100")

    sku_clash = client.post(
        f"{API}/products",
        json={"name": "Other", "sku": "sku-1", "unit_price": 1},
        headers=manager,
    )
    assert sku_clash.status_code == 409
    assert sku_clash.json()["message"] == "Product SKU already exists"

    barcode_clash = client.post(
        f"{API}/products",
        json={"name": "Other", "sku": "SKU-2", "barcode": "600100", "unit_price": 1},
        headers=manager,
    )
    assert barcode_clash.status_code == 409
    assert barcode_clash.json()["message"] == "Product barcode already exists"

    second = _create_product(client, manager, sku="SKU-3")
    update_clash = client.patch(
        f"{API}/products/{second['id']}",
        json={"sku": "SKU-1"},
        headers=manager,
    )
    assert update_clash.status_code == 409

    # A soft-deleted product still holds its SKU.
    client.delete(f"{API}/products/{first['id']}", headers=manager)
    reuse = client.post(
        f"{API}/products",
        json={"name": "Reuse", "sku": "SKU-1", "unit_price": 1},
        headers=manager,
    )
    assert reuse.status_code == 409


def test_product_rejects_inactive_category(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    category = _create_category(client, manager, "Retired", is_active=False)

    res = client.post(
        f"{API}/products",
        json={"name": "Old", "sku": "OLD-1", "unit_price": 1, "category_id": category["id"]},
        headers=manager,
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Category is not active"


def test_product_lookups_and_filters(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    staff = role_headers["STAFF"]
    category = _create_category(client, manager, "Water")
    _create_product(client, manager, sku="WAT-500", barcode="111", unit_price=1.5, category_id=category["id"])
    _create_product(client, manager, sku="WAT-750", unit_price=3)
    _create_product(client, manager, sku="JUI-100", unit_price=5, is_active=False)

    by_sku = client.get(f"{API}/products/sku/wat-500", headers=staff)
    assert by_sku.status_code == 200, by_sku.text
    assert by_sku.json()["data"]["barcode"] == "111"

    by_barcode = client.get(f"{API}/products/barcode/111", headers=staff)
    assert by_barcode.json()["data"]["sku"] == "WAT-500"

    assert client.get(f"{API}/products/barcode/999", headers=staff).status_code == 404

    priced = client.get(f"{API}/products?min_price=2&max_price=4", headers=staff)
    assert [p["sku"] for p in priced.json()["data"]["items"]] == ["WAT-750"]

    bad_range = client.get(f"{API}/products?min_price=5&max_price=1", headers=staff)
    assert bad_range.status_code == 400

    search = client.get(f"{API}/products/search?q=wat", headers=staff)
    assert sorted(p["sku"] for p in search.json()["data"]) == ["WAT-500", "WAT-750"]

    active = client.get(f"{API}/products/active", headers=staff)
    assert len(active.json()["data"]) == 2

    in_category = client.get(f"{API}/products/category/{category['id']}", headers=staff)
    assert [p["sku"] for p in in_category.json()["data"]] == ["WAT-500"]


def test_product_purge_is_admin_only(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    product = _create_product(client, manager, sku="TMP-1")

    assert client.delete(f"{API}/products/{product['id']}/purge", headers=manager).status_code == 403

    purged = client.delete(f"{API}/products/{product['id']}/purge", headers=role_headers["ADMIN"])
    assert purged.status_code == 200, purged.text
    assert client.get(
        f"{API}/products/{product['id']}?withDeleted=true", headers=role_headers["ADMIN"]
    ).status_code == 404


def test_staff_cannot_write_catalog(test_context, role_headers):
    client, _ = test_context
    res = client.post(f"{API}/categories", json={"name": "Nope"}, headers=role_headers["STAFF"])
    assert res.status_code == 403
    assert res.json()["message"] == "Insufficient role for this action"


def test_product_partial_update_refreshes_updated_at(test_context, role_headers):
    client, session_local = test_context
    manager = role_headers["MANAGER"]
    product = _create_product(
        client, manager, sku="UPD-001", barcode="4006381333931", description="Still water", unit_price=4.2
    )

    db = session_local()
    try:
        row = db.execute(select(Product).where(Product.id == product["id"])).scalar_one()
        row.updated_at = datetime(2020, 1, 1, tzinfo=timezone.utc)
        db.commit()
    finally:
        db.close()

    res = client.patch(f"{API}/products/{product['id']}", json={"name": "Renamed"}, headers=manager)
    assert res.status_code == 200, res.text
    data = res.json()["data"]
    assert data["name"] == "Renamed"
    assert data["sku"] == "UPD-001"
    assert data["barcode"] == "4006381333931"
    assert data["description"] == "Still water"
    assert data["unit_price"] == 4.2
    assert data["updated_by"] == data["created_by"]
    assert not data["updated_at"].startswith("2020-01-01")


def test_product_soft_delete_and_restore(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    admin = role_headers["ADMIN"]
    product = _create_product(client, manager, sku="DEL-001")
    _create_product(client, manager, sku="KEEP-001")

    deleted = client.delete(f"{API}/products/{product['id']}", headers=manager)
    assert deleted.status_code == 200, deleted.text
    assert deleted.json()["data"]["deleted_at"] is not None

    assert client.get(f"{API}/products/{product['id']}", headers=manager).status_code == 404
    assert client.get(f"{API}/products/sku/DEL-001", headers=manager).status_code == 404
    live = client.get(f"{API}/products", headers=manager).json()["data"]
    assert [p["sku"] for p in live["items"]] == ["KEEP-001"]

    # withDeleted is honoured for admins only.
    staff_view = client.get(f"{API}/products?withDeleted=true", headers=role_headers["STAFF"])
    assert staff_view.json()["data"]["pagination"]["total"] == 1
    admin_view = client.get(f"{API}/products?withDeleted=true", headers=admin)
    assert admin_view.json()["data"]["pagination"]["total"] == 2
    by_id = client.get(f"{API}/products/{product['id']}?withDeleted=true", headers=admin)
    assert by_id.status_code == 200, by_id.text

    # A deleted product still holds its SKU.
    clash = client.post(
        f"{API}/products", json={"name": "Again", "sku": "del-001", "unit_price": 1}, headers=manager
    )
    assert clash.status_code == 409

    assert client.patch(f"{API}/products/{product['id']}/restore", headers=manager).status_code == 403
    restored = client.patch(f"{API}/products/{product['id']}/restore", headers=admin)
    assert restored.status_code == 200, restored.text
    assert restored.json()["data"]["deleted_at"] is None
    assert client.get(f"{API}/products/{product['id']}", headers=manager).status_code == 200
