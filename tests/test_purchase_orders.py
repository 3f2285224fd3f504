import re

from sqlalchemy import select

from stockdesk.models.stock import Stock, StockTransaction

API = "/api"


def _supplier(client, headers, name="Acme Wholesale", **extra):
    res = client.post(f"{API}/suppliers", json={"name": name, **extra}, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]


def _product(client, headers, sku):
    res = client.post(
        f"{API}/products",
        json={"name": f"Item {sku}", "sku": sku, "unit_price": 3},
        headers=headers,
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]


def _confirmed_order(client, headers, supplier_id, lines):
    res = client.post(
        f"{API}/purchase-orders",
        json={
            "supplier_id": supplier_id,
            "status": "CONFIRMED",
            "items": [
                {"product_id": product_id, "quantity_ordered": qty, "unit_cost": cost}
                for product_id, qty, cost in lines
            ],
        },
        headers=headers,
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]


def test_create_purchase_order_generates_number_and_total(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    supplier = _supplier(client, manager)
    water = _product(client, manager, "WAT-1")
    juice = _product(client, manager, "JUI-1")

    order = _confirmed_order(
        client, manager, supplier["id"], [(water["id"], 10, 1.25), (juice["id"], 4, 2.5)]
    )

    assert re.fullmatch(r"PO-\d{8}-[A-Z0-9]{6}", order["order_number"])
    assert order["total_amount"] == 22.5
    assert order["supplier"]["name"] == "Acme Wholesale"
    assert sorted(i["total_cost"] for i in order["items"]) == [10.0, 12.5]
    assert all(i["quantity_received"] == 0 for i in order["items"])


def test_create_purchase_order_checks_supplier(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]

    missing = client.post(f"{API}/purchase-orders", json={"supplier_id": "nope"}, headers=manager)
    assert missing.status_code == 404
    assert missing.json()["message"] == "Supplier not found"

    inactive = _supplier(client, manager, "Dormant Ltd", is_active=False)
    res = client.post(f"{API}/purchase-orders", json={"supplier_id": inactive["id"]}, headers=manager)
    assert res.status_code == 409
    assert res.json()["message"] == "Supplier is not active"

    supplier = _supplier(client, manager, "Live Ltd")
    first = client.post(
        f"{API}/purchase-orders",
        json={"supplier_id": supplier["id"], "order_number": "PO-FIXED-1"},
        headers=manager,
    )
    assert first.status_code == 201, first.text
    clash = client.post(
        f"{API}/purchase-orders",
        json={"supplier_id": supplier["id"], "order_number": "PO-FIXED-1"},
        headers=manager,
    )
    assert clash.status_code == 409


def test_partial_then_full_receipt_moves_stock(test_context, role_headers):
    client, session_local = test_context
    manager = role_headers["MANAGER"]
    supplier = _supplier(client, manager)
    product = _product(client, manager, "RCV-1")
    order = _confirmed_order(client, manager, supplier["id"], [(product["id"], 10, 1)])
    item_id = order["items"][0]["id"]

    partial = client.post(
        f"{API}/purchase-orders/{order['id']}/receive",
        json={"items": [{"item_id": item_id, "quantity": 4}], "notes": "First pallet"},
        headers=manager,
    )
    assert partial.status_code == 200, partial.text
    assert partial.json()["data"]["status"] == "CONFIRMED"
    assert partial.json()["data"]["items"][0]["quantity_received"] == 4

    stock = client.get(f"{API}/stock/product/{product['id']}", headers=manager).json()["data"]
    assert stock["quantity_available"] == 4

    too_many = client.post(
        f"{API}/purchase-orders/{order['id']}/receive",
        json={"items": [{"item_id": item_id, "quantity": 7}]},
        headers=manager,
    )
    assert too_many.status_code == 400
    assert too_many.json()["message"] == "Received quantity exceeds ordered quantity"

    rest = client.post(f"{API}/purchase-orders/{order['id']}/receive", headers=manager)
    assert rest.status_code == 200, rest.text
    assert rest.json()["data"]["status"] == "RECEIVED"

    db = session_local()
    try:
        stock_row = db.execute(select(Stock).where(Stock.product_id == product["id"])).scalar_one()
        ledger = db.execute(
            select(StockTransaction).where(
                StockTransaction.reference_type == "PURCHASE",
                StockTransaction.reference_id == order["id"],
            )
        ).scalars().all()
    finally:
        db.close()
    assert stock_row.quantity_available == 10
    assert stock_row.quantity_total == 10
    assert sorted(t.quantity for t in ledger) == [4, 6]

    again = client.post(f"{API}/purchase-orders/{order['id']}/receive", headers=manager)
    assert again.status_code == 400


def test_failed_receipt_leaves_nothing_behind(test_context, role_headers):
    client, session_local = test_context
    manager = role_headers["MANAGER"]
    supplier = _supplier(client, manager)
    first = _product(client, manager, "ATM-1")
    second = _product(client, manager, "ATM-2")
    order = _confirmed_order(client, manager, supplier["id"], [(first["id"], 5, 1), (second["id"], 2, 1)])
    first_item, second_item = (i["id"] for i in order["items"])

    res = client.post(
        f"{API}/purchase-orders/{order['id']}/receive",
        json={
            "items": [
                {"item_id": first_item, "quantity": 5},
                {"item_id": second_item, "quantity": 3},
            ]
        },
        headers=manager,
    )
    assert res.status_code == 400, res.text

    fetched = client.get(f"{API}/purchase-orders/{order['id']}", headers=manager).json()["data"]
    assert [i["quantity_received"] for i in fetched["items"]] == [0, 0]

    db = session_local()
    try:
        assert db.execute(select(Stock)).scalars().all() == []
        assert db.execute(select(StockTransaction)).scalars().all() == []
    finally:
        db.close()


def test_only_confirmed_orders_can_be_received(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    supplier = _supplier(client, manager)
    product = _product(client, manager, "PEN-1")
    pending = client.post(
        f"{API}/purchase-orders",
        json={
            "supplier_id": supplier["id"],
            "items": [{"product_id": product["id"], "quantity_ordered": 1, "unit_cost": 1}],
        },
        headers=manager,
    ).json()["data"]

    res = client.post(f"{API}/purchase-orders/{pending['id']}/receive", headers=manager)
    assert res.status_code == 400
    assert res.json()["message"] == "Only confirmed purchase orders can be received"

    direct = client.patch(
        f"{API}/purchase-orders/{pending['id']}", json={"status": "RECEIVED"}, headers=manager
    )
    assert direct.status_code == 400


def test_cancelled_order_is_locked(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    supplier = _supplier(client, manager)
    product = _product(client, manager, "CAN-1")
    order = _confirmed_order(client, manager, supplier["id"], [(product["id"], 3, 2)])

    cancelled = client.patch(
        f"{API}/purchase-orders/{order['id']}", json={"status": "CANCELLED"}, headers=manager
    )
    assert cancelled.status_code == 200, cancelled.text

    add_item = client.post(
        f"{API}/purchase-orders/{order['id']}/items",
        json={"product_id": product["id"], "quantity_ordered": 1, "unit_cost": 1},
        headers=manager,
    )
    assert add_item.status_code == 400
    assert add_item.json()["message"] == "Received or cancelled purchase orders cannot be modified"


def test_short_shipment_closes_order_when_item_is_trimmed(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    supplier = _supplier(client, manager)
    product = _product(client, manager, "SHT-1")
    order = _confirmed_order(client, manager, supplier["id"], [(product["id"], 10, 2)])
    item_id = order["items"][0]["id"]

    partial = client.post(
        f"{API}/purchase-orders/{order['id']}/receive",
        json={"items": [{"item_id": item_id, "quantity": 6}]},
        headers=manager,
    )
    assert partial.status_code == 200, partial.text
    assert partial.json()["data"]["status"] == "CONFIRMED"

    trimmed = client.patch(
        f"{API}/purchase-orders/items/{item_id}", json={"quantity_ordered": 6}, headers=manager
    )
    assert trimmed.status_code == 200, trimmed.text

    fetched = client.get(f"{API}/purchase-orders/{order['id']}", headers=manager).json()["data"]
    assert fetched["status"] == "RECEIVED"
    assert fetched["total_amount"] == 12.0
    assert [(i["quantity_ordered"], i["quantity_received"]) for i in fetched["items"]] == [(6, 6)]

    stock = client.get(f"{API}/stock/product/{product['id']}", headers=manager).json()["data"]
    assert stock["quantity_available"] == 6


def test_removing_last_outstanding_item_closes_order(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    supplier = _supplier(client, manager)
    arrived = _product(client, manager, "ARR-1")
    backordered = _product(client, manager, "BKO-1")
    order = _confirmed_order(
        client, manager, supplier["id"], [(arrived["id"], 3, 1), (backordered["id"], 5, 1)]
    )
    items = {i["product_id"]: i["id"] for i in order["items"]}

    received = client.post(
        f"{API}/purchase-orders/{order['id']}/receive",
        json={"items": [{"item_id": items[arrived["id"]], "quantity": 3}]},
        headers=manager,
    )
    assert received.status_code == 200, received.text
    assert received.json()["data"]["status"] == "CONFIRMED"

    removed = client.delete(f"{API}/purchase-orders/items/{items[backordered['id']]}", headers=manager)
    assert removed.status_code == 200, removed.text

    fetched = client.get(f"{API}/purchase-orders/{order['id']}", headers=manager).json()["data"]
    assert fetched["status"] == "RECEIVED"
    assert fetched["total_amount"] == 3.0

    locked = client.post(f"{API}/purchase-orders/{order['id']}/receive", headers=manager)
    assert locked.status_code == 400


def test_item_changes_recalculate_order_total(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    supplier = _supplier(client, manager)
    product = _product(client, manager, "ITM-1")
    order = _confirmed_order(client, manager, supplier["id"], [(product["id"], 2, 5)])

    added = client.post(
        f"{API}/purchase-orders/{order['id']}/items",
        json={"product_id": product["id"], "quantity_ordered": 1, "unit_cost": 7},
        headers=manager,
    )
    assert added.status_code == 201, added.text
    new_item_id = added.json()["data"]["id"]

    updated = client.patch(
        f"{API}/purchase-orders/items/{order['items'][0]['id']}",
        json={"quantity_ordered": 4},
        headers=manager,
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["data"]["total_cost"] == 20.0

    removed = client.delete(f"{API}/purchase-orders/items/{new_item_id}", headers=manager)
    assert removed.status_code == 200, removed.text

    fetched = client.get(f"{API}/purchase-orders/{order['id']}", headers=manager).json()["data"]
    assert fetched["total_amount"] == 20.0
    assert len(fetched["items"]) == 1


def test_purchase_order_stats_and_supplier_history(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    supplier = _supplier(client, manager)
    client.post(f"{API}/purchase-orders", json={"supplier_id": supplier["id"]}, headers=manager)
    client.post(
        f"{API}/purchase-orders",
        json={"supplier_id": supplier["id"], "status": "CONFIRMED"},
        headers=manager,
    )

    stats = client.get(f"{API}/purchase-orders/stats/overview", headers=manager).json()["data"]
    assert stats == {"total": 2, "pending": 1, "confirmed": 1, "received": 0, "cancelled": 0}

    history = client.get(
        f"{API}/purchase-orders/supplier/{supplier['id']}?limit=500", headers=role_headers["STAFF"]
    )
    assert history.status_code == 200, history.text
    assert len(history.json()["data"]) == 2

    filtered = client.get(
        f"{API}/purchase-orders?status=PENDING", headers=role_headers["STAFF"]
    ).json()["data"]
    assert filtered["pagination"]["total"] == 1
