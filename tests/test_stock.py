import threading
from datetime import datetime, timezone

from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from stockdesk.core.errors import BusinessRuleError
from stockdesk.db.base import Base
from stockdesk.models.product import Product
from stockdesk.models.stock import Stock, StockTransaction
from stockdesk.repositories import stock as stock_repositories
from stockdesk.schemas.stock import StockQuantityIn
from stockdesk.services import stock_service

API = "/api"


def _product_with_stock(client, headers, *, sku="STK-1", available=10, reorder_point=None, min_level=0):
    product_res = client.post(
        f"{API}/products",
        json={"name": f"Item {sku}", "sku": sku, "unit_price": 4, "minimum_stock_level": min_level},
        headers=headers,
    )
    assert product_res.status_code == 201, product_res.text
    product_id = product_res.json()["data"]["id"]

    stock_res = client.post(
        f"{API}/stock",
        json={"product_id": product_id, "quantity_available": available, "reorder_point": reorder_point},
        headers=headers,
    )
    assert stock_res.status_code == 201, stock_res.text
    return product_id, stock_res.json()["data"]


def _assert_total_matches(stock: dict) -> None:
    assert stock["quantity_total"] == stock["quantity_available"] + stock["quantity_reserved"]


def test_create_stock_records_opening_transaction(test_context, role_headers):
    client, session_local = test_context
    manager = role_headers["MANAGER"]
    product_id, stock = _product_with_stock(client, manager, available=12)

    assert stock["quantity_available"] == 12
    assert stock["quantity_total"] == 12

    db = session_local()
    try:
        ledger = db.execute(
            select(StockTransaction).where(StockTransaction.product_id == product_id)
        ).scalars().all()
    finally:
        db.close()
    assert len(ledger) == 1
    assert ledger[0].transaction_type == "IN"
    assert ledger[0].quantity == 12
    assert ledger[0].notes == "Initial stock creation"

    duplicate = client.post(f"{API}/stock", json={"product_id": product_id}, headers=manager)
    assert duplicate.status_code == 409
    assert duplicate.json()["message"] == "Stock already exists for this product"


def test_reserve_and_release_keep_total_constant(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    staff = role_headers["STAFF"]
    product_id, _ = _product_with_stock(client, manager, available=10)

    reserved = client.patch(f"{API}/stock/product/{product_id}/reserve", json={"quantity": 4}, headers=staff)
    assert reserved.status_code == 200, reserved.text
    stock = reserved.json()["data"]
    assert (stock["quantity_available"], stock["quantity_reserved"], stock["quantity_total"]) == (6, 4, 10)

    released = client.patch(f"{API}/stock/product/{product_id}/release", json={"quantity": 3}, headers=staff)
    assert released.status_code == 200, released.text
    stock = released.json()["data"]
    assert (stock["quantity_available"], stock["quantity_reserved"], stock["quantity_total"]) == (9, 1, 10)

    over_release = client.patch(
        f"{API}/stock/product/{product_id}/release", json={"quantity": 2}, headers=staff
    )
    assert over_release.status_code == 400
    assert over_release.json()["message"] == "Insufficient reserved stock"

    over_reserve = client.patch(
        f"{API}/stock/product/{product_id}/reserve", json={"quantity": 50}, headers=staff
    )
    assert over_reserve.status_code == 400
    assert over_reserve.json()["message"] == "Insufficient stock"

    current = client.get(f"{API}/stock/product/{product_id}", headers=staff).json()["data"]
    assert (current["quantity_available"], current["quantity_reserved"]) == (9, 1)
    _assert_total_matches(current)


def test_adjust_stock_is_signed_and_never_goes_negative(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    product_id, _ = _product_with_stock(client, manager, available=5)

    down = client.patch(
        f"{API}/stock/product/{product_id}/adjust",
        json={"quantity_change": -2, "notes": "Breakage"},
        headers=manager,
    )
    assert down.status_code == 200, down.text
    assert down.json()["data"]["quantity_available"] == 3

    too_far = client.patch(
        f"{API}/stock/product/{product_id}/adjust", json={"quantity_change": -4}, headers=manager
    )
    assert too_far.status_code == 400

    zero = client.patch(f"{API}/stock/product/{product_id}/adjust", json={"quantity_change": 0}, headers=manager)
    assert zero.status_code == 422
    assert zero.json()["error"]["code"] == "validation_error"

    staff = client.patch(
        f"{API}/stock/product/{product_id}/adjust",
        json={"quantity_change": 1},
        headers=role_headers["STAFF"],
    )
    assert staff.status_code == 403


def test_movement_on_missing_stock_row_is_not_found(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    product_res = client.post(
        f"{API}/products", json={"name": "Bare", "sku": "BARE-1", "unit_price": 1}, headers=manager
    )
    product_id = product_res.json()["data"]["id"]

    res = client.patch(f"{API}/stock/product/{product_id}/reserve", json={"quantity": 1}, headers=manager)
    assert res.status_code == 404
    assert res.json()["message"] == f"Stock not found for product {product_id}"


def test_set_stock_levels_keeps_total_in_step(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    product_id, _ = _product_with_stock(client, manager, available=5)

    res = client.put(
        f"{API}/stock/product/{product_id}",
        json={"quantity_reserved": 2, "reorder_point": 3},
        headers=manager,
    )
    assert res.status_code == 200, res.text
    stock = res.json()["data"]
    assert (stock["quantity_available"], stock["quantity_reserved"], stock["quantity_total"]) == (5, 2, 7)
    assert stock["reorder_point"] == 3


def test_record_transaction_creates_stock_row_and_ledger_filters(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    product_res = client.post(
        f"{API}/products", json={"name": "Fresh", "sku": "FRESH-1", "unit_price": 1}, headers=manager
    )
    product_id = product_res.json()["data"]["id"]

    received = client.post(
        f"{API}/stock/transactions",
        json={
            "product_id": product_id,
            "transaction_type": "IN",
            "quantity": 8,
            "reference_type": "PURCHASE",
            "reference_id": "po-1",
        },
        headers=manager,
    )
    assert received.status_code == 201, received.text
    assert received.json()["data"]["stock"]["quantity_available"] == 8

    sold = client.post(
        f"{API}/stock/transactions",
        json={"product_id": product_id, "transaction_type": "OUT", "quantity": 3, "reference_type": "SALE"},
        headers=manager,
    )
    assert sold.status_code == 201, sold.text
    assert sold.json()["data"]["stock"]["quantity_total"] == 5

    negative = client.post(
        f"{API}/stock/transactions",
        json={"product_id": product_id, "transaction_type": "OUT", "quantity": -1},
        headers=manager,
    )
    assert negative.status_code == 422

    oversell = client.post(
        f"{API}/stock/transactions",
        json={"product_id": product_id, "transaction_type": "OUT", "quantity": 6},
        headers=manager,
    )
    assert oversell.status_code == 400

    only_sales = client.get(
        f"{API}/stock/transactions?transaction_type=OUT", headers=role_headers["STAFF"]
    ).json()["data"]
    assert only_sales["pagination"]["total"] == 1
    assert only_sales["items"][0]["reference_type"] == "SALE"

    ledger = client.get(
        f"{API}/stock/transactions/product/{product_id}", headers=role_headers["STAFF"]
    ).json()["data"]
    assert ledger["pagination"]["total"] == 2

    bad_range = client.get(
        f"{API}/stock/transactions?start_date=2026-02-10&end_date=2026-02-01",
        headers=role_headers["STAFF"],
    )
    assert bad_range.status_code == 400


def test_opening_reservation_is_recorded_in_ledger(test_context, role_headers):
    client, session_local = test_context
    manager = role_headers["MANAGER"]
    product_res = client.post(
        f"{API}/products", json={"name": "Held item", "sku": "HLD-1", "unit_price": 4}, headers=manager
    )
    assert product_res.status_code == 201, product_res.text
    product_id = product_res.json()["data"]["id"]

    stock_res = client.post(
        f"{API}/stock",
        json={"product_id": product_id, "quantity_available": 7, "quantity_reserved": 3},
        headers=manager,
    )
    assert stock_res.status_code == 201, stock_res.text
    _assert_total_matches(stock_res.json()["data"])

    db = session_local()
    try:
        ledger = db.execute(
            select(StockTransaction)
            .where(StockTransaction.product_id == product_id)
            .order_by(StockTransaction.created_at)
        ).scalars().all()
    finally:
        db.close()
    assert [(t.transaction_type, t.quantity) for t in ledger] == [("IN", 10), ("RESERVED", 3)]

    available = reserved = 0
    for entry in ledger:
        delta_available, delta_reserved = stock_service.movement_deltas(entry.transaction_type, entry.quantity)
        available += delta_available
        reserved += delta_reserved
    assert (available, reserved) == (7, 3)


def test_ledger_rows_from_one_session_keep_write_order(test_context, role_headers, monkeypatch):
    client, session_local = test_context
    manager = role_headers["MANAGER"]
    product_id, _ = _product_with_stock(client, manager, sku="ORD-1", available=0)

    # A frozen clock, as on Postgres where now() is fixed for the transaction.
    frozen = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)
    monkeypatch.setattr(stock_repositories, "utcnow", lambda: frozen)

    db = session_local()
    try:
        written = [
            stock_service.add_transaction(
                db, product_id=product_id, transaction_type="IN", quantity=qty, actor_id="tester"
            ).id
            for qty in (1, 2, 3)
        ]
        stamps = [db.get(StockTransaction, tx_id).created_at for tx_id in written]
        assert stamps[0] < stamps[1] < stamps[2]

        page = stock_service.list_transactions(db, product_id=product_id, transaction_type="IN")
        assert [t.id for t in page.items] == list(reversed(written))
        db.rollback()
    finally:
        db.close()


def test_low_stock_uses_reorder_point_then_minimum_level(test_context, role_headers):
    client, _ = test_context
    manager = role_headers["MANAGER"]
    staff = role_headers["STAFF"]
    _product_with_stock(client, manager, sku="LOW-1", available=2, reorder_point=5)
    _product_with_stock(client, manager, sku="LOW-2", available=3, min_level=3)
    _product_with_stock(client, manager, sku="OK-1", available=40, reorder_point=5)

    low = client.get(f"{API}/stock/low-stock", headers=staff)
    assert low.status_code == 200, low.text
    assert [s["sku"] for s in low.json()["data"]] == ["LOW-1", "LOW-2"]
    assert all(s["is_low_stock"] for s in low.json()["data"])

    with_threshold = client.get(f"{API}/stock/low-stock?threshold=50", headers=staff)
    assert len(with_threshold.json()["data"]) == 3

    listed = client.get(f"{API}/stock?low_stock=false", headers=staff).json()["data"]
    assert [s["sku"] for s in listed["items"]] == ["OK-1"]


def test_concurrent_reservations_cannot_oversell(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'stock.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = session_local()
    db.add(Product(id="p-1", name="Hot item", sku="HOT-1", unit_price=1, created_by="seed"))
    db.add(Stock(id="s-1", product_id="p-1", quantity_available=5, quantity_total=5, created_by="seed"))
    db.commit()
    db.close()

    outcomes = []
    lock = threading.Lock()

    def reserve_one():
        session = session_local()
        try:
            stock_service.reserve_stock(
                session, product_id="p-1", payload=StockQuantityIn(quantity=1), actor_id="worker"
            )
            session.commit()
            result = "ok"
        except BusinessRuleError:
            session.rollback()
            result = "insufficient"
        finally:
            session.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=reserve_one) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("ok") == 5
    assert outcomes.count("insufficient") == 3

    db = session_local()
    try:
        stock = db.execute(select(Stock).where(Stock.product_id == "p-1")).scalar_one()
        assert (stock.quantity_available, stock.quantity_reserved, stock.quantity_total) == (0, 5, 5)
    finally:
        db.close()
    engine.dispose()
