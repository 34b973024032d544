from datetime import date
from decimal import Decimal

from crud import stock_sync
from crud import stock_transactions as crud_stock_transactions
from models.orders import Order
from models.raw_material_deductions import RawMaterialDeduction
from models.stock_transactions import StockTransaction


def test_initialize_writes_opening_entries_once(db_session, make_material):
    make_material("Cotton White", opening_stock="500")
    make_material("Zip", opening_stock="0")

    result = stock_sync.initialize_ledger(db_session, "admin@example.com")
    assert result == {"inserted": 1, "already_initialized": False}

    entry = db_session.query(StockTransaction).one()
    assert entry.source_type == "opening_stock"
    assert entry.transaction_type == "in"
    assert entry.quantity == Decimal("500")
    assert entry.transaction_date == date(2000, 1, 1)

    again = stock_sync.initialize_ledger(db_session, "admin@example.com")
    assert again == {"inserted": 0, "already_initialized": True}
    assert db_session.query(StockTransaction).count() == 1


def test_initialize_falls_back_to_current_stock(db_session, make_material):
    zip_material = make_material("Zip", opening_stock="0")
    zip_material.current_stock = Decimal("40")
    db_session.commit()

    stock_sync.initialize_ledger(db_session, "admin@example.com")
    assert db_session.query(StockTransaction).one().quantity == Decimal("40")


def test_initialize_does_not_double_count(db_session, make_material):
    material = make_material("Cotton White", opening_stock="500")
    stock_sync.initialize_ledger(db_session, "admin@example.com")

    result = stock_sync.reconcile_stock_cache(db_session)
    assert result["drift"] == []
    db_session.refresh(material)
    assert material.current_stock == Decimal("500")


def _legacy_order(db_session, number, material_name, quantity, material_id=None):
    order = Order(order_number=number, order_date=date(2023, 6, 1), status="completed")
    order.deductions.append(RawMaterialDeduction(
        material_id=material_id, material_name=material_name,
        quantity=Decimal(quantity), rate=Decimal("1"), amount=Decimal(quantity),
    ))
    db_session.add(order)
    db_session.commit()
    return order


def test_sync_backfills_historic_deductions_once(db_session, make_material):
    thread = make_material("Thread White", opening_stock="100")
    order = _legacy_order(db_session, "SG/100", "THREAD WHITE", "12")
    _legacy_order(db_session, "SG/101", "Gold Lace", "4")

    result = stock_sync.sync_order_ledger(db_session, "admin@example.com")
    assert result["synced"] == 1
    assert result["unresolved"] == [{"order_number": "SG/101", "material_name": "Gold Lace"}]

    entry = db_session.query(StockTransaction).filter(StockTransaction.order_id == order.id).one()
    assert entry.transaction_type == "out"
    assert entry.reason_type == "used_in_order"
    assert entry.transaction_date == date(2023, 6, 1)
    assert entry.remarks == "Order deduction backfill - SG/100"

    # The historic deduction already reduced the cache when it was saved
    db_session.refresh(thread)
    assert thread.current_stock == Decimal("100")

    again = stock_sync.sync_order_ledger(db_session, "admin@example.com")
    assert again["synced"] == 0
    assert again["skipped_orders"] == 1
    assert db_session.query(StockTransaction).filter(StockTransaction.order_id == order.id).count() == 1


def test_normalize_rewrites_legacy_types(db_session, make_material):
    material = make_material("Button")
    for tx_type in ("add", " Stock_Out ", "in", "transfer"):
        db_session.add(StockTransaction(
            material_id=material.id, transaction_type=tx_type,
            quantity=Decimal("1"), transaction_date=date(2024, 1, 2),
        ))
    db_session.commit()
    assert stock_sync.legacy_type_count(db_session) == 3

    result = stock_sync.normalize_transaction_types(db_session)
    assert result["updated"] == 2
    assert len(result["unrecognised_transaction_ids"]) == 1

    types = sorted(t.transaction_type for t in db_session.query(StockTransaction).all())
    assert types == ["in", "in", "out", "transfer"]
    assert stock_sync.legacy_type_count(db_session) == 1


def test_reconcile_reports_and_repairs_drift(db_session, make_material):
    material = make_material("Elastic", opening_stock="20")
    material.current_stock = Decimal("35")
    db_session.commit()

    report = stock_sync.reconcile_stock_cache(db_session)
    assert len(report["drift"]) == 1
    assert report["drift"][0]["ledger"] == Decimal("20")
    assert report["repaired"] is False

    repaired = stock_sync.reconcile_stock_cache(db_session, repair=True)
    assert repaired["repaired"] is True
    db_session.refresh(material)
    assert material.current_stock == Decimal("20")


def test_opening_stock_edit_moves_cache_by_difference(db_session, make_material, admin_user):
    material = make_material("Cotton White", opening_stock="500")
    stock_sync.initialize_ledger(db_session, "admin@example.com")

    crud_stock_transactions.update_opening_stock(db_session, material.id, Decimal("450"), admin_user)

    db_session.refresh(material)
    assert material.opening_stock == Decimal("450")
    assert material.current_stock == Decimal("450")
    entry = db_session.query(StockTransaction).one()
    assert entry.quantity == Decimal("450")
    assert stock_sync.reconcile_stock_cache(db_session)["drift"] == []


def test_opening_stock_edit_without_entry_creates_one(db_session, make_material, admin_user):
    material = make_material("Lining", opening_stock="10")

    crud_stock_transactions.update_opening_stock(db_session, material.id, Decimal("25"), admin_user)

    db_session.refresh(material)
    assert material.current_stock == Decimal("25")
    entry = db_session.query(StockTransaction).one()
    assert entry.source_type == "opening_stock"
    assert entry.quantity == Decimal("25")
    assert stock_sync.reconcile_stock_cache(db_session)["drift"] == []


def test_opening_stock_edit_to_zero_removes_entry(db_session, make_material, admin_user):
    material = make_material("Lining", opening_stock="50")
    crud_stock_transactions.update_opening_stock(db_session, material.id, Decimal("50"), admin_user)
    assert db_session.query(StockTransaction).count() == 1

    crud_stock_transactions.update_opening_stock(db_session, material.id, Decimal("0"), admin_user)

    db_session.refresh(material)
    assert material.opening_stock == Decimal("0")
    assert material.current_stock == Decimal("0")
    assert db_session.query(StockTransaction).count() == 0
    assert stock_sync.reconcile_stock_cache(db_session)["drift"] == []


def test_deleting_opening_entry_zeroes_opening_stock(db_session, make_material, admin_user):
    material = make_material("Cotton", opening_stock="500")
    stock_sync.initialize_ledger(db_session, "admin@example.com")
    entry = db_session.query(StockTransaction).one()

    assert crud_stock_transactions.delete_transaction(db_session, entry.id, admin_user) is True

    db_session.refresh(material)
    assert material.current_stock == Decimal("0")
    assert material.opening_stock == Decimal("0")
    assert stock_sync.reconcile_stock_cache(db_session)["drift"] == []
