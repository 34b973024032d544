"""Order saves, edits and deletes keep the ledger and current stock in step."""
from datetime import date
from decimal import Decimal

import pytest

from crud import orders as crud_orders
from crud import stock_sync
from crud import stock_transactions as crud_stock_transactions
from crud.order_stock import APPLIED, RESTORED, UNRESOLVED
from models.stock_transactions import StockTransaction
from schemas.orders import OrderCreate, OrderUpdate, OrderItemCreate, DeductionCreate
from utils import stock_ledger


def _items():
    return [OrderItemCreate(particular="Cotton Shirt", quantity=Decimal("10"), rate_per_dzn=Decimal("600"))]


def _order_entries(db_session, order_id):
    return db_session.query(StockTransaction).filter(StockTransaction.order_id == order_id).all()


def _net(entries):
    return sum((stock_ledger.signed_quantity(t) for t in entries), Decimal("0"))


def test_create_deducts_stock_and_records_out_entry(db_session, make_material, make_party, admin_user):
    thread = make_material("Thread White", opening_stock="500", rate="2")
    party = make_party("Sri Ganesh Garments")

    db_order, effects = crud_orders.create_order(db_session, OrderCreate(
        party_id=party.id,
        order_date=date(2024, 3, 5),
        items=_items(),
        deductions=[DeductionCreate(material_name="Thread White", quantity=Decimal("32"), rate=Decimal("2"))],
    ), admin_user)

    db_session.refresh(thread)
    assert thread.current_stock == Decimal("468")
    assert [e["action"] for e in effects] == [APPLIED]

    entries = _order_entries(db_session, db_order.id)
    assert len(entries) == 1
    assert entries[0].transaction_type == "out"
    assert entries[0].reason_type == "used_in_order"
    assert entries[0].order_number == db_order.order_number == "SGG/001"
    assert entries[0].party_id == party.id
    assert entries[0].transaction_date == date(2024, 3, 5)

    assert db_order.subtotal == Decimal("6000")
    assert db_order.raw_material_deductions == Decimal("64")
    assert db_order.net_total == Decimal("5936")


def test_removing_deduction_restores_stock(db_session, make_material, admin_user):
    thread = make_material("Thread White", opening_stock="500")
    db_order, _ = crud_orders.create_order(db_session, OrderCreate(
        items=_items(),
        deductions=[DeductionCreate(material_name="Thread White", quantity=Decimal("32"))],
    ), admin_user)

    db_order, effects = crud_orders.update_order(db_session, db_order.id, OrderUpdate(deductions=[]), admin_user)

    db_session.refresh(thread)
    assert thread.current_stock == Decimal("500")
    assert [e["action"] for e in effects] == [RESTORED]
    assert db_order.deductions == []

    entries = _order_entries(db_session, db_order.id)
    assert sorted(t.transaction_type for t in entries) == ["in", "out"]
    restore = next(t for t in entries if t.transaction_type == "in")
    assert restore.source_type == "return"
    assert "Restored" in restore.remarks
    assert _net(entries) == Decimal("0")


def test_editing_deduction_quantity_restores_then_reapplies(db_session, make_material, admin_user):
    thread = make_material("Thread White", opening_stock="100")
    db_order, _ = crud_orders.create_order(db_session, OrderCreate(
        items=_items(),
        deductions=[DeductionCreate(material_name="Thread White", quantity=Decimal("10"))],
    ), admin_user)
    deduction_id = db_order.deductions[0].id

    db_order, effects = crud_orders.update_order(db_session, db_order.id, OrderUpdate(
        deductions=[DeductionCreate(id=deduction_id, material_name="Thread White", quantity=Decimal("25"))],
    ), admin_user)

    db_session.refresh(thread)
    assert thread.current_stock == Decimal("75")
    assert [e["action"] for e in effects] == [RESTORED, APPLIED]
    assert db_order.deductions[0].id == deduction_id


def test_edit_without_deduction_change_leaves_stock_alone(db_session, make_material, admin_user):
    thread = make_material("Thread White", opening_stock="100")
    db_order, _ = crud_orders.create_order(db_session, OrderCreate(
        items=_items(),
        deductions=[DeductionCreate(material_name="Thread White", quantity=Decimal("10"))],
    ), admin_user)

    db_order, effects = crud_orders.update_order(db_session, db_order.id, OrderUpdate(notes="rush"), admin_user)

    db_session.refresh(thread)
    assert effects == []
    assert thread.current_stock == Decimal("90")
    assert len(_order_entries(db_session, db_order.id)) == 1


def test_delete_order_restores_every_deduction(db_session, make_material, admin_user):
    thread = make_material("Thread White", opening_stock="50")
    button = make_material("Button", opening_stock="1000")
    db_order, _ = crud_orders.create_order(db_session, OrderCreate(
        items=_items(),
        deductions=[
            DeductionCreate(material_name="thread white", quantity=Decimal("5")),
            DeductionCreate(material_id=button.id, material_name="Button", quantity=Decimal("144")),
        ],
    ), admin_user)
    order_id = db_order.id

    effects = crud_orders.delete_order(db_session, order_id, admin_user)

    db_session.refresh(thread)
    db_session.refresh(button)
    assert [e["action"] for e in effects] == [RESTORED, RESTORED]
    assert thread.current_stock == Decimal("50")
    assert button.current_stock == Decimal("1000")
    assert stock_sync.reconcile_stock_cache(db_session)["drift"] == []
    assert crud_orders.get_order(db_session, order_id) is None
    # Ledger rows outlive the order; only the link is cleared by the database
    assert db_session.query(StockTransaction).filter(StockTransaction.order_number == db_order.order_number).count() == 4


def test_unresolved_material_is_reported_and_skipped(db_session, admin_user):
    db_order, effects = crud_orders.create_order(db_session, OrderCreate(
        items=_items(),
        deductions=[DeductionCreate(material_name="Velvet Ribbon", quantity=Decimal("3"))],
    ), admin_user)

    assert [e["action"] for e in effects] == [UNRESOLVED]
    assert effects[0]["transaction_id"] is None
    assert db_session.query(StockTransaction).count() == 0
    assert len(db_order.deductions) == 1


def test_invalid_deduction_lines_are_ignored(db_session, make_material, admin_user):
    thread = make_material("Thread White", opening_stock="10")
    db_order, effects = crud_orders.create_order(db_session, OrderCreate(
        items=_items(),
        deductions=[
            DeductionCreate(material_name="", quantity=Decimal("3")),
            DeductionCreate(material_name="Thread White", quantity=Decimal("0")),
        ],
    ), admin_user)

    db_session.refresh(thread)
    assert effects == []
    assert db_order.deductions == []
    assert thread.current_stock == Decimal("10")


def test_order_deduction_may_take_stock_negative(db_session, make_material, admin_user):
    thread = make_material("Thread White", opening_stock="5")
    crud_orders.create_order(db_session, OrderCreate(
        items=_items(),
        deductions=[DeductionCreate(material_name="Thread White", quantity=Decimal("8"))],
    ), admin_user)
    db_session.refresh(thread)
    assert thread.current_stock == Decimal("-3")


def test_order_requires_an_item(db_session, admin_user):
    with pytest.raises(ValueError):
        crud_orders.create_order(db_session, OrderCreate(
            items=[OrderItemCreate(particular="  ", quantity=Decimal("4"))],
        ), admin_user)


def test_renumber_updates_ledger_references(db_session, make_material, admin_user):
    make_material("Thread White", opening_stock="100")
    db_order, _ = crud_orders.create_order(db_session, OrderCreate(
        items=_items(),
        deductions=[DeductionCreate(material_name="Thread White", quantity=Decimal("1"))],
    ), admin_user)

    db_order, _ = crud_orders.update_order(db_session, db_order.id, OrderUpdate(order_number="sg/900"), admin_user)

    assert db_order.order_number == "SG/900"
    assert {t.order_number for t in _order_entries(db_session, db_order.id)} == {"SG/900"}


def test_party_order_numbers_and_counter(db_session, make_party, admin_user):
    party = make_party("Sri Ganesh Garments")
    first, _ = crud_orders.create_order(db_session, OrderCreate(party_id=party.id, items=_items()), admin_user)
    second, _ = crud_orders.create_order(db_session, OrderCreate(party_id=party.id, items=_items()), admin_user)
    walk_in, _ = crud_orders.create_order(db_session, OrderCreate(items=_items()), admin_user)
    inline, _ = crud_orders.create_order(db_session, OrderCreate(new_party_name="Kumar Textiles", items=_items()), admin_user)

    assert (first.order_number, second.order_number) == ("SGG/001", "SGG/002")
    assert walk_in.order_number == "SG/372"
    assert inline.order_number == "KT/001"
    assert inline.party_name == "Kumar Textiles"


def test_duplicate_custom_order_number_rejected(db_session, admin_user):
    crud_orders.create_order(db_session, OrderCreate(order_number="X/1", items=_items()), admin_user)
    with pytest.raises(ValueError):
        crud_orders.create_order(db_session, OrderCreate(order_number="x/1", items=_items()), admin_user)


def test_manual_stock_out_rejects_overdraw(db_session, make_material, admin_user):
    from schemas.stock_transactions import StockOutCreate
    thread = make_material("Thread White", opening_stock="5")
    with pytest.raises(ValueError):
        crud_stock_transactions.record_stock_out(
            db_session, StockOutCreate(material_id=thread.id, quantity=Decimal("6")), admin_user
        )
    db_session.refresh(thread)
    assert thread.current_stock == Decimal("5")


def test_delete_order_does_not_restore_line_that_never_took_stock(db_session, make_material, admin_user):
    db_order, effects = crud_orders.create_order(db_session, OrderCreate(
        items=_items(),
        deductions=[DeductionCreate(material_name="Thread Red", quantity=Decimal("32"))],
    ), admin_user)
    assert [e["action"] for e in effects] == [UNRESOLVED]
    thread = make_material("Thread Red", opening_stock="100")

    effects = crud_orders.delete_order(db_session, db_order.id, admin_user)

    db_session.refresh(thread)
    assert [e["action"] for e in effects] == [UNRESOLVED]
    assert thread.current_stock == Decimal("100")
    assert db_session.query(StockTransaction).filter(StockTransaction.transaction_type == "in").count() == 0
    assert stock_sync.reconcile_stock_cache(db_session)["drift"] == []


def test_removing_line_with_stale_material_id_restores_nothing(db_session, make_material, admin_user):
    db_order, effects = crud_orders.create_order(db_session, OrderCreate(
        items=_items(),
        deductions=[DeductionCreate(material_id="no-such-material", material_name="Thread Red", quantity=Decimal("32"))],
    ), admin_user)
    assert [e["action"] for e in effects] == [UNRESOLVED]
    assert db_order.deductions[0].material_id is None
    thread = make_material("Thread Red", opening_stock="100")

    db_order, effects = crud_orders.update_order(db_session, db_order.id, OrderUpdate(deductions=[]), admin_user)

    db_session.refresh(thread)
    assert thread.current_stock == Decimal("100")
    assert _order_entries(db_session, db_order.id) == []


def test_restore_is_capped_at_what_the_order_took(db_session, make_material, admin_user):
    thread = make_material("Thread White", opening_stock="100")
    db_order, _ = crud_orders.create_order(db_session, OrderCreate(
        items=_items(),
        deductions=[DeductionCreate(material_name="Thread White", quantity=Decimal("10"))],
    ), admin_user)
    # Line quantity raised behind the ledger's back
    db_order.deductions[0].quantity = Decimal("40")
    db_session.commit()

    effects = crud_orders.delete_order(db_session, db_order.id, admin_user)

    db_session.refresh(thread)
    assert [(e["action"], e["quantity"]) for e in effects] == [(RESTORED, Decimal("10"))]
    assert thread.current_stock == Decimal("100")
    assert stock_sync.reconcile_stock_cache(db_session)["drift"] == []
