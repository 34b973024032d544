import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from models.orders import Order, OrderStatus
from models.order_items import OrderItem
from models.raw_material_deductions import RawMaterialDeduction
from models.stock_transactions import StockTransaction
from models.audit_mixin import local_now
from schemas.orders import OrderCreate, OrderUpdate, OrderItemCreate, DeductionCreate
from schemas.parties import PartyCreate
from crud import parties as crud_parties
from crud import order_stock
from crud.audit_log import audit_change
from utils import sqlalchemy_to_dict
from utils.auth_utils import get_user_identifier
from utils.stock_ledger import to_decimal, ZERO

logger = logging.getLogger(__name__)


def get_order(db: Session, order_id: str):
    return db.query(Order).options(
        selectinload(Order.items),
        selectinload(Order.deductions),
        selectinload(Order.party),
    ).filter(Order.id == order_id).first()


def get_order_by_number(db: Session, order_number: str):
    return db.query(Order).filter(func.upper(Order.order_number) == (order_number or "").strip().upper()).first()


def get_orders(db: Session, party_id: str = None, status: str = None, start_date=None, end_date=None,
               search: str = None, skip: int = 0, limit: int = 100):
    query = db.query(Order).options(selectinload(Order.party))
    if party_id:
        query = query.filter(Order.party_id == party_id)
    if status:
        query = query.filter(Order.status == status)
    if start_date:
        query = query.filter(Order.order_date >= start_date)
    if end_date:
        query = query.filter(Order.order_date <= end_date)
    if search:
        query = query.filter(Order.order_number.ilike(f"%{search.strip()}%"))
    return query.order_by(Order.order_date.desc(), Order.created_at.desc()).offset(skip).limit(limit).all()


def order_snapshot(db_order: Order) -> dict:
    values = sqlalchemy_to_dict(db_order)
    values["items"] = [sqlalchemy_to_dict(item) for item in db_order.items]
    values["deductions"] = [sqlalchemy_to_dict(d) for d in db_order.deductions]
    return values


def _build_items(items: List[OrderItemCreate]) -> List[OrderItem]:
    """Keep lines with a particular and a positive quantity, numbered 1..n."""
    valid = [item for item in items if (item.particular or "").strip() and to_decimal(item.quantity) > ZERO]
    if not valid:
        raise ValueError("Order must contain at least one item")
    db_items = []
    for index, item in enumerate(valid, start=1):
        quantity = to_decimal(item.quantity)
        rate = to_decimal(item.rate_per_dzn)
        db_items.append(OrderItem(
            serial_no=index,
            particular=item.particular.strip(),
            quantity=quantity,
            quantity_unit=item.quantity_unit or "Dzn",
            rate_per_dzn=rate,
            total=quantity * rate,
        ))
    return db_items


def _recalculate_totals(db_order: Order):
    subtotal = sum((to_decimal(item.total) for item in db_order.items), Decimal("0"))
    deductions = sum((to_decimal(d.amount) for d in db_order.deductions), Decimal("0"))
    db_order.subtotal = subtotal
    db_order.raw_material_deductions = deductions
    db_order.net_total = subtotal - deductions


def _check_number_free(db: Session, order_number: str, current_id: str = None):
    existing = get_order_by_number(db, order_number)
    if existing and existing.id != current_id:
        raise ValueError(f"Order number '{order_number}' already exists")


def _new_deduction(db_order: Order, line: DeductionCreate) -> RawMaterialDeduction:
    quantity = to_decimal(line.quantity)
    rate = to_decimal(line.rate)
    return RawMaterialDeduction(
        order_id=db_order.id,
        material_id=line.material_id or None,
        material_name=line.material_name.strip(),
        quantity=quantity,
        rate=rate,
        amount=quantity * rate,
    )


def _resolve_party(db: Session, order: OrderCreate, user: dict):
    if order.party_id:
        db_party = crud_parties.get_party(db, order.party_id)
        if db_party is None:
            raise ValueError(f"Party {order.party_id} not found")
        return db_party
    if order.new_party_name and order.new_party_name.strip():
        existing = crud_parties.get_party_by_name(db, order.new_party_name)
        if existing:
            return existing
        return crud_parties.create_party(db, PartyCreate(name=order.new_party_name), user, commit=False)
    return None


def create_order(db: Session, order: OrderCreate, user: dict):
    """Create an order with its lines and deduct its raw materials. Returns (order, stock_effects)."""
    user_id = get_user_identifier(user)
    effects = []
    try:
        db_items = _build_items(order.items)
        db_party = _resolve_party(db, order, user)

        if order.order_number and order.order_number.strip():
            order_number = order.order_number.strip().upper()
            _check_number_free(db, order_number)
        elif db_party is not None:
            order_number = crud_parties.reserve_party_order_number(db, db_party.id)
            _check_number_free(db, order_number)
        else:
            order_number = crud_parties.reserve_counter_order_number(db)
            _check_number_free(db, order_number)

        db_order = Order(
            order_number=order_number,
            party_id=db_party.id if db_party is not None else None,
            order_date=order.order_date or local_now().date(),
            status=OrderStatus.PENDING.value,
            notes=order.notes,
            created_by=user_id,
            updated_by=user_id,
        )
        db_order.items = db_items
        db.add(db_order)
        db.flush()

        for line in order.deductions:
            if not order_stock.is_valid_deduction(line.material_name, line.quantity):
                continue
            deduction = _new_deduction(db_order, line)
            db_order.deductions.append(deduction)
            db.flush()
            effects.append(order_stock.apply_deduction(db, db_order, deduction, user_id))

        _recalculate_totals(db_order)
        db.flush()
        audit_change(db, 'orders', db_order.id, user_id, 'CREATE', new_values=order_snapshot(db_order))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Order {order_number} created by {user_id}; stock effects: {_summarize(effects)}")
    return get_order(db, db_order.id), effects


def update_order(db: Session, order_id: str, order: OrderUpdate, user: dict):
    """Edit an order. Deduction lines are diffed against what is saved:
    removed lines are restored before deletion, new lines are applied, and
    changed lines are restored then re-applied. Returns (order, stock_effects).
    """
    db_order = get_order(db, order_id)
    if db_order is None:
        return None, []

    user_id = get_user_identifier(user)
    old_values = order_snapshot(db_order)
    effects = []
    try:
        update_data = order.model_dump(exclude_unset=True, exclude={"items", "deductions"})
        if "party_id" in update_data and update_data["party_id"]:
            if crud_parties.get_party(db, update_data["party_id"]) is None:
                raise ValueError(f"Party {update_data['party_id']} not found")
        if update_data.get("order_number"):
            new_number = update_data["order_number"].strip().upper()
            _check_number_free(db, new_number, current_id=db_order.id)
            if new_number != db_order.order_number:
                # Keep ledger references readable after a renumber
                db.query(StockTransaction).filter(StockTransaction.order_id == db_order.id).update(
                    {StockTransaction.order_number: new_number}, synchronize_session=False
                )
            update_data["order_number"] = new_number
        elif "order_number" in update_data:
            del update_data["order_number"]
        if update_data.get("status") is not None:
            update_data["status"] = OrderStatus(update_data["status"]).value
        elif "status" in update_data:
            del update_data["status"]
        if "order_date" in update_data and update_data["order_date"] is None:
            del update_data["order_date"]

        for key, value in update_data.items():
            setattr(db_order, key, value)

        if order.items is not None:
            db_order.items = _build_items(order.items)

        if order.deductions is not None:
            effects.extend(_sync_deductions(db, db_order, order.deductions, user_id))

        db_order.updated_by = user_id
        _recalculate_totals(db_order)
        db.flush()
        audit_change(db, 'orders', db_order.id, user_id, 'UPDATE',
                     old_values=old_values, new_values=order_snapshot(db_order))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Order {db_order.order_number} updated by {user_id}; stock effects: {_summarize(effects)}")
    return get_order(db, order_id), effects


def _sync_deductions(db: Session, db_order: Order, lines: List[DeductionCreate], user_id: str) -> List[dict]:
    effects = []
    saved = {d.id: d for d in db_order.deductions}
    incoming = [line for line in lines if order_stock.is_valid_deduction(line.material_name, line.quantity)]
    kept_ids = {line.id for line in incoming if line.id and line.id in saved}

    # Removed lines: restore first, then drop the row
    for deduction_id, deduction in saved.items():
        if deduction_id in kept_ids:
            continue
        if order_stock.is_valid_deduction(deduction.material_name, deduction.quantity):
            effects.append(order_stock.restore_deduction(db, db_order, deduction, user_id))
        db_order.deductions.remove(deduction)
    db.flush()

    for line in incoming:
        if line.id and line.id in saved:
            deduction = saved[line.id]
            if order_stock.deduction_changed(deduction, line.material_id, line.material_name, line.quantity):
                effects.extend(order_stock.adjust_deduction(
                    db, db_order, deduction, line.material_id, line.material_name,
                    line.quantity, line.rate, user_id,
                ))
            else:
                deduction.rate = to_decimal(line.rate)
                deduction.amount = to_decimal(deduction.quantity) * deduction.rate
        else:
            deduction = _new_deduction(db_order, line)
            db_order.deductions.append(deduction)
            db.flush()
            effects.append(order_stock.apply_deduction(db, db_order, deduction, user_id))
    return effects


def update_order_status(db: Session, order_id: str, status: OrderStatus, user: dict):
    db_order = get_order(db, order_id)
    if db_order is None:
        return None
    old_status = db_order.status
    db_order.status = OrderStatus(status).value
    db_order.updated_by = get_user_identifier(user)
    audit_change(db, 'orders', db_order.id, get_user_identifier(user), 'UPDATE',
                 old_values={"status": old_status}, new_values={"status": db_order.status})
    db.commit()
    logger.info(f"Order {db_order.order_number} status {old_status} -> {db_order.status} by {get_user_identifier(user)}")
    return get_order(db, order_id)


def delete_order(db: Session, order_id: str, user: dict) -> Optional[List[dict]]:
    """Restore every deduction, then delete the order with its lines. None when not found."""
    db_order = get_order(db, order_id)
    if db_order is None:
        return None

    user_id = get_user_identifier(user)
    order_number = db_order.order_number
    try:
        old_values = order_snapshot(db_order)
        effects = order_stock.restore_order(db, db_order, user_id)
        db.delete(db_order)
        audit_change(db, 'orders', order_id, user_id, 'DELETE', old_values=old_values)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Order {order_number} deleted by {user_id}; stock effects: {_summarize(effects)}")
    return effects


def _summarize(effects: List[dict]) -> str:
    if not effects:
        return "none"
    counts = {}
    for effect in effects:
        counts[effect["action"]] = counts.get(effect["action"], 0) + 1
    return ", ".join(f"{action}={count}" for action, count in sorted(counts.items()))
