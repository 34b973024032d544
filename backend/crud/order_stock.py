"""
Order-to-ledger bridge.

Turns an order's raw material deductions into stock ledger movements:
saving a deduction writes an ``out`` entry, removing one writes a restoring
``in`` entry. Nothing here commits; the order crud commits once per request.
"""
import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.materials import Material
from models.orders import Order
from models.raw_material_deductions import RawMaterialDeduction
from models.stock_transactions import StockTransaction
from crud.materials import get_material, get_material_by_name
from crud.stock_transactions import record_transaction
from utils.stock_ledger import StockDirection, signed_quantity, to_decimal, ZERO

logger = logging.getLogger(__name__)

USED_IN_ORDER = "used_in_order"
RETURN_SOURCE = "return"

APPLIED = "applied"
RESTORED = "restored"
UNRESOLVED = "unresolved"
NOT_TAKEN = "not_taken"


def is_valid_deduction(material_name: Optional[str], quantity) -> bool:
    """Lines with a blank material or a non-positive quantity never touch stock."""
    return bool((material_name or "").strip()) and to_decimal(quantity) > ZERO


def resolve_material(db: Session, material_id: Optional[str], material_name: Optional[str]) -> Optional[Material]:
    """Find the deduction's material by key, falling back to a case-insensitive name match."""
    if material_id:
        db_material = get_material(db, material_id)
        if db_material is not None:
            return db_material
        logger.warning(f"Deduction references missing material id {material_id}; trying name '{material_name}'")
    db_material = get_material_by_name(db, material_name)
    if db_material is None:
        logger.warning(f"No material matches deduction name '{material_name}'; stock left unchanged")
    return db_material


def _effect(action: str, deduction: RawMaterialDeduction, quantity, material=None, tx=None) -> dict:
    return {
        "action": action,
        "material_name": deduction.material_name,
        "material_id": material.id if material is not None else None,
        "quantity": to_decimal(quantity),
        "transaction_id": tx.id if tx is not None else None,
    }


def apply_deduction(db: Session, order: Order, deduction: RawMaterialDeduction, user_id: str) -> dict:
    """Record the stock use for one saved deduction line."""
    db_material = resolve_material(db, deduction.material_id, deduction.material_name)
    if db_material is None:
        # A dangling id must not later pass for stock that was taken
        deduction.material_id = None
        return _effect(UNRESOLVED, deduction, deduction.quantity)

    deduction.material_id = db_material.id
    db_tx = record_transaction(
        db, db_material, StockDirection.OUT, deduction.quantity, user_id,
        transaction_date=order.order_date,
        reason_type=USED_IN_ORDER,
        party_id=order.party_id,
        order_id=order.id,
        order_number=order.order_number,
        rate=deduction.rate,
        remarks=f"Used in order {order.order_number}",
    )
    logger.info(f"Order {order.order_number}: deducted {deduction.quantity} of '{db_material.name}'")
    return _effect(APPLIED, deduction, deduction.quantity, db_material, db_tx)


def outstanding_quantity(db: Session, order: Order, material_id: Optional[str]):
    """Net quantity of a material the order still holds in the ledger: its uses minus its restores."""
    if not material_id:
        return ZERO
    entries = db.query(StockTransaction).filter(
        StockTransaction.order_id == order.id,
        StockTransaction.material_id == material_id,
        or_(StockTransaction.reason_type == USED_IN_ORDER, StockTransaction.source_type == RETURN_SOURCE),
    ).all()
    return -sum((signed_quantity(t) for t in entries), ZERO)


def restore_deduction(db: Session, order: Order, deduction: RawMaterialDeduction, user_id: str,
                      quantity=None, reason: str = "deleted deduction") -> dict:
    """Give back the stock a deduction line consumed. Must run before the line is deleted.

    Only stock the order's ledger entries actually took is returned, so a line
    that was unresolved when saved restores nothing even if its material
    exists by now.
    """
    quantity = to_decimal(deduction.quantity if quantity is None else quantity)
    db_material = get_material(db, deduction.material_id) if deduction.material_id else None
    if db_material is None:
        return _effect(UNRESOLVED, deduction, quantity)

    quantity = min(quantity, outstanding_quantity(db, order, db_material.id))
    if quantity <= ZERO:
        logger.warning(f"Order {order.order_number}: no stock of '{db_material.name}' was taken; nothing to restore")
        return _effect(NOT_TAKEN, deduction, ZERO, db_material)

    db_tx = record_transaction(
        db, db_material, StockDirection.IN, quantity, user_id,
        source_type=RETURN_SOURCE,
        party_id=order.party_id,
        order_id=order.id,
        order_number=order.order_number,
        rate=deduction.rate,
        remarks=f"Restored from {reason} in order {order.order_number}",
    )
    logger.info(f"Order {order.order_number}: restored {quantity} of '{db_material.name}' ({reason})")
    return _effect(RESTORED, deduction, quantity, db_material, db_tx)


def adjust_deduction(db: Session, order: Order, deduction: RawMaterialDeduction, material_id: Optional[str],
                     material_name: str, quantity, rate, user_id: str) -> List[dict]:
    """Edit a saved line: restore what it used, then apply the new figures."""
    effects = []
    if is_valid_deduction(deduction.material_name, deduction.quantity):
        effects.append(restore_deduction(db, order, deduction, user_id, reason="edited deduction"))

    deduction.material_id = material_id
    deduction.material_name = material_name.strip()
    deduction.quantity = to_decimal(quantity)
    deduction.rate = to_decimal(rate)
    deduction.amount = deduction.quantity * deduction.rate
    db.flush()

    if is_valid_deduction(deduction.material_name, deduction.quantity):
        effects.append(apply_deduction(db, order, deduction, user_id))
    return effects


def deduction_changed(deduction: RawMaterialDeduction, material_id: Optional[str], material_name: str, quantity) -> bool:
    if to_decimal(deduction.quantity) != to_decimal(quantity):
        return True
    if (deduction.material_name or "").strip().lower() != (material_name or "").strip().lower():
        return True
    return bool(material_id) and material_id != deduction.material_id


def restore_order(db: Session, order: Order, user_id: str) -> List[dict]:
    """Restore every valid deduction of an order that is about to be deleted."""
    effects = []
    for deduction in list(order.deductions):
        if is_valid_deduction(deduction.material_name, deduction.quantity):
            effects.append(restore_deduction(db, order, deduction, user_id, reason="deleted order"))
    return effects
