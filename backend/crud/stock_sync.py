"""
Backfill and maintenance operations for the stock ledger.

These are admin-only bulk jobs. Each is safe to run more than once:
ledger initialization refuses to run on a non-empty ledger, order sync skips
orders that already have ledger entries, and type normalization only touches
rows still holding a legacy synonym.
"""
import logging
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from models.materials import Material
from models.orders import Order
from models.stock_transactions import StockTransaction
from crud.app_config import get_ledger_inception_date
from crud.materials import get_material_by_name
from crud.order_stock import USED_IN_ORDER, is_valid_deduction
from crud.stock_transactions import apply_stock_delta
from utils.stock_ledger import (
    StockDirection, OPENING_STOCK_SOURCE, classify_transaction_type, group_by_material,
    stock_from_ledger, to_decimal, ZERO,
)

logger = logging.getLogger(__name__)


def initialize_ledger(db: Session, user_id: str) -> dict:
    """Write one opening entry per material, on an empty ledger only.

    The entry carries the material's recorded opening stock; materials that
    never recorded one fall back to their current stock.
    """
    tx_count = db.query(func.count(StockTransaction.id)).scalar() or 0
    if tx_count > 0:
        logger.info(f"Ledger initialization skipped; {tx_count} transaction(s) already exist")
        return {"inserted": 0, "already_initialized": True}

    snapshot_date = get_ledger_inception_date(db)
    inserted = 0
    try:
        for material in db.query(Material).order_by(Material.created_at).all():
            quantity = to_decimal(material.opening_stock)
            if quantity <= ZERO:
                quantity = to_decimal(material.current_stock)
            if quantity <= ZERO:
                continue
            db.add(StockTransaction(
                material_id=material.id,
                transaction_type=StockDirection.IN.value,
                quantity=quantity,
                transaction_date=snapshot_date,
                source_type=OPENING_STOCK_SOURCE,
                balance_after=quantity,
                remarks="Opening balance (ledger initialization)",
                created_by=user_id,
            ))
            inserted += 1
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Ledger initialized with {inserted} opening entr{'y' if inserted == 1 else 'ies'} dated {snapshot_date} by {user_id}")
    return {"inserted": inserted, "already_initialized": False}


def sync_order_ledger(db: Session, user_id: str) -> dict:
    """Synthesize ``out`` entries for historical order deductions missing from the ledger.

    Those deductions already reduced ``current_stock`` when they were saved,
    so the cache is left alone.
    """
    linked_order_ids = {
        order_id for (order_id,) in
        db.query(StockTransaction.order_id).filter(StockTransaction.order_id.isnot(None)).distinct()
    }
    orders = db.query(Order).options(selectinload(Order.deductions)).order_by(Order.order_date, Order.created_at).all()

    synced = 0
    skipped_orders = 0
    unresolved: List[dict] = []
    try:
        for order in orders:
            if order.id in linked_order_ids:
                skipped_orders += 1
                continue
            for deduction in order.deductions:
                if not is_valid_deduction(deduction.material_name, deduction.quantity):
                    continue
                material = None
                if deduction.material_id:
                    material = db.query(Material).filter(Material.id == deduction.material_id).first()
                if material is None:
                    material = get_material_by_name(db, deduction.material_name)
                if material is None:
                    logger.warning(f"Order {order.order_number}: no material named '{deduction.material_name}'; not synced")
                    unresolved.append({"order_number": order.order_number, "material_name": deduction.material_name})
                    continue
                deduction.material_id = material.id
                db.add(StockTransaction(
                    material_id=material.id,
                    transaction_type=StockDirection.OUT.value,
                    quantity=deduction.quantity,
                    transaction_date=order.order_date,
                    reason_type=USED_IN_ORDER,
                    party_id=order.party_id,
                    order_id=order.id,
                    order_number=order.order_number,
                    rate=deduction.rate,
                    remarks=f"Order deduction backfill - {order.order_number}",
                    created_by=user_id,
                ))
                synced += 1
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Order ledger sync by {user_id}: {synced} synced, {skipped_orders} order(s) skipped, {len(unresolved)} unresolved")
    return {"synced": synced, "skipped_orders": skipped_orders, "unresolved": unresolved}


def normalize_transaction_types(db: Session) -> dict:
    """Rewrite legacy type synonyms ("add", "stock_out", " OUT ", ...) to canonical in/out."""
    updated = 0
    unknown: List[str] = []
    try:
        for tx in db.query(StockTransaction).all():
            direction = classify_transaction_type(tx.transaction_type)
            if direction is None:
                unknown.append(str(tx.id))
                continue
            if tx.transaction_type != direction.value:
                tx.transaction_type = direction.value
                updated += 1
        db.commit()
    except Exception:
        db.rollback()
        raise
    if unknown:
        logger.warning(f"{len(unknown)} stock transaction(s) have unrecognised types and were left unchanged")
    logger.info(f"Normalized {updated} stock transaction type(s)")
    return {"updated": updated, "unrecognised_transaction_ids": unknown}


def reconcile_stock_cache(db: Session, repair: bool = False) -> dict:
    """Compare each material's cached stock with its ledger balance, optionally fixing drift."""
    history = group_by_material(db.query(StockTransaction).all())
    drift = []
    try:
        for material in db.query(Material).order_by(Material.name).all():
            expected = stock_from_ledger(material, history.get(material.id, []))
            cached = to_decimal(material.current_stock)
            if expected != cached:
                logger.warning(f"Stock drift for '{material.name}': cached {cached}, ledger {expected}")
                drift.append({
                    "material_id": material.id,
                    "material_name": material.name,
                    "cached": cached,
                    "ledger": expected,
                })
                if repair:
                    apply_stock_delta(db, material, expected - cached)
        if repair:
            db.commit()
    except Exception:
        db.rollback()
        raise
    return {"checked": db.query(func.count(Material.id)).scalar() or 0, "drift": drift, "repaired": repair and bool(drift)}


def legacy_type_count(db: Session) -> int:
    """Rows whose type is not already canonical in/out."""
    return db.query(func.count(StockTransaction.id)).filter(
        StockTransaction.transaction_type.notin_([StockDirection.IN.value, StockDirection.OUT.value])
    ).scalar() or 0
