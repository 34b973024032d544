"""
Stock transaction store.

Every change to a material's stock goes through ``record_transaction``: the
ledger row is inserted first, then the cached ``materials.current_stock`` is
moved by a single relative UPDATE in the same database transaction. Callers
own the commit so multi-line operations (order saves, deletes) stay atomic.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from models.materials import Material
from models.parties import Party
from models.stock_transactions import StockTransaction
from models.audit_mixin import local_now
from schemas.stock_transactions import StockInCreate, StockOutCreate, SOURCE_TYPES, REASON_TYPES
from crud.app_config import get_ledger_inception_date
from utils.auth_utils import get_user_identifier
from utils.stock_ledger import (
    StockDirection, classify_transaction_type, to_decimal, sort_transactions, OPENING_STOCK_SOURCE,
)

logger = logging.getLogger(__name__)


def apply_stock_delta(db: Session, material: Material, delta: Decimal) -> Decimal:
    """Atomically shift the cached stock by ``delta`` and return the new value."""
    db.flush()
    db.execute(
        update(Material)
        .where(Material.id == material.id)
        .values(current_stock=Material.current_stock + delta)
        .execution_options(synchronize_session=False)
    )
    db.expire(material, ["current_stock"])
    return to_decimal(material.current_stock)


def record_transaction(
    db: Session,
    material: Material,
    direction: StockDirection,
    quantity,
    user_id: str,
    transaction_date: Optional[date] = None,
    source_type: Optional[str] = None,
    reason_type: Optional[str] = None,
    party_id: Optional[str] = None,
    order_id: Optional[str] = None,
    order_number: Optional[str] = None,
    rate=None,
    remarks: Optional[str] = None,
    update_cache: bool = True,
) -> StockTransaction:
    """Append one ledger entry and, unless told otherwise, move the stock cache with it."""
    quantity = to_decimal(quantity)
    if quantity <= 0:
        raise ValueError("Quantity must be greater than zero")

    db_tx = StockTransaction(
        material_id=material.id,
        transaction_type=direction.value,
        quantity=quantity,
        transaction_date=transaction_date or local_now().date(),
        source_type=source_type,
        reason_type=reason_type,
        party_id=party_id,
        order_id=order_id,
        order_number=order_number,
        rate=rate,
        remarks=remarks,
        created_by=user_id,
    )
    db.add(db_tx)
    db.flush()

    if update_cache:
        delta = quantity if direction is StockDirection.IN else -quantity
        db_tx.balance_after = apply_stock_delta(db, material, delta)
    return db_tx


def _check_party(db: Session, party_id: Optional[str]):
    if party_id and not db.query(Party).filter(Party.id == party_id).first():
        raise ValueError(f"Party {party_id} not found")


def _locked_material(db: Session, material_id: str) -> Material:
    db_material = db.query(Material).filter(Material.id == material_id).with_for_update().first()
    if db_material is None:
        raise LookupError(f"Material {material_id} not found")
    return db_material


def record_stock_in(db: Session, stock_in: StockInCreate, user: dict) -> StockTransaction:
    if stock_in.source_type not in SOURCE_TYPES:
        raise ValueError(f"Unknown source type '{stock_in.source_type}'")
    _check_party(db, stock_in.party_id)
    db_material = _locked_material(db, stock_in.material_id)
    try:
        db_tx = record_transaction(
            db, db_material, StockDirection.IN, stock_in.quantity, get_user_identifier(user),
            transaction_date=stock_in.transaction_date,
            source_type=stock_in.source_type,
            party_id=stock_in.party_id,
            rate=stock_in.rate,
            remarks=stock_in.remarks,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_tx)
    logger.info(f"Stock in: {stock_in.quantity} of '{db_material.name}' ({stock_in.source_type}) by {get_user_identifier(user)}")
    return db_tx


def record_stock_out(db: Session, stock_out: StockOutCreate, user: dict) -> StockTransaction:
    if stock_out.reason_type not in REASON_TYPES:
        raise ValueError(f"Unknown reason type '{stock_out.reason_type}'")
    _check_party(db, stock_out.party_id)
    db_material = _locked_material(db, stock_out.material_id)
    available = to_decimal(db_material.current_stock)
    if to_decimal(stock_out.quantity) > available:
        raise ValueError(
            f"Insufficient stock for '{db_material.name}'. Available: {available}, Requested: {stock_out.quantity}"
        )
    try:
        db_tx = record_transaction(
            db, db_material, StockDirection.OUT, stock_out.quantity, get_user_identifier(user),
            transaction_date=stock_out.transaction_date,
            reason_type=stock_out.reason_type,
            party_id=stock_out.party_id,
            remarks=stock_out.remarks,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_tx)
    logger.info(f"Stock out: {stock_out.quantity} of '{db_material.name}' ({stock_out.reason_type}) by {get_user_identifier(user)}")
    return db_tx


def get_transaction(db: Session, transaction_id: str):
    return db.query(StockTransaction).filter(StockTransaction.id == transaction_id).first()


def get_transactions(
    db: Session,
    material_id: str = None,
    party_id: str = None,
    order_id: str = None,
    start_date: date = None,
    end_date: date = None,
    skip: int = 0,
    limit: int = 500,
):
    query = db.query(StockTransaction)
    if material_id:
        query = query.filter(StockTransaction.material_id == material_id)
    if party_id:
        query = query.filter(StockTransaction.party_id == party_id)
    if order_id:
        query = query.filter(StockTransaction.order_id == order_id)
    if start_date:
        query = query.filter(StockTransaction.transaction_date >= start_date)
    if end_date:
        query = query.filter(StockTransaction.transaction_date <= end_date)
    query = query.order_by(
        StockTransaction.transaction_date.desc(),
        StockTransaction.created_at.desc(),
        StockTransaction.id.desc(),
    )
    return query.offset(skip).limit(limit).all()


def get_material_history(db: Session, material_id: str):
    """Complete, unfiltered history for one material in ledger order."""
    return sort_transactions(
        db.query(StockTransaction).filter(StockTransaction.material_id == material_id).all()
    )


def get_history_up_to(db: Session, end_date: date, material_ids=None):
    """Every transaction dated on or before ``end_date``; opening balances need all of them."""
    query = db.query(StockTransaction).filter(StockTransaction.transaction_date <= end_date)
    if material_ids is not None:
        query = query.filter(StockTransaction.material_id.in_(list(material_ids)))
    return query.all()


def update_opening_stock(db: Session, material_id: str, opening_stock, user: dict, remarks: str = None) -> Material:
    """Change a material's opening figure, keeping the ledger and the cache in step."""
    db_material = _locked_material(db, material_id)
    new_opening = to_decimal(opening_stock)
    if new_opening < 0:
        raise ValueError("Opening stock cannot be negative")
    user_id = get_user_identifier(user)

    try:
        opening_entry = db.query(StockTransaction).filter(
            StockTransaction.material_id == material_id,
            StockTransaction.source_type == OPENING_STOCK_SOURCE,
        ).order_by(StockTransaction.transaction_date, StockTransaction.created_at).first()

        if opening_entry is not None:
            difference = new_opening - to_decimal(opening_entry.quantity)
            if new_opening == 0:
                # Ledger quantities stay positive; the zeroed column carries the baseline
                db.delete(opening_entry)
            else:
                opening_entry.quantity = new_opening
                opening_entry.transaction_type = StockDirection.IN.value
                opening_entry.updated_by = user_id
                if remarks:
                    opening_entry.remarks = remarks
        else:
            # Without an entry the column was the baseline
            difference = new_opening - to_decimal(db_material.opening_stock)

        if opening_entry is None and new_opening > 0:
            db.add(StockTransaction(
                material_id=material_id,
                transaction_type=StockDirection.IN.value,
                quantity=new_opening,
                transaction_date=get_ledger_inception_date(db),
                source_type=OPENING_STOCK_SOURCE,
                remarks=remarks or "Opening stock",
                created_by=user_id,
            ))

        db_material.opening_stock = new_opening
        db_material.updated_by = user_id
        if difference:
            apply_stock_delta(db, db_material, difference)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_material)
    logger.info(f"Opening stock of '{db_material.name}' set to {new_opening} (change {difference}) by {user_id}")
    return db_material


def delete_transaction(db: Session, transaction_id: str, user: dict) -> bool:
    """Remove a ledger entry and reverse its effect on the stock cache."""
    db_tx = get_transaction(db, transaction_id)
    if db_tx is None:
        return False
    db_material = _locked_material(db, db_tx.material_id)
    direction = classify_transaction_type(db_tx.transaction_type)
    try:
        if direction is not None:
            quantity = to_decimal(db_tx.quantity)
            apply_stock_delta(db, db_material, -quantity if direction is StockDirection.IN else quantity)
        if db_tx.source_type == OPENING_STOCK_SOURCE:
            # Otherwise the column would become the baseline again
            db_material.opening_stock = 0
            db_material.updated_by = get_user_identifier(user)
        db.delete(db_tx)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Stock transaction {transaction_id} for '{db_material.name}' deleted by {get_user_identifier(user)}")
    return True
