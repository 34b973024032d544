from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from models.stock_transactions import StockTransaction
from schemas.audit_log import AuditLog
from crud import stock_sync as crud_stock_sync
from crud.audit_log import get_audit_logs
from utils.auth_utils import get_user_identifier, require_role

router = APIRouter(prefix="/stock-ledger", tags=["Stock Ledger Maintenance"])
logger = logging.getLogger("stock_ledger_admin")


@router.get("/status")
def ledger_status(db: Session = Depends(get_db), user: dict = Depends(require_role(["admin"]))):
    return {
        "transaction_count": db.query(func.count(StockTransaction.id)).scalar() or 0,
        "legacy_type_count": crud_stock_sync.legacy_type_count(db),
    }


@router.post("/initialize")
def initialize_ledger(db: Session = Depends(get_db), user: dict = Depends(require_role(["admin"]))):
    """Write opening entries for every material. Does nothing once the ledger has any entry."""
    return crud_stock_sync.initialize_ledger(db, get_user_identifier(user))


@router.post("/sync-orders")
def sync_orders(db: Session = Depends(get_db), user: dict = Depends(require_role(["admin"]))):
    """Backfill ledger entries for order deductions saved before the ledger existed."""
    return crud_stock_sync.sync_order_ledger(db, get_user_identifier(user))


@router.post("/normalize-types")
def normalize_types(db: Session = Depends(get_db), user: dict = Depends(require_role(["admin"]))):
    result = crud_stock_sync.normalize_transaction_types(db)
    logger.info(f"Transaction types normalized by {get_user_identifier(user)}: {result['updated']} updated")
    return result


@router.post("/reconcile")
def reconcile(repair: bool = False, db: Session = Depends(get_db), user: dict = Depends(require_role(["admin"]))):
    """Compare cached stock against the ledger. With repair=true the cache is corrected."""
    result = crud_stock_sync.reconcile_stock_cache(db, repair=repair)
    logger.info(f"Stock reconcile by {get_user_identifier(user)}: {len(result['drift'])} drifted, repair={repair}")
    return result


@router.get("/audit-logs", response_model=List[AuditLog])
def read_audit_logs(
    table_name: Optional[str] = None,
    record_id: Optional[str] = None,
    skip: int = 0,
    limit: int = Query(100, le=1000),
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin"]))
):
    return get_audit_logs(db, table_name=table_name, record_id=record_id, skip=skip, limit=limit)
