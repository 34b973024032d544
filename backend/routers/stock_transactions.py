from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
import logging

from database import get_db
from schemas.stock_transactions import StockTransaction, StockInCreate, StockOutCreate, SOURCE_TYPES, REASON_TYPES
from crud import stock_transactions as crud_stock_transactions
from utils.auth_utils import get_current_user, get_user_identifier, require_role

router = APIRouter(prefix="/stock-transactions", tags=["Stock Transactions"])
logger = logging.getLogger("stock_transactions")


@router.get("/types")
def read_transaction_labels(user: dict = Depends(get_current_user)):
    return {"source_types": SOURCE_TYPES, "reason_types": REASON_TYPES}


@router.post("/stock-in", response_model=StockTransaction, status_code=status.HTTP_201_CREATED)
def create_stock_in(stock_in: StockInCreate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        return crud_stock_transactions.record_stock_in(db, stock_in, user)
    except LookupError:
        raise HTTPException(status_code=404, detail="Material not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/stock-out", response_model=StockTransaction, status_code=status.HTTP_201_CREATED)
def create_stock_out(stock_out: StockOutCreate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    """Manual stock-out. Rejected when it would take the material below zero."""
    try:
        return crud_stock_transactions.record_stock_out(db, stock_out, user)
    except LookupError:
        raise HTTPException(status_code=404, detail="Material not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/", response_model=List[StockTransaction])
def read_stock_transactions(
    material_id: Optional[str] = None,
    party_id: Optional[str] = None,
    order_id: Optional[str] = None,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    skip: int = 0,
    limit: int = 500,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    """Ledger entries, newest first."""
    return crud_stock_transactions.get_transactions(
        db, material_id=material_id, party_id=party_id, order_id=order_id,
        start_date=start_date, end_date=end_date, skip=skip, limit=limit,
    )


@router.get("/{transaction_id}", response_model=StockTransaction)
def read_stock_transaction(transaction_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    db_tx = crud_stock_transactions.get_transaction(db, transaction_id)
    if db_tx is None:
        raise HTTPException(status_code=404, detail="Stock transaction not found")
    return db_tx


@router.delete("/{transaction_id}")
def delete_stock_transaction(transaction_id: str, db: Session = Depends(get_db), user: dict = Depends(require_role(["admin"]))):
    """Remove a ledger entry and reverse its effect on current stock."""
    if not crud_stock_transactions.delete_transaction(db, transaction_id, user):
        raise HTTPException(status_code=404, detail="Stock transaction not found")
    logger.info(f"Stock transaction {transaction_id} deleted by user {get_user_identifier(user)}")
    return {"message": "Stock transaction deleted successfully"}
