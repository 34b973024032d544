from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
import logging

from database import get_db
from models.orders import OrderStatus
from schemas.orders import (
    Order as OrderSchema,
    OrderCreate,
    OrderUpdate,
    OrderStatusUpdate,
    OrderWithStockEffects,
    StockEffect,
)
from crud import orders as crud_orders
from utils.auth_utils import get_current_user, get_user_identifier

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger("orders")


def _with_effects(db_order, effects) -> OrderWithStockEffects:
    return OrderWithStockEffects(**OrderSchema.model_validate(db_order).model_dump(), stock_effects=effects)


@router.post("/", response_model=OrderWithStockEffects, status_code=status.HTTP_201_CREATED)
def create_order(order: OrderCreate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    """Create an order. Each raw material deduction is taken out of stock through the ledger."""
    try:
        db_order, effects = crud_orders.create_order(db, order, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Order {db_order.order_number} (ID: {db_order.id}) created by user {get_user_identifier(user)}")
    return _with_effects(db_order, effects)


@router.get("/", response_model=List[OrderSchema])
def read_orders(
    party_id: Optional[str] = None,
    status: Optional[OrderStatus] = None,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    return crud_orders.get_orders(
        db, party_id=party_id, status=status.value if status else None,
        start_date=start_date, end_date=end_date, search=search, skip=skip, limit=limit,
    )


@router.get("/{order_id}", response_model=OrderSchema)
def read_order(order_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    db_order = crud_orders.get_order(db, order_id)
    if db_order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return db_order


@router.patch("/{order_id}", response_model=OrderWithStockEffects)
def update_order(order_id: str, order: OrderUpdate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    """Edit an order. Removed deductions are restored to stock, new ones deducted, changed ones re-applied."""
    try:
        db_order, effects = crud_orders.update_order(db, order_id, order, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if db_order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    logger.info(f"Order {db_order.order_number} (ID: {order_id}) updated by user {get_user_identifier(user)}")
    return _with_effects(db_order, effects)


@router.patch("/{order_id}/status", response_model=OrderSchema)
def update_order_status(order_id: str, payload: OrderStatusUpdate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    db_order = crud_orders.update_order_status(db, order_id, payload.status, user)
    if db_order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return db_order


@router.delete("/{order_id}", response_model=List[StockEffect])
def delete_order(order_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    """Delete an order after restoring every raw material it deducted."""
    effects = crud_orders.delete_order(db, order_id, user)
    if effects is None:
        raise HTTPException(status_code=404, detail="Order not found")
    logger.info(f"Order {order_id} deleted by user {get_user_identifier(user)}")
    return effects
