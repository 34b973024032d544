from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
import logging

from database import get_db
from schemas.materials import Material, MaterialCreate, MaterialUpdate, OpeningStockUpdate
from schemas.stock_transactions import StockTransaction
from schemas.stock_reports import MaterialLedgerReport
from crud import materials as crud_materials
from crud import stock_transactions as crud_stock_transactions
from crud import stock_reports as crud_stock_reports
from utils.auth_utils import get_current_user, get_user_identifier

router = APIRouter(prefix="/materials", tags=["Materials"])
logger = logging.getLogger("materials")


@router.post("/", response_model=Material, status_code=status.HTTP_201_CREATED)
def create_material(material: MaterialCreate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    """Create a new material. Its current stock starts at the opening stock."""
    try:
        db_material = crud_materials.create_material(db, material, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Material '{db_material.name}' created by user {get_user_identifier(user)}")
    return db_material


@router.get("/", response_model=List[Material])
def read_materials(
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 500,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    return crud_materials.get_materials(db, category_id=category_id, search=search, skip=skip, limit=limit)


@router.get("/{material_id}", response_model=Material)
def read_material(material_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    db_material = crud_materials.get_material(db, material_id)
    if db_material is None:
        raise HTTPException(status_code=404, detail="Material not found")
    return db_material


@router.patch("/{material_id}", response_model=Material)
def update_material(material_id: str, material: MaterialUpdate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        db_material = crud_materials.update_material(db, material_id, material, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if db_material is None:
        raise HTTPException(status_code=404, detail="Material not found")
    logger.info(f"Material '{db_material.name}' (ID: {material_id}) updated by user {get_user_identifier(user)}")
    return db_material


@router.put("/{material_id}/opening-stock", response_model=Material)
def update_opening_stock(material_id: str, payload: OpeningStockUpdate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    """Change the opening stock; current stock and the opening ledger entry move by the same difference."""
    try:
        return crud_stock_transactions.update_opening_stock(db, material_id, payload.opening_stock, user, remarks=payload.remarks)
    except LookupError:
        raise HTTPException(status_code=404, detail="Material not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{material_id}")
def delete_material(material_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    """Delete a material. Materials with ledger history cannot be deleted."""
    try:
        deleted = crud_materials.delete_material(db, material_id, user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Material not found")
    logger.info(f"Material {material_id} deleted by user {get_user_identifier(user)}")
    return {"message": "Material deleted successfully"}


@router.get("/{material_id}/transactions", response_model=List[StockTransaction])
def read_material_history(material_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    """Complete ledger history of a material, oldest first."""
    if crud_materials.get_material(db, material_id) is None:
        raise HTTPException(status_code=404, detail="Material not found")
    return crud_stock_transactions.get_material_history(db, material_id)


@router.get("/{material_id}/ledger", response_model=MaterialLedgerReport)
def read_material_ledger(
    material_id: str,
    start_date: Optional[date] = Query(None, description="Defaults to the first day of the current month"),
    end_date: Optional[date] = Query(None, description="Defaults to the last day of start_date's month"),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    try:
        report = crud_stock_reports.material_ledger_report(db, material_id, start_date, end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if report is None:
        raise HTTPException(status_code=404, detail="Material not found")
    return report
