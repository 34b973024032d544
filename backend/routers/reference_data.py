from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
import logging

from database import get_db
from schemas.reference_data import ReferenceItem, ReferenceItemCreate, ReferenceItemUpdate
from crud import reference_data as crud_reference_data
from crud.reference_data import ReferenceInUseError
from utils.auth_utils import get_current_user, get_user_identifier

router = APIRouter(tags=["Reference Data"])
logger = logging.getLogger("reference_data")


@router.get("/units/", response_model=List[ReferenceItem])
def read_units(db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    return crud_reference_data.get_units(db)


@router.post("/units/", response_model=ReferenceItem, status_code=status.HTTP_201_CREATED)
def create_unit(payload: ReferenceItemCreate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        db_unit = crud_reference_data.create_unit(db, payload.name, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Unit '{db_unit.name}' created by user {get_user_identifier(user)}")
    return {"id": db_unit.id, "name": db_unit.name, "usage_count": 0}


@router.patch("/units/{unit_id}", response_model=ReferenceItem)
def rename_unit(unit_id: str, payload: ReferenceItemUpdate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        db_unit = crud_reference_data.rename_unit(db, unit_id, payload.name, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if db_unit is None:
        raise HTTPException(status_code=404, detail="Unit not found")
    return next(u for u in crud_reference_data.get_units(db) if u["id"] == unit_id)


@router.delete("/units/{unit_id}")
def delete_unit(unit_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        deleted = crud_reference_data.delete_unit(db, unit_id)
    except ReferenceInUseError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Unit not found")
    logger.info(f"Unit {unit_id} deleted by user {get_user_identifier(user)}")
    return {"message": "Unit deleted successfully"}


@router.get("/material-categories/", response_model=List[ReferenceItem])
def read_categories(db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    return crud_reference_data.get_categories(db)


@router.post("/material-categories/", response_model=ReferenceItem, status_code=status.HTTP_201_CREATED)
def create_category(payload: ReferenceItemCreate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        db_category = crud_reference_data.create_category(db, payload.name, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Material category '{db_category.name}' created by user {get_user_identifier(user)}")
    return {"id": db_category.id, "name": db_category.name, "usage_count": 0}


@router.patch("/material-categories/{category_id}", response_model=ReferenceItem)
def rename_category(category_id: str, payload: ReferenceItemUpdate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        db_category = crud_reference_data.rename_category(db, category_id, payload.name, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if db_category is None:
        raise HTTPException(status_code=404, detail="Material category not found")
    return next(c for c in crud_reference_data.get_categories(db) if c["id"] == category_id)


@router.delete("/material-categories/{category_id}")
def delete_category(category_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        deleted = crud_reference_data.delete_category(db, category_id)
    except ReferenceInUseError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Material category not found")
    logger.info(f"Material category {category_id} deleted by user {get_user_identifier(user)}")
    return {"message": "Material category deleted successfully"}
