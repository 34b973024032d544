from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from schemas.app_config import AppConfigCreate, AppConfigUpdate, AppConfigOut
from crud import app_config as crud_app_config
from utils.auth_utils import get_current_user, get_user_identifier, require_role

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/configurations/", response_model=AppConfigOut, tags=["Configuration"])
def create_config(config: AppConfigCreate, db: Session = Depends(get_db), user: dict = Depends(require_role(["admin"]))):
    try:
        return crud_app_config.create_config(db, config, user_id=get_user_identifier(user))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/configurations/", response_model=List[AppConfigOut], tags=["Configuration"])
def get_configs(name: Optional[str] = None, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    configs = crud_app_config.get_config(db, name=name)
    # Always return a list, even if empty
    return [configs] if name and configs else configs or []


@router.patch("/configurations/{name}/", response_model=AppConfigOut, tags=["Configuration"])
def update_config(name: str, config: AppConfigUpdate, db: Session = Depends(get_db), user: dict = Depends(require_role(["admin"]))):
    updated = crud_app_config.update_config_by_name(db, name, config, user_id=get_user_identifier(user))
    if not updated:
        raise HTTPException(status_code=404, detail="Configuration not found")
    return updated


@router.post("/configurations/initialize", status_code=status.HTTP_201_CREATED, tags=["Configuration"])
def initialize_configurations(db: Session = Depends(get_db), user: dict = Depends(require_role(["admin"]))):
    """
    Creates the default application configurations.
    This is idempotent; existing values are never overwritten.
    """
    created = crud_app_config.initialize_defaults(db, user_id=get_user_identifier(user))
    if not created:
        return {"message": "All default configurations already exist.", "new_configs": []}
    logger.info(f"Initialized default configs by user {get_user_identifier(user)}. New configs: {created}")
    return {"message": "Successfully initialized default configurations.", "new_configs": created}
