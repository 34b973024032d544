from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from sqlalchemy.orm import Session
import json
import logging

from database import get_db
from schemas.backup import BackupValidation, BackupRestoreResult
from crud import backup as crud_backup
from utils.auth_utils import get_current_user, get_user_identifier, require_role

router = APIRouter(prefix="/backup", tags=["Backup"])
logger = logging.getLogger("backup")


async def _read_backup_file(file: UploadFile):
    content = await file.read()
    try:
        return json.loads(content)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"Backup file is not valid JSON: {e}")


@router.get("/export")
def export_backup(db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    """Every party, material, order and ledger entry as one JSON document."""
    logger.info(f"Backup export requested by {get_user_identifier(user)}")
    return crud_backup.export_backup(db)


@router.post("/validate", response_model=BackupValidation)
async def validate_backup(file: UploadFile = File(...), user: dict = Depends(get_current_user)):
    data = await _read_backup_file(file)
    errors = crud_backup.validate_backup(data)
    if not isinstance(data, dict):
        return BackupValidation(is_valid=False, errors=errors)
    return BackupValidation(
        is_valid=not errors,
        errors=errors,
        version=str(data.get("version") or ""),
        counts=crud_backup.backup_counts(data),
    )


@router.post("/restore", response_model=BackupRestoreResult)
async def restore_backup(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin"]))
):
    """Replace all business data with the file's contents. Nothing changes if any record is invalid."""
    data = await _read_backup_file(file)
    try:
        restored = crud_backup.restore_backup(db, data, get_user_identifier(user))
    except crud_backup.BackupValidationError as e:
        raise HTTPException(status_code=422, detail={"message": "Backup validation failed", "errors": e.errors})
    return BackupRestoreResult(restored=restored)
