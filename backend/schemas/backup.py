from pydantic import BaseModel
from typing import Dict, List


class BackupValidation(BaseModel):
    is_valid: bool
    errors: List[str] = []
    version: str = ""
    counts: Dict[str, int] = {}

class BackupRestoreResult(BaseModel):
    restored: Dict[str, int]
