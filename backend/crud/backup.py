"""
JSON backup export, validation and restore.

A restore replaces all business data. Every record of every table is checked
before anything is deleted, and the delete-then-insert runs in one database
transaction, so a bad file leaves the existing data untouched.
"""
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List

from sqlalchemy import Date, DateTime, Integer, Numeric
from sqlalchemy.orm import Session

from models.parties import Party
from models.material_categories import MaterialCategory
from models.units import Unit
from models.materials import Material
from models.orders import Order
from models.order_items import OrderItem
from models.raw_material_deductions import RawMaterialDeduction
from models.stock_transactions import StockTransaction
from models.audit_mixin import local_now
from utils import sqlalchemy_to_dict

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"

# Insert order; deletes run in reverse
BACKUP_TABLES = [
    ("parties", Party),
    ("material_categories", MaterialCategory),
    ("units", Unit),
    ("materials", Material),
    ("orders", Order),
    ("order_items", OrderItem),
    ("raw_material_deductions", RawMaterialDeduction),
    ("stock_transactions", StockTransaction),
]

REQUIRED_FIELDS = {
    "parties": ["id", "name"],
    "materials": ["id", "name", "rate", "current_stock", "unit"],
    "material_categories": ["id", "name"],
    "units": ["id", "name"],
    "orders": ["id", "order_number", "status", "order_date"],
    "order_items": ["id", "order_id", "particular", "quantity", "rate_per_dzn", "total", "serial_no"],
    "raw_material_deductions": ["id", "order_id", "material_name", "quantity", "rate", "amount"],
    "stock_transactions": ["id", "material_id", "transaction_type", "quantity"],
}

# Files written before units were exported carry no "units" array
OPTIONAL_TABLES = {"units"}

# (table, column, referenced table) checked across the whole file
REFERENCES = [
    ("materials", "category_id", "material_categories"),
    ("orders", "party_id", "parties"),
    ("order_items", "order_id", "orders"),
    ("raw_material_deductions", "order_id", "orders"),
    ("raw_material_deductions", "material_id", "materials"),
    ("stock_transactions", "material_id", "materials"),
    ("stock_transactions", "party_id", "parties"),
]


class BackupValidationError(ValueError):
    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


def export_backup(db: Session) -> dict:
    data = {"version": BACKUP_VERSION, "exportedAt": local_now().isoformat()}
    for table, model in BACKUP_TABLES:
        data[table] = [sqlalchemy_to_dict(row) for row in db.query(model).all()]
    logger.info(f"Backup exported: {', '.join(f'{t}={len(data[t])}' for t, _ in BACKUP_TABLES)}")
    return data


def _parse_value(column, value):
    if value is None:
        return None
    column_type = column.type
    if isinstance(column_type, Numeric):
        number = Decimal(str(value))
        if not number.is_finite():
            raise ValueError(f"not a finite number: {value!r}")
        return number
    if isinstance(column_type, Integer):
        return int(value)
    if isinstance(column_type, DateTime):
        if isinstance(value, datetime):
            return value
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if isinstance(column_type, Date):
        if isinstance(value, date):
            return value
        return date.fromisoformat(str(value)[:10])
    return value


def _coerce_record(model, record: dict) -> dict:
    """Keep the model's columns only, converted to their Python types."""
    columns = model.__table__.columns
    return {key: _parse_value(columns[key], value) for key, value in record.items() if key in columns}


def validate_backup(data) -> List[str]:
    """Every structural problem in the file; empty when it can be restored."""
    if not isinstance(data, dict):
        return ["Invalid backup structure: expected a JSON object"]

    errors = []
    for table, model in BACKUP_TABLES:
        records = data.get(table)
        if records is None and table in OPTIONAL_TABLES:
            continue
        if not isinstance(records, list):
            errors.append(f'Missing or invalid "{table}" array')
            continue
        seen_ids = set()
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                errors.append(f'Table "{table}" record {index} is not an object')
                continue
            for field in REQUIRED_FIELDS[table]:
                if record.get(field) is None:
                    errors.append(f'Table "{table}" record {index} missing required field "{field}"')
            if record.get("id") is not None:
                if record["id"] in seen_ids:
                    errors.append(f'Table "{table}" record {index} repeats id "{record["id"]}"')
                seen_ids.add(record["id"])
            try:
                _coerce_record(model, record)
            except (ValueError, TypeError, InvalidOperation) as e:
                errors.append(f'Table "{table}" record {index} has an invalid value: {e}')

    if errors:
        return errors

    ids = {table: {r["id"] for r in data.get(table) or []} for table, _ in BACKUP_TABLES}
    for table, column, target in REFERENCES:
        for index, record in enumerate(data.get(table) or []):
            ref = record.get(column)
            if ref is not None and ref not in ids[target]:
                errors.append(f'Table "{table}" record {index} references missing {target} "{ref}" via "{column}"')
    return errors


def backup_counts(data: dict) -> Dict[str, int]:
    counts = {}
    for table, _ in BACKUP_TABLES:
        records = data.get(table)
        counts[table] = len(records) if isinstance(records, list) else 0
    return counts


def restore_backup(db: Session, data: dict, user_id: str) -> Dict[str, int]:
    """Replace all business data with the backup's contents, all or nothing."""
    errors = validate_backup(data)
    if errors:
        logger.warning(f"Backup restore by {user_id} blocked: {len(errors)} validation error(s)")
        raise BackupValidationError(errors)

    restored = {}
    try:
        for table, model in reversed(BACKUP_TABLES):
            db.query(model).delete(synchronize_session=False)
        db.flush()
        db.expunge_all()

        for table, model in BACKUP_TABLES:
            records = data.get(table) or []
            for record in records:
                db.add(model(**_coerce_record(model, record)))
            db.flush()
            restored[table] = len(records)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Backup restore by {user_id} failed; no changes applied", exc_info=True)
        raise

    logger.info(f"Backup restored by {user_id} (version {data.get('version')}): {restored}")
    return restored
