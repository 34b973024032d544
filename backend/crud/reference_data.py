"""Units and material categories: small lookup tables with usage counts."""
import logging
from sqlalchemy import func
from sqlalchemy.orm import Session
from models.units import Unit
from models.material_categories import MaterialCategory
from models.materials import Material
from utils.auth_utils import get_user_identifier

logger = logging.getLogger(__name__)


class ReferenceInUseError(ValueError):
    pass


def _usage_counts(db: Session, column):
    return {key: count for key, count in db.query(column, func.count(Material.id)).group_by(column).all()}


def _find_by_name(db: Session, model, name: str):
    return db.query(model).filter(func.lower(model.name) == name.strip().lower()).first()


def _validated_name(db: Session, model, name: str, current_id: str = None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValueError("Name is required")
    existing = _find_by_name(db, model, name)
    if existing and existing.id != current_id:
        raise ValueError(f"'{name}' already exists")
    return name


# --- Units ---

def get_units(db: Session):
    counts = _usage_counts(db, Material.unit)
    return [
        {"id": unit.id, "name": unit.name, "usage_count": counts.get(unit.name, 0)}
        for unit in db.query(Unit).order_by(Unit.name).all()
    ]


def create_unit(db: Session, name: str, user: dict):
    db_unit = Unit(name=_validated_name(db, Unit, name), created_by=get_user_identifier(user))
    db.add(db_unit)
    db.commit()
    db.refresh(db_unit)
    return db_unit


def rename_unit(db: Session, unit_id: str, name: str, user: dict):
    """Rename a unit and relabel the materials that use it."""
    db_unit = db.query(Unit).filter(Unit.id == unit_id).first()
    if not db_unit:
        return None
    new_name = _validated_name(db, Unit, name, current_id=unit_id)
    old_name = db_unit.name
    if new_name != old_name:
        relabelled = db.query(Material).filter(Material.unit == old_name).update(
            {Material.unit: new_name}, synchronize_session=False
        )
        logger.info(f"Unit '{old_name}' renamed to '{new_name}'; {relabelled} material(s) relabelled")
    db_unit.name = new_name
    db_unit.updated_by = get_user_identifier(user)
    db.commit()
    db.refresh(db_unit)
    return db_unit


def delete_unit(db: Session, unit_id: str):
    db_unit = db.query(Unit).filter(Unit.id == unit_id).first()
    if not db_unit:
        return False
    in_use = db.query(func.count(Material.id)).filter(Material.unit == db_unit.name).scalar()
    if in_use:
        raise ReferenceInUseError(f"Unit '{db_unit.name}' is used by {in_use} material(s)")
    db.delete(db_unit)
    db.commit()
    return True


# --- Material categories ---

def get_categories(db: Session):
    counts = _usage_counts(db, Material.category_id)
    return [
        {"id": category.id, "name": category.name, "usage_count": counts.get(category.id, 0)}
        for category in db.query(MaterialCategory).order_by(MaterialCategory.name).all()
    ]


def create_category(db: Session, name: str, user: dict):
    db_category = MaterialCategory(name=_validated_name(db, MaterialCategory, name), created_by=get_user_identifier(user))
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    return db_category


def rename_category(db: Session, category_id: str, name: str, user: dict):
    db_category = db.query(MaterialCategory).filter(MaterialCategory.id == category_id).first()
    if not db_category:
        return None
    db_category.name = _validated_name(db, MaterialCategory, name, current_id=category_id)
    db_category.updated_by = get_user_identifier(user)
    db.commit()
    db.refresh(db_category)
    return db_category


def delete_category(db: Session, category_id: str):
    db_category = db.query(MaterialCategory).filter(MaterialCategory.id == category_id).first()
    if not db_category:
        return False
    in_use = db.query(func.count(Material.id)).filter(Material.category_id == category_id).scalar()
    if in_use:
        raise ReferenceInUseError(f"Category '{db_category.name}' is used by {in_use} material(s)")
    db.delete(db_category)
    db.commit()
    return True
