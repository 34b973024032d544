import logging
from sqlalchemy import func
from sqlalchemy.orm import Session
from models.materials import Material
from models.material_categories import MaterialCategory
from models.stock_transactions import StockTransaction
from schemas.materials import MaterialCreate, MaterialUpdate
from crud.audit_log import audit_change
from utils import sqlalchemy_to_dict
from utils.auth_utils import get_user_identifier

logger = logging.getLogger(__name__)


def get_material(db: Session, material_id: str):
    return db.query(Material).filter(Material.id == material_id).first()


def get_material_by_name(db: Session, name: str):
    """Case-insensitive exact match on the trimmed name."""
    normalized = (name or "").strip().lower()
    if not normalized:
        return None
    return db.query(Material).filter(func.lower(func.trim(Material.name)) == normalized).first()


def get_materials(db: Session, category_id: str = None, search: str = None, skip: int = 0, limit: int = 500):
    query = db.query(Material)
    if category_id:
        query = query.filter(Material.category_id == category_id)
    if search:
        query = query.filter(Material.name.ilike(f"%{search.strip()}%"))
    return query.order_by(Material.name).offset(skip).limit(limit).all()


def _check_category(db: Session, category_id: str):
    if category_id and not db.query(MaterialCategory).filter(MaterialCategory.id == category_id).first():
        raise ValueError(f"Material category {category_id} not found")


def create_material(db: Session, material: MaterialCreate, user: dict):
    name = (material.name or "").strip()
    if not name:
        raise ValueError("Material name is required")
    if get_material_by_name(db, name):
        raise ValueError(f"Material '{name}' already exists")
    _check_category(db, material.category_id)

    user_identifier = get_user_identifier(user)
    data = material.model_dump()
    data["name"] = name
    # The opening figure is the material's baseline until the ledger carries an opening entry
    db_material = Material(**data, current_stock=material.opening_stock,
                           created_by=user_identifier, updated_by=user_identifier)
    db.add(db_material)
    db.flush()
    audit_change(db, 'materials', db_material.id, user_identifier, 'CREATE', new_values=sqlalchemy_to_dict(db_material))
    db.commit()
    db.refresh(db_material)
    return db_material


def update_material(db: Session, material_id: str, material: MaterialUpdate, user: dict):
    db_material = get_material(db, material_id)
    if not db_material:
        return None

    update_data = material.model_dump(exclude_unset=True)
    if "name" in update_data:
        name = (update_data["name"] or "").strip()
        if not name:
            raise ValueError("Material name is required")
        existing = get_material_by_name(db, name)
        if existing and existing.id != db_material.id:
            raise ValueError(f"Material '{name}' already exists")
        update_data["name"] = name
    if "category_id" in update_data:
        _check_category(db, update_data["category_id"])

    old_values = sqlalchemy_to_dict(db_material)
    for key, value in update_data.items():
        setattr(db_material, key, value)
    db_material.updated_by = get_user_identifier(user)
    db.flush()
    audit_change(db, 'materials', db_material.id, get_user_identifier(user), 'UPDATE',
                 old_values=old_values, new_values=sqlalchemy_to_dict(db_material))
    db.commit()
    db.refresh(db_material)
    return db_material


def delete_material(db: Session, material_id: str, user: dict):
    """Delete a material that has no ledger history."""
    db_material = get_material(db, material_id)
    if not db_material:
        return False
    tx_count = db.query(func.count(StockTransaction.id)).filter(StockTransaction.material_id == material_id).scalar()
    if tx_count:
        raise ValueError(f"Material '{db_material.name}' has {tx_count} stock transaction(s) and cannot be deleted")

    old_values = sqlalchemy_to_dict(db_material)
    db.delete(db_material)
    audit_change(db, 'materials', material_id, get_user_identifier(user), 'DELETE', old_values=old_values)
    db.commit()
    return True
