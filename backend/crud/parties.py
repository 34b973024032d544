import logging
from sqlalchemy import func
from sqlalchemy.orm import Session
from models.parties import Party
from models.orders import Order
from models.order_counter import OrderCounter
from schemas.parties import PartyCreate, PartyUpdate
from crud.audit_log import audit_change
from utils import sqlalchemy_to_dict
from utils.auth_utils import get_user_identifier
from utils.order_numbers import generate_party_prefix, format_party_order_number, format_counter_order_number

logger = logging.getLogger(__name__)


def get_party(db: Session, party_id: str):
    return db.query(Party).filter(Party.id == party_id).first()


def get_party_by_name(db: Session, name: str):
    return db.query(Party).filter(func.lower(Party.name) == (name or "").strip().lower()).first()


def get_parties(db: Session, search: str = None, skip: int = 0, limit: int = 100):
    query = db.query(Party)
    if search:
        query = query.filter(Party.name.ilike(f"%{search.strip()}%"))
    return query.order_by(Party.name).offset(skip).limit(limit).all()


def create_party(db: Session, party: PartyCreate, user: dict, commit: bool = True):
    name = (party.name or "").strip()
    if not name:
        raise ValueError("Party name is required")
    if get_party_by_name(db, name):
        raise ValueError(f"Party '{name}' already exists")

    user_identifier = get_user_identifier(user)
    data = party.model_dump()
    data["name"] = name
    data["prefix"] = (party.prefix or "").strip().upper() or generate_party_prefix(name)
    db_party = Party(**data, last_order_number=0, created_by=user_identifier, updated_by=user_identifier)
    db.add(db_party)
    db.flush()
    audit_change(db, 'parties', db_party.id, user_identifier, 'CREATE', new_values=sqlalchemy_to_dict(db_party))
    if commit:
        db.commit()
        db.refresh(db_party)
    return db_party


def update_party(db: Session, party_id: str, party: PartyUpdate, user: dict):
    db_party = get_party(db, party_id)
    if not db_party:
        return None

    update_data = party.model_dump(exclude_unset=True)
    if "name" in update_data:
        name = (update_data["name"] or "").strip()
        if not name:
            raise ValueError("Party name is required")
        existing = get_party_by_name(db, name)
        if existing and existing.id != db_party.id:
            raise ValueError(f"Party '{name}' already exists")
        update_data["name"] = name
    if update_data.get("prefix"):
        update_data["prefix"] = update_data["prefix"].strip().upper()

    old_values = sqlalchemy_to_dict(db_party)
    for key, value in update_data.items():
        setattr(db_party, key, value)
    db_party.updated_by = get_user_identifier(user)
    db.flush()
    audit_change(db, 'parties', db_party.id, get_user_identifier(user), 'UPDATE',
                 old_values=old_values, new_values=sqlalchemy_to_dict(db_party))
    db.commit()
    db.refresh(db_party)
    return db_party


def delete_party(db: Session, party_id: str, user: dict):
    db_party = get_party(db, party_id)
    if not db_party:
        return False
    order_count = db.query(func.count(Order.id)).filter(Order.party_id == party_id).scalar()
    if order_count:
        raise ValueError(f"Party '{db_party.name}' has {order_count} order(s) and cannot be deleted")

    old_values = sqlalchemy_to_dict(db_party)
    db.delete(db_party)
    audit_change(db, 'parties', party_id, get_user_identifier(user), 'DELETE', old_values=old_values)
    db.commit()
    return True


def preview_next_order_number(db: Session, db_party: Party) -> str:
    prefix = db_party.prefix or generate_party_prefix(db_party.name)
    return format_party_order_number(prefix, (db_party.last_order_number or 0) + 1)


def reserve_party_order_number(db: Session, party_id: str) -> str:
    """Advance the party's counter (row locked) and return the new PREFIX/NNN number."""
    db_party = db.query(Party).filter(Party.id == party_id).with_for_update().first()
    if db_party is None:
        raise ValueError(f"Party {party_id} not found")
    if not db_party.prefix:
        db_party.prefix = generate_party_prefix(db_party.name)
    db_party.last_order_number = (db_party.last_order_number or 0) + 1
    db.flush()
    return format_party_order_number(db_party.prefix, db_party.last_order_number)


def reserve_counter_order_number(db: Session) -> str:
    """Number for an order without a party, from the shared order counter."""
    counter = db.query(OrderCounter).filter(OrderCounter.id == 1).with_for_update().first()
    if counter is None:
        counter = OrderCounter(id=1, prefix="SG", current_number=371)
        db.add(counter)
    counter.current_number = (counter.current_number or 0) + 1
    db.flush()
    return format_counter_order_number(counter.prefix, counter.current_number)
