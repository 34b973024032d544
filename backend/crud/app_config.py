from datetime import date
import logging
from sqlalchemy.orm import Session
from models.app_config import AppConfig
from schemas.app_config import AppConfigCreate, AppConfigUpdate
from crud.audit_log import audit_change
from utils import sqlalchemy_to_dict

logger = logging.getLogger(__name__)

LEDGER_INCEPTION_DATE = "ledger_inception_date"
LOW_STOCK_ALERT_ENABLED = "low_stock_alert_enabled"

DEFAULT_CONFIGS = [
    {"name": LEDGER_INCEPTION_DATE, "value": "2000-01-01"},
    {"name": LOW_STOCK_ALERT_ENABLED, "value": "true"},
]


# Create a new config entry
def create_config(db: Session, config: AppConfigCreate, user_id: str):
    if get_config(db, name=config.name):
        raise ValueError(f"Configuration '{config.name}' already exists")
    db_config = AppConfig(name=config.name, value=config.value, created_by=user_id)
    db.add(db_config)
    db.flush()
    audit_change(db, 'app_config', db_config.id, user_id, 'CREATE', new_values=sqlalchemy_to_dict(db_config))
    db.commit()
    db.refresh(db_config)
    return db_config


# Get config by name (or all configs)
def get_config(db: Session, name: str = None):
    if name:
        return db.query(AppConfig).filter(AppConfig.name == name).first()
    return db.query(AppConfig).order_by(AppConfig.name).all()


# Update config by name
def update_config_by_name(db: Session, name: str, config: AppConfigUpdate, user_id: str):
    db_config = db.query(AppConfig).filter(AppConfig.name == name).first()
    if not db_config:
        return None

    old_values = sqlalchemy_to_dict(db_config)
    for field, value in config.model_dump(exclude_unset=True).items():
        setattr(db_config, field, value)
    db_config.updated_by = user_id
    db.flush()
    audit_change(db, 'app_config', db_config.id, user_id, 'UPDATE', old_values=old_values, new_values=sqlalchemy_to_dict(db_config))
    db.commit()
    db.refresh(db_config)
    return db_config


def initialize_defaults(db: Session, user_id: str):
    """Create any missing default configuration. Existing values are left alone."""
    existing_config_names = {name for (name,) in db.query(AppConfig.name)}
    created = []
    for config_data in DEFAULT_CONFIGS:
        if config_data["name"] not in existing_config_names:
            create_config(db, AppConfigCreate(**config_data), user_id=user_id)
            created.append(config_data["name"])
    return created


def get_ledger_inception_date(db: Session) -> date:
    db_config = get_config(db, name=LEDGER_INCEPTION_DATE)
    if db_config:
        try:
            return date.fromisoformat(db_config.value)
        except ValueError:
            logger.warning(f"Invalid {LEDGER_INCEPTION_DATE} '{db_config.value}'; using default")
    return date.fromisoformat(DEFAULT_CONFIGS[0]["value"])


def is_low_stock_alert_enabled(db: Session) -> bool:
    db_config = get_config(db, name=LOW_STOCK_ALERT_ENABLED)
    if not db_config:
        return True
    return db_config.value.strip().lower() in ("1", "true", "yes", "on")
