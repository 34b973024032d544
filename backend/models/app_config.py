from sqlalchemy import Column, String
from database import Base
from models.audit_mixin import TimestampMixin, new_uuid


class AppConfig(Base, TimestampMixin):
    __tablename__ = "app_config"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(100), nullable=False, unique=True, index=True)
    value = Column(String(255), nullable=False)
