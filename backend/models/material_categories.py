from sqlalchemy import Column, String
from database import Base
from models.audit_mixin import TimestampMixin, new_uuid


class MaterialCategory(Base, TimestampMixin):
    __tablename__ = "material_categories"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String, nullable=False, unique=True)
