from sqlalchemy import Column, String, Text, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin, new_uuid


class Material(Base, TimestampMixin):
    __tablename__ = "materials"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String, nullable=False, unique=True)
    category_id = Column(String(36), ForeignKey("material_categories.id"), nullable=True)
    unit = Column(String, default="Pcs", nullable=False)  # label from the units table, e.g. "Pcs", "Mtr"
    rate = Column(Numeric(12, 2), default=0, nullable=False)
    opening_stock = Column(Numeric(12, 2), default=0, nullable=False)
    # Cached balance; the ledger is the source of truth
    current_stock = Column(Numeric(12, 2), default=0, nullable=False)
    min_stock = Column(Numeric(12, 2), default=0, nullable=False)
    notes = Column(Text, nullable=True)

    # Relationships
    category = relationship("MaterialCategory")
    transactions = relationship("StockTransaction", back_populates="material")
