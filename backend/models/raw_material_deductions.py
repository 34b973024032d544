from sqlalchemy import Column, String, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin, new_uuid


class RawMaterialDeduction(Base, TimestampMixin):
    __tablename__ = "raw_material_deductions"

    id = Column(String(36), primary_key=True, default=new_uuid)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    # Resolved key plus a name snapshot; rows imported from older data may only carry the name
    material_id = Column(String(36), ForeignKey("materials.id", ondelete="SET NULL"), nullable=True)
    material_name = Column(String, nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    rate = Column(Numeric(12, 2), default=0, nullable=False)
    amount = Column(Numeric(12, 2), default=0, nullable=False)

    # Relationships
    order = relationship("Order", back_populates="deductions")
    material = relationship("Material")
