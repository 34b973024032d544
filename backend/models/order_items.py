from sqlalchemy import Column, Integer, String, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin, new_uuid


class OrderItem(Base, TimestampMixin):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_uuid)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    serial_no = Column(Integer, nullable=False)
    particular = Column(String, nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    quantity_unit = Column(String, default="Dzn", nullable=False)
    rate_per_dzn = Column(Numeric(12, 2), default=0, nullable=False)
    total = Column(Numeric(12, 2), default=0, nullable=False)

    # Relationships
    order = relationship("Order", back_populates="items")
