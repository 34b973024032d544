from sqlalchemy import Column, String, Text, Numeric, Date, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
import enum
from models.audit_mixin import TimestampMixin, new_uuid, local_now


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Order(Base, TimestampMixin):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_uuid)
    order_number = Column(String, nullable=False, unique=True, index=True)
    party_id = Column(String(36), ForeignKey("parties.id"), nullable=True)
    order_date = Column(Date, nullable=False, default=lambda: local_now().date())
    status = Column(String(20), default=OrderStatus.PENDING.value, nullable=False)
    subtotal = Column(Numeric(12, 2), default=0, nullable=False)
    raw_material_deductions = Column(Numeric(12, 2), default=0, nullable=False)
    net_total = Column(Numeric(12, 2), default=0, nullable=False)
    notes = Column(Text, nullable=True)

    # Relationships
    party = relationship("Party", back_populates="orders")
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderItem.serial_no"
    )
    deductions = relationship("RawMaterialDeduction", back_populates="order", cascade="all, delete-orphan")

    @property
    def party_name(self):
        return self.party.name if self.party is not None else None
