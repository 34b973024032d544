from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin, new_uuid


class Party(Base, TimestampMixin):
    __tablename__ = "parties"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String, nullable=False, unique=True)
    prefix = Column(String(10), nullable=True)  # e.g. "SG" -> order numbers SG/001, SG/002
    last_order_number = Column(Integer, default=0, nullable=False)
    address = Column(Text, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    # Relationships
    orders = relationship("Order", back_populates="party")
