from sqlalchemy import Column, Integer, String
from database import Base


class OrderCounter(Base):
    """Single-row counter for orders placed without a party (SG/372, SG/373, ...)."""
    __tablename__ = "order_counter"

    id = Column(Integer, primary_key=True, default=1)
    prefix = Column(String(10), default="SG", nullable=False)
    current_number = Column(Integer, default=371, nullable=False)
