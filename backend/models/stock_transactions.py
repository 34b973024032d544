from sqlalchemy import Column, String, Text, Numeric, Date, ForeignKey, Index
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin, new_uuid, local_now


class StockTransaction(Base, TimestampMixin):
    """One movement of material stock. Append-only in intent."""
    __tablename__ = "stock_transactions"
    __table_args__ = (
        Index("ix_stock_transactions_material_date", "material_id", "transaction_date"),
    )

    id = Column(String(36), primary_key=True, default=new_uuid)
    material_id = Column(String(36), ForeignKey("materials.id", ondelete="CASCADE"), nullable=False)
    # Free text; classified by utils.stock_ledger (in/out plus legacy synonyms)
    transaction_type = Column(String(30), nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    transaction_date = Column(Date, nullable=False, default=lambda: local_now().date())
    source_type = Column(String(30), nullable=True)  # e.g. market_purchase, party_supply, opening_stock
    reason_type = Column(String(30), nullable=True)  # e.g. used_in_order, wastage, damage
    party_id = Column(String(36), ForeignKey("parties.id", ondelete="SET NULL"), nullable=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
    order_number = Column(String, nullable=True)
    rate = Column(Numeric(12, 2), nullable=True)
    remarks = Column(Text, nullable=True)
    # Informational snapshot only, never used for reporting
    balance_after = Column(Numeric(12, 2), nullable=True)

    # Relationships
    material = relationship("Material", back_populates="transactions")
    party = relationship("Party")
