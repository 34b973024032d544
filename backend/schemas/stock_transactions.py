from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

SOURCE_TYPES = ["market_purchase", "party_supply", "other_supplier", "return", "adjustment", "opening_stock"]
REASON_TYPES = ["used_in_order", "wastage", "sample", "damage", "returned", "adjustment"]


class StockInCreate(BaseModel):
    material_id: str
    quantity: Decimal = Field(gt=0)
    transaction_date: Optional[date] = None
    source_type: str = "market_purchase"
    party_id: Optional[str] = None
    rate: Optional[Decimal] = None
    remarks: Optional[str] = None

class StockOutCreate(BaseModel):
    material_id: str
    quantity: Decimal = Field(gt=0)
    transaction_date: Optional[date] = None
    reason_type: str = "wastage"
    party_id: Optional[str] = None
    remarks: Optional[str] = None

class StockTransaction(BaseModel):
    id: str
    material_id: str
    transaction_type: str
    quantity: Decimal
    transaction_date: date
    source_type: Optional[str] = None
    reason_type: Optional[str] = None
    party_id: Optional[str] = None
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    rate: Optional[Decimal] = None
    remarks: Optional[str] = None
    balance_after: Optional[Decimal] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
