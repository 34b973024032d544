from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from models.orders import OrderStatus


class OrderItemCreate(BaseModel):
    particular: str
    quantity: Decimal
    quantity_unit: str = "Dzn"
    rate_per_dzn: Decimal = Decimal("0")

class OrderItem(BaseModel):
    id: str
    serial_no: int
    particular: str
    quantity: Decimal
    quantity_unit: str
    rate_per_dzn: Decimal
    total: Decimal

    class Config:
        from_attributes = True

class DeductionCreate(BaseModel):
    # Existing deduction id when editing an order; omitted for new lines
    id: Optional[str] = None
    material_id: Optional[str] = None
    material_name: str = ""
    quantity: Decimal = Decimal("0")
    rate: Decimal = Decimal("0")

class Deduction(BaseModel):
    id: str
    material_id: Optional[str] = None
    material_name: str
    quantity: Decimal
    rate: Decimal
    amount: Decimal

    class Config:
        from_attributes = True

class OrderBase(BaseModel):
    party_id: Optional[str] = None
    order_date: Optional[date] = None
    notes: Optional[str] = None

class OrderCreate(OrderBase):
    # Creates the party inline when party_id is not given
    new_party_name: Optional[str] = None
    order_number: Optional[str] = None  # custom number; generated when omitted
    items: List[OrderItemCreate] = Field(default_factory=list)
    deductions: List[DeductionCreate] = Field(default_factory=list)

class OrderUpdate(BaseModel):
    party_id: Optional[str] = None
    order_date: Optional[date] = None
    order_number: Optional[str] = None
    status: Optional[OrderStatus] = None
    notes: Optional[str] = None
    # None leaves the lines untouched; a list replaces them
    items: Optional[List[OrderItemCreate]] = None
    deductions: Optional[List[DeductionCreate]] = None

class OrderStatusUpdate(BaseModel):
    status: OrderStatus

class StockEffect(BaseModel):
    action: str  # applied | restored | unresolved | not_taken
    material_name: str
    material_id: Optional[str] = None
    quantity: Decimal
    transaction_id: Optional[str] = None

class Order(OrderBase):
    id: str
    order_number: str
    order_date: date
    status: str
    subtotal: Decimal
    raw_material_deductions: Decimal
    net_total: Decimal
    party_name: Optional[str] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItem] = []
    deductions: List[Deduction] = []

    class Config:
        from_attributes = True

class OrderWithStockEffects(Order):
    stock_effects: List[StockEffect] = []
