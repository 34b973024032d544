from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal
from datetime import datetime


class MaterialBase(BaseModel):
    name: str
    category_id: Optional[str] = None
    unit: str = "Pcs"
    rate: Decimal = Decimal("0")
    min_stock: Decimal = Decimal("0")
    notes: Optional[str] = None

class MaterialCreate(MaterialBase):
    # current_stock starts at the opening stock and is system-managed afterwards
    opening_stock: Decimal = Field(default=Decimal("0"), ge=0)

class MaterialUpdate(BaseModel):
    name: Optional[str] = None
    category_id: Optional[str] = None
    unit: Optional[str] = None
    rate: Optional[Decimal] = None
    min_stock: Optional[Decimal] = None
    notes: Optional[str] = None
    # opening_stock and current_stock are changed only through the stock endpoints

class OpeningStockUpdate(BaseModel):
    opening_stock: Decimal = Field(ge=0)
    remarks: Optional[str] = None

class Material(MaterialBase):
    id: str
    opening_stock: Decimal
    current_stock: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
