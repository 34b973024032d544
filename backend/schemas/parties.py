from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class PartyBase(BaseModel):
    name: str
    prefix: Optional[str] = None  # generated from the name when omitted
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None

class PartyCreate(PartyBase):
    pass

class PartyUpdate(BaseModel):
    name: Optional[str] = None
    prefix: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None

class Party(PartyBase):
    id: str
    last_order_number: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class NextOrderNumber(BaseModel):
    party_id: str
    order_number: str
