from pydantic import BaseModel
from typing import Optional, List
from datetime import date
from decimal import Decimal


class MaterialSummaryRow(BaseModel):
    material_id: str
    material_name: str
    unit: Optional[str] = None
    opening: Decimal
    total_in: Decimal
    total_out: Decimal
    closing: Decimal

class PartySummaryRow(BaseModel):
    party_id: str
    party_name: str
    material_id: str
    material_name: str
    unit: Optional[str] = None
    received: Decimal
    used: Decimal
    balance: Decimal

class OrderLedgerRow(BaseModel):
    transaction_id: str
    transaction_date: date
    order_id: Optional[str] = None
    order_number: str
    material_id: str
    material_name: str
    unit: Optional[str] = None
    party_name: Optional[str] = None
    direction: Optional[str] = None
    quantity: Decimal
    remarks: Optional[str] = None

class LedgerEntryRow(BaseModel):
    transaction_id: str
    transaction_date: date
    material_id: str
    material_name: str
    unit: Optional[str] = None
    transaction_type: str
    direction: Optional[str] = None
    quantity: Decimal
    balance: Decimal
    source_type: Optional[str] = None
    reason_type: Optional[str] = None
    party_name: Optional[str] = None
    order_number: Optional[str] = None
    remarks: Optional[str] = None

class ReportWindow(BaseModel):
    start_date: date
    end_date: date
    unclassified_transaction_ids: List[str] = []

class MaterialSummaryReport(ReportWindow):
    rows: List[MaterialSummaryRow]
    total_in: Decimal
    total_out: Decimal

class PartySummaryReport(ReportWindow):
    rows: List[PartySummaryRow]

class OrderLedgerReport(ReportWindow):
    rows: List[OrderLedgerRow]

class DetailedLedgerReport(ReportWindow):
    rows: List[LedgerEntryRow]

class MaterialLedgerReport(ReportWindow):
    material_id: str
    material_name: str
    unit: Optional[str] = None
    opening: Decimal
    total_in: Decimal
    total_out: Decimal
    closing: Decimal
    current_stock: Decimal
    entries: List[LedgerEntryRow]

class LowStockMaterial(BaseModel):
    material_id: str
    material_name: str
    unit: Optional[str] = None
    current_stock: Decimal
    min_stock: Decimal

class DashboardSummary(BaseModel):
    total_orders: int
    pending_orders: int
    completed_orders: int
    pending_amount: Decimal
    today_total: Decimal
    monthly_total: Decimal
    total_parties: int
    total_materials: int
    low_stock: List[LowStockMaterial]
