from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date
import logging

from database import get_db
from schemas.stock_reports import (
    MaterialSummaryReport,
    PartySummaryReport,
    OrderLedgerReport,
    DetailedLedgerReport,
    DashboardSummary,
)
from crud import stock_reports as crud_stock_reports
from utils.auth_utils import get_current_user

router = APIRouter(prefix="/stock-reports", tags=["Stock Reports"])
logger = logging.getLogger("stock_reports")


@router.get("/material-wise", response_model=MaterialSummaryReport)
def get_material_wise_report(
    start_date: Optional[date] = Query(None, description="Defaults to the first day of the current month"),
    end_date: Optional[date] = Query(None, description="Defaults to the last day of start_date's month"),
    material_id: Optional[str] = None,
    category_id: Optional[str] = None,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    """Opening, in, out and closing for every material in scope, idle materials included."""
    try:
        return crud_stock_reports.material_summary_report(db, start_date, end_date, material_id, category_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/party-wise", response_model=PartySummaryReport)
def get_party_wise_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    party_id: Optional[str] = None,
    material_id: Optional[str] = None,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    """Received and used quantities per party and material."""
    try:
        return crud_stock_reports.party_summary_report(db, start_date, end_date, party_id, material_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/order-wise", response_model=OrderLedgerReport)
def get_order_wise_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    party_id: Optional[str] = None,
    material_id: Optional[str] = None,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    try:
        return crud_stock_reports.order_ledger_report(db, start_date, end_date, party_id, material_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/ledger", response_model=DetailedLedgerReport)
def get_detailed_ledger(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    material_id: Optional[str] = None,
    party_id: Optional[str] = None,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    """Every entry in the window with its recomputed running balance."""
    try:
        return crud_stock_reports.detailed_ledger_report(db, start_date, end_date, material_id, party_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/dashboard", response_model=DashboardSummary)
def get_dashboard(db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    return crud_stock_reports.dashboard_summary(db)
