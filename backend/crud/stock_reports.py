import calendar
import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.materials import Material
from models.orders import Order, OrderStatus
from models.parties import Party
from models.audit_mixin import local_now
from schemas import stock_reports as schemas
from crud.app_config import is_low_stock_alert_enabled
from crud.stock_transactions import get_history_up_to
from utils import stock_ledger
from utils.stock_ledger import to_decimal

logger = logging.getLogger(__name__)


def resolve_window(start_date: Optional[date], end_date: Optional[date]) -> Tuple[date, date]:
    """Fill in missing bounds with the current month."""
    today = local_now().date()
    if start_date is None:
        start_date = today.replace(day=1)
    if end_date is None:
        end_date = start_date.replace(day=calendar.monthrange(start_date.year, start_date.month)[1])
    if start_date > end_date:
        raise ValueError("start_date must be on or before end_date")
    return start_date, end_date


def _materials_in_scope(db: Session, material_id: str = None, category_id: str = None):
    query = db.query(Material)
    if material_id:
        query = query.filter(Material.id == material_id)
    if category_id:
        query = query.filter(Material.category_id == category_id)
    return query.order_by(Material.name).all()


def _material_map(db: Session):
    return {m.id: m for m in db.query(Material).all()}


def _party_map(db: Session):
    return {p.id: p for p in db.query(Party).all()}


def _window_only(history, start_date: date, end_date: date):
    return [tx for tx in history if stock_ledger.in_window(tx, start_date, end_date)]


def material_summary_report(db: Session, start_date: date = None, end_date: date = None,
                            material_id: str = None, category_id: str = None):
    start_date, end_date = resolve_window(start_date, end_date)
    materials = _materials_in_scope(db, material_id, category_id)
    history = get_history_up_to(db, end_date, [m.id for m in materials])

    rows = [schemas.MaterialSummaryRow(**row) for row in
            stock_ledger.build_material_summary(materials, history, start_date, end_date)]
    window = _window_only(history, start_date, end_date)
    return schemas.MaterialSummaryReport(
        start_date=start_date,
        end_date=end_date,
        rows=rows,
        total_in=sum((r.total_in for r in rows), Decimal("0")),
        total_out=sum((r.total_out for r in rows), Decimal("0")),
        unclassified_transaction_ids=stock_ledger.unclassified_transaction_ids(window),
    )


def party_summary_report(db: Session, start_date: date = None, end_date: date = None,
                         party_id: str = None, material_id: str = None):
    start_date, end_date = resolve_window(start_date, end_date)
    window = _window_only(get_history_up_to(db, end_date, [material_id] if material_id else None), start_date, end_date)
    if party_id:
        window = [tx for tx in window if tx.party_id == party_id]

    rows = stock_ledger.build_party_summary(window, _material_map(db), _party_map(db))
    return schemas.PartySummaryReport(
        start_date=start_date,
        end_date=end_date,
        rows=[schemas.PartySummaryRow(**row) for row in rows],
        unclassified_transaction_ids=stock_ledger.unclassified_transaction_ids(window),
    )


def order_ledger_report(db: Session, start_date: date = None, end_date: date = None,
                        party_id: str = None, material_id: str = None):
    start_date, end_date = resolve_window(start_date, end_date)
    window = _window_only(get_history_up_to(db, end_date, [material_id] if material_id else None), start_date, end_date)
    if party_id:
        window = [tx for tx in window if tx.party_id == party_id]

    rows = stock_ledger.build_order_view(window, _material_map(db), _party_map(db))
    return schemas.OrderLedgerReport(
        start_date=start_date,
        end_date=end_date,
        rows=[schemas.OrderLedgerRow(**row) for row in rows],
        unclassified_transaction_ids=stock_ledger.unclassified_transaction_ids(window),
    )


def detailed_ledger_report(db: Session, start_date: date = None, end_date: date = None,
                           material_id: str = None, party_id: str = None):
    start_date, end_date = resolve_window(start_date, end_date)
    # Running balances need every entry of the material, so party filtering happens afterwards
    history = get_history_up_to(db, end_date, [material_id] if material_id else None)
    rows = stock_ledger.build_detailed_ledger(history, _material_map(db), _party_map(db), start_date, end_date)
    if party_id:
        party_tx_ids = {tx.id for tx in history if tx.party_id == party_id}
        rows = [row for row in rows if row["transaction_id"] in party_tx_ids]

    return schemas.DetailedLedgerReport(
        start_date=start_date,
        end_date=end_date,
        rows=[schemas.LedgerEntryRow(**row) for row in rows],
        unclassified_transaction_ids=stock_ledger.unclassified_transaction_ids(_window_only(history, start_date, end_date)),
    )


def material_ledger_report(db: Session, material_id: str, start_date: date = None, end_date: date = None):
    """Ledger card for one material. None when the material does not exist."""
    material = db.query(Material).filter(Material.id == material_id).first()
    if material is None:
        return None
    start_date, end_date = resolve_window(start_date, end_date)
    history = get_history_up_to(db, end_date, [material_id])
    summary = stock_ledger.summarize_material(material, history, start_date, end_date)
    entries = stock_ledger.build_detailed_ledger(history, {material.id: material}, _party_map(db), start_date, end_date)

    return schemas.MaterialLedgerReport(
        start_date=start_date,
        end_date=end_date,
        material_id=material.id,
        material_name=material.name,
        unit=material.unit,
        current_stock=to_decimal(material.current_stock),
        entries=[schemas.LedgerEntryRow(**row) for row in entries],
        unclassified_transaction_ids=stock_ledger.unclassified_transaction_ids(_window_only(history, start_date, end_date)),
        **summary,
    )


def dashboard_summary(db: Session):
    today = local_now().date()
    month_start = today.replace(day=1)

    def _sum_net(*filters):
        return to_decimal(db.query(func.coalesce(func.sum(Order.net_total), 0)).filter(*filters).scalar())

    low_stock = []
    if is_low_stock_alert_enabled(db):
        for material in db.query(Material).filter(Material.min_stock > 0).order_by(Material.name).all():
            if to_decimal(material.current_stock) <= to_decimal(material.min_stock):
                low_stock.append(schemas.LowStockMaterial(
                    material_id=material.id,
                    material_name=material.name,
                    unit=material.unit,
                    current_stock=to_decimal(material.current_stock),
                    min_stock=to_decimal(material.min_stock),
                ))

    return schemas.DashboardSummary(
        total_orders=db.query(func.count(Order.id)).scalar() or 0,
        pending_orders=db.query(func.count(Order.id)).filter(Order.status == OrderStatus.PENDING.value).scalar() or 0,
        completed_orders=db.query(func.count(Order.id)).filter(Order.status == OrderStatus.COMPLETED.value).scalar() or 0,
        pending_amount=_sum_net(Order.status == OrderStatus.PENDING.value),
        today_total=_sum_net(Order.order_date == today),
        monthly_total=_sum_net(Order.order_date >= month_start, Order.order_date <= today),
        total_parties=db.query(func.count(Party.id)).scalar() or 0,
        total_materials=db.query(func.count(Material.id)).scalar() or 0,
        low_stock=low_stock,
    )
