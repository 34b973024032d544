"""
Stock ledger reconciliation engine.

Pure functions over stock transaction records. Nothing here touches the
database: callers load the material's full transaction history and pass it
in. Any object exposing ``id``, ``material_id``, ``transaction_type``,
``quantity``, ``transaction_date`` and ``created_at`` attributes works, so the
same code serves ORM rows, backup records and test fixtures.

Rules:
- transaction types are trimmed and lower-cased, then matched against the
  increase and decrease vocabularies below; anything else is a data error that
  is logged and contributes to neither total
- opening balance for a window is the net of every transaction dated strictly
  before the window start, on top of the material's baseline
- running balances are recomputed in (transaction_date, created_at, id) order;
  the stored ``balance_after`` snapshot is never read
- closing = opening + total_in - total_out
"""

import enum
import logging
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import pytz

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"
OPENING_STOCK_SOURCE = "opening_stock"

INCREASE_TYPES = frozenset({"add", "in", "stock_in", "stockin"})
DECREASE_TYPES = frozenset({"reduce", "out", "order_deduction", "stock_out", "stockout"})

ZERO = Decimal("0")


class StockDirection(str, enum.Enum):
    IN = "in"
    OUT = "out"


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def normalize_transaction_type(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def classify_transaction_type(value: Optional[str]) -> Optional[StockDirection]:
    """Map a stored transaction type onto a direction, or None when unrecognised."""
    normalized = normalize_transaction_type(value)
    if normalized in INCREASE_TYPES:
        return StockDirection.IN
    if normalized in DECREASE_TYPES:
        return StockDirection.OUT
    return None


def signed_quantity(tx) -> Decimal:
    """Quantity with its sign applied; zero for unclassifiable types."""
    direction = classify_transaction_type(tx.transaction_type)
    if direction is None:
        logger.warning(
            f"Stock transaction {getattr(tx, 'id', None)} has unrecognised type "
            f"'{tx.transaction_type}'; excluded from balances"
        )
        return ZERO
    quantity = to_decimal(tx.quantity)
    return quantity if direction is StockDirection.IN else -quantity


def _comparable_datetime(value) -> datetime:
    if value is None:
        return datetime.min
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(pytz.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value))


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def ledger_sort_key(tx):
    """Deterministic chronological order: business date, then insertion time, then id."""
    return (_as_date(tx.transaction_date), _comparable_datetime(tx.created_at), str(tx.id or ""))


def sort_transactions(transactions: Iterable) -> list:
    return sorted(transactions, key=ledger_sort_key)


def unclassified_transaction_ids(transactions: Iterable) -> List[str]:
    return [str(tx.id) for tx in transactions if classify_transaction_type(tx.transaction_type) is None]


def has_opening_entry(history: Iterable) -> bool:
    return any((tx.source_type or "") == OPENING_STOCK_SOURCE for tx in history)


def ledger_baseline(material, history: Iterable) -> Decimal:
    """Stock a material holds before its first ledger entry.

    The ``opening_stock`` column counts only while the ledger has no
    opening_stock entry for the material; once one exists the entry carries
    the balance and the column would double count it.
    """
    if material is None or has_opening_entry(history):
        return ZERO
    return to_decimal(material.opening_stock)


def compute_opening_stock(history: Iterable, start: date, baseline=ZERO) -> Decimal:
    """Balance at the start of ``start``. ``history`` must be unfiltered by date."""
    start = _as_date(start)
    opening = to_decimal(baseline)
    for tx in history:
        if _as_date(tx.transaction_date) < start:
            opening += signed_quantity(tx)
    return opening


def in_window(tx, start: date, end: date) -> bool:
    tx_date = _as_date(tx.transaction_date)
    return _as_date(start) <= tx_date <= _as_date(end)


def compute_running_balances(window_transactions: Iterable, opening=ZERO) -> list:
    """Return ``(tx, balance)`` pairs in ledger order, folding from ``opening``."""
    balance = to_decimal(opening)
    rows = []
    for tx in sort_transactions(window_transactions):
        balance += signed_quantity(tx)
        rows.append((tx, balance))
    return rows


def window_totals(window_transactions: Iterable):
    total_in = ZERO
    total_out = ZERO
    for tx in window_transactions:
        direction = classify_transaction_type(tx.transaction_type)
        if direction is StockDirection.IN:
            total_in += to_decimal(tx.quantity)
        elif direction is StockDirection.OUT:
            total_out += to_decimal(tx.quantity)
    return total_in, total_out


def summarize_material(material, history: Iterable, start: date, end: date) -> dict:
    """Opening, in, out and closing for one material over ``[start, end]``."""
    history = list(history)
    baseline = ledger_baseline(material, history)
    opening = compute_opening_stock(history, start, baseline)
    window = [tx for tx in history if in_window(tx, start, end)]
    total_in, total_out = window_totals(window)
    return {
        "opening": opening,
        "total_in": total_in,
        "total_out": total_out,
        "closing": opening + total_in - total_out,
    }


def stock_from_ledger(material, history: Iterable) -> Decimal:
    """Closing balance over the complete history; what ``current_stock`` should hold."""
    history = list(history)
    balance = ledger_baseline(material, history)
    for tx in history:
        balance += signed_quantity(tx)
    return balance


def group_by_material(transactions: Iterable) -> Dict[str, list]:
    grouped: Dict[str, list] = {}
    for tx in transactions:
        grouped.setdefault(tx.material_id, []).append(tx)
    return grouped


def build_material_summary(materials: Iterable, history: Iterable, start: date, end: date) -> List[dict]:
    """One row per material in scope, including materials with no activity."""
    by_material = group_by_material(history)
    rows = []
    for material in materials:
        summary = summarize_material(material, by_material.get(material.id, []), start, end)
        rows.append({
            "material_id": material.id,
            "material_name": material.name or UNKNOWN_NAME,
            "unit": material.unit,
            **summary,
        })
    return rows


def build_party_summary(window_transactions: Iterable, materials: Dict[str, object], parties: Dict[str, object]) -> List[dict]:
    """Received/used per (party, material). Transactions without a party are left out."""
    groups: "OrderedDict[tuple, dict]" = OrderedDict()
    for tx in sort_transactions(window_transactions):
        party_id = getattr(tx, "party_id", None)
        if not party_id:
            continue
        direction = classify_transaction_type(tx.transaction_type)
        if direction is None:
            continue
        key = (party_id, tx.material_id)
        row = groups.get(key)
        if row is None:
            party = parties.get(party_id)
            material = materials.get(tx.material_id)
            row = {
                "party_id": party_id,
                "party_name": party.name if party is not None else UNKNOWN_NAME,
                "material_id": tx.material_id,
                "material_name": material.name if material is not None else UNKNOWN_NAME,
                "unit": material.unit if material is not None else None,
                "received": ZERO,
                "used": ZERO,
            }
            groups[key] = row
        if direction is StockDirection.IN:
            row["received"] += to_decimal(tx.quantity)
        else:
            row["used"] += to_decimal(tx.quantity)

    rows = []
    for row in groups.values():
        row["balance"] = row["received"] - row["used"]
        rows.append(row)
    rows.sort(key=lambda r: (r["party_name"].lower(), r["material_name"].lower()))
    return rows


def build_order_view(window_transactions: Iterable, materials: Dict[str, object], parties: Optional[Dict[str, object]] = None) -> List[dict]:
    """Order-linked transactions, newest first."""
    parties = parties or {}
    order_rows = [tx for tx in window_transactions if getattr(tx, "order_number", None)]
    rows = []
    for tx in sorted(order_rows, key=ledger_sort_key, reverse=True):
        material = materials.get(tx.material_id)
        party = parties.get(getattr(tx, "party_id", None))
        direction = classify_transaction_type(tx.transaction_type)
        rows.append({
            "transaction_id": tx.id,
            "transaction_date": _as_date(tx.transaction_date),
            "order_id": getattr(tx, "order_id", None),
            "order_number": tx.order_number,
            "material_id": tx.material_id,
            "material_name": material.name if material is not None else UNKNOWN_NAME,
            "unit": material.unit if material is not None else None,
            "party_name": party.name if party is not None else (UNKNOWN_NAME if getattr(tx, "party_id", None) else None),
            "direction": direction.value if direction is not None else None,
            "quantity": to_decimal(tx.quantity),
            "remarks": getattr(tx, "remarks", None),
        })
    return rows


def build_detailed_ledger(history: Iterable, materials: Dict[str, object], parties: Dict[str, object], start: date, end: date) -> List[dict]:
    """Every in-window entry with its recomputed per-material running balance."""
    keyed_rows = []
    for material_id, material_history in group_by_material(history).items():
        material = materials.get(material_id)
        baseline = ledger_baseline(material, material_history)
        opening = compute_opening_stock(material_history, start, baseline)
        window = [tx for tx in material_history if in_window(tx, start, end)]
        for tx, balance in compute_running_balances(window, opening):
            party = parties.get(getattr(tx, "party_id", None))
            direction = classify_transaction_type(tx.transaction_type)
            keyed_rows.append((ledger_sort_key(tx), {
                "transaction_id": tx.id,
                "transaction_date": _as_date(tx.transaction_date),
                "material_id": material_id,
                "material_name": material.name if material is not None else UNKNOWN_NAME,
                "unit": material.unit if material is not None else None,
                "transaction_type": tx.transaction_type,
                "direction": direction.value if direction is not None else None,
                "quantity": to_decimal(tx.quantity),
                "balance": balance,
                "source_type": getattr(tx, "source_type", None),
                "reason_type": getattr(tx, "reason_type", None),
                "party_name": party.name if party is not None else None,
                "order_number": getattr(tx, "order_number", None),
                "remarks": getattr(tx, "remarks", None),
            }))
    keyed_rows.sort(key=lambda pair: pair[0])
    return [row for _, row in keyed_rows]
