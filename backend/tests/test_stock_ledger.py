"""Pure ledger engine: classification, opening balances, running balances."""
from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytz

from utils import stock_ledger
from utils.stock_ledger import StockDirection


def tx(tx_id, tx_type, qty, on, created=None, material_id="m1", source_type=None,
       party_id=None, order_number=None, order_id=None):
    return SimpleNamespace(
        id=tx_id,
        material_id=material_id,
        transaction_type=tx_type,
        quantity=Decimal(str(qty)),
        transaction_date=date.fromisoformat(on),
        created_at=created or datetime(2024, 1, 1, 10, 0, 0),
        source_type=source_type,
        reason_type=None,
        party_id=party_id,
        order_id=order_id,
        order_number=order_number,
        remarks=None,
    )


def material(material_id="m1", name="Cotton White", opening="0", unit="Pcs"):
    return SimpleNamespace(id=material_id, name=name, unit=unit, opening_stock=Decimal(opening))


class TestClassification:
    def test_increase_synonyms(self):
        for value in ("add", "in", "stock_in", "stockin", " IN ", "Add"):
            assert stock_ledger.classify_transaction_type(value) is StockDirection.IN

    def test_decrease_synonyms(self):
        for value in ("reduce", "out", "order_deduction", "stock_out", "stockout", "OUT "):
            assert stock_ledger.classify_transaction_type(value) is StockDirection.OUT

    def test_unknown_type_is_excluded(self):
        assert stock_ledger.classify_transaction_type("transfer") is None
        assert stock_ledger.classify_transaction_type(None) is None
        assert stock_ledger.signed_quantity(tx("t1", "transfer", 10, "2024-01-01")) == Decimal("0")

    def test_synonyms_give_identical_summaries(self):
        m = material()
        legacy = [tx("a", "add", 100, "2024-02-01"), tx("b", "reduce", 40, "2024-02-05")]
        canonical = [tx("a", "in", 100, "2024-02-01"), tx("b", "out", 40, "2024-02-05")]
        start, end = date(2024, 2, 1), date(2024, 2, 29)
        assert stock_ledger.summarize_material(m, legacy, start, end) == \
            stock_ledger.summarize_material(m, canonical, start, end)


class TestOpeningAndClosing:
    def test_opening_only_material(self):
        m = material(opening="500")
        summary = stock_ledger.summarize_material(m, [], date(2024, 1, 1), date(2024, 1, 31))
        assert summary == {
            "opening": Decimal("500"),
            "total_in": Decimal("0"),
            "total_out": Decimal("0"),
            "closing": Decimal("500"),
        }

    def test_mixed_vocabulary_closing(self):
        history = [
            tx("a", "add", 100, "2024-02-01"),
            tx("b", "in", 50, "2024-02-02"),
            tx("c", "out", 30, "2024-02-03"),
        ]
        summary = stock_ledger.summarize_material(material(), history, date(2024, 2, 1), date(2024, 2, 29))
        assert summary["closing"] == Decimal("120")
        assert summary["total_in"] == Decimal("150")
        assert summary["total_out"] == Decimal("30")

    def test_opening_comes_from_entries_before_window(self):
        history = [
            tx("a", "in", 200, "2024-01-10"),
            tx("b", "out", 50, "2024-01-20"),
            tx("c", "in", 10, "2024-02-03"),
            tx("d", "out", 500, "2024-03-01"),
        ]
        summary = stock_ledger.summarize_material(material(), history, date(2024, 2, 1), date(2024, 2, 29))
        assert summary["opening"] == Decimal("150")
        assert summary["closing"] == Decimal("160")

    def test_consecutive_windows_chain(self):
        history = [
            tx("a", "in", 80, "2024-01-05"),
            tx("b", "out", 15, "2024-01-31"),
            tx("c", "in", 7, "2024-02-01"),
        ]
        january = stock_ledger.summarize_material(material(), history, date(2024, 1, 1), date(2024, 1, 31))
        february = stock_ledger.summarize_material(material(), history, date(2024, 2, 1), date(2024, 2, 29))
        assert january["closing"] == february["opening"]

    def test_opening_entry_replaces_column_baseline(self):
        m = material(opening="500")
        history = [tx("o", "in", 500, "2000-01-01", source_type="opening_stock")]
        summary = stock_ledger.summarize_material(m, history, date(2024, 1, 1), date(2024, 1, 31))
        assert summary["opening"] == Decimal("500")
        assert stock_ledger.stock_from_ledger(m, history) == Decimal("500")

    def test_window_with_only_unknown_entries(self):
        history = [tx("x", "transfer", 10, "2024-01-02")]
        summary = stock_ledger.summarize_material(material(), history, date(2024, 1, 1), date(2024, 1, 31))
        assert summary["closing"] == Decimal("0")
        assert stock_ledger.unclassified_transaction_ids(history) == ["x"]


class TestRunningBalances:
    def test_same_day_ties_break_on_created_at_then_id(self):
        base = datetime(2024, 1, 1, 9, 0, 0)
        window = [
            tx("b", "out", 5, "2024-01-02", created=base + timedelta(minutes=1)),
            tx("a", "in", 20, "2024-01-02", created=base + timedelta(minutes=1)),
            tx("c", "in", 1, "2024-01-02", created=base),
        ]
        rows = stock_ledger.compute_running_balances(window, Decimal("10"))
        assert [t.id for t, _ in rows] == ["c", "a", "b"]
        assert [balance for _, balance in rows] == [Decimal("11"), Decimal("31"), Decimal("26")]

    def test_aware_and_naive_timestamps_sort_together(self):
        aware = pytz.timezone("Asia/Kolkata").localize(datetime(2024, 1, 2, 12, 0, 0))
        window = [
            tx("late", "in", 1, "2024-01-02", created=datetime(2024, 1, 2, 7, 0, 0)),
            tx("early", "in", 1, "2024-01-02", created=aware),
        ]
        assert [t.id for t in stock_ledger.sort_transactions(window)] == ["early", "late"]

    def test_detailed_ledger_last_balance_matches_closing(self):
        m = material(opening="40")
        history = [
            tx("a", "in", 10, "2024-01-15"),
            tx("b", "out", 25, "2024-02-02"),
            tx("c", "stock_in", 5, "2024-02-10"),
        ]
        rows = stock_ledger.build_detailed_ledger(history, {"m1": m}, {}, date(2024, 2, 1), date(2024, 2, 29))
        summary = stock_ledger.summarize_material(m, history, date(2024, 2, 1), date(2024, 2, 29))
        assert [r["transaction_id"] for r in rows] == ["b", "c"]
        assert rows[-1]["balance"] == summary["closing"] == Decimal("30")

    def test_empty_window_has_no_rows(self):
        rows = stock_ledger.build_detailed_ledger([], {}, {}, date(2024, 1, 1), date(2024, 1, 31))
        assert rows == []


class TestViews:
    def test_material_summary_includes_idle_materials(self):
        materials = [material("m1", "Button"), material("m2", "Zip", opening="12")]
        rows = stock_ledger.build_material_summary(
            materials, [tx("a", "in", 3, "2024-01-05")], date(2024, 1, 1), date(2024, 1, 31)
        )
        assert [r["material_name"] for r in rows] == ["Button", "Zip"]
        assert rows[1]["closing"] == Decimal("12")

    def test_party_summary_skips_partyless_and_unknown_names(self):
        window = [
            tx("a", "in", 100, "2024-01-02", party_id="p1"),
            tx("b", "out", 30, "2024-01-03", party_id="p1"),
            tx("c", "in", 5, "2024-01-04"),
            tx("d", "in", 7, "2024-01-05", party_id="p-missing", material_id="m-missing"),
        ]
        parties = {"p1": SimpleNamespace(id="p1", name="Sri Ganesh")}
        rows = stock_ledger.build_party_summary(window, {"m1": material()}, parties)
        assert len(rows) == 2
        known = next(r for r in rows if r["party_id"] == "p1")
        assert (known["received"], known["used"], known["balance"]) == (Decimal("100"), Decimal("30"), Decimal("70"))
        missing = next(r for r in rows if r["party_id"] == "p-missing")
        assert missing["party_name"] == "Unknown"
        assert missing["material_name"] == "Unknown"

    def test_order_view_is_newest_first(self):
        window = [
            tx("a", "out", 3, "2024-01-02", order_number="SG/001"),
            tx("b", "out", 4, "2024-01-09", order_number="SG/002"),
            tx("c", "in", 9, "2024-01-05"),
        ]
        rows = stock_ledger.build_order_view(window, {"m1": material()})
        assert [r["order_number"] for r in rows] == ["SG/002", "SG/001"]
        assert rows[0]["direction"] == "out"


def test_balance_holds_for_every_window_start():
    history = [
        tx("a", "add", 40, "2024-01-03"),
        tx("b", "order_deduction", 15, "2024-01-04"),
        tx("c", "stock_in", 5, "2024-01-04", created=datetime(2024, 1, 1, 11, 0, 0)),
        tx("d", "reduce", 12, "2024-01-07"),
        tx("e", "in", 3, "2024-01-09"),
    ]
    m = material(opening="10")
    end = date(2024, 1, 10)
    full_closing = stock_ledger.stock_from_ledger(m, history)
    for offset in range(12):
        start = date(2024, 1, 1) + timedelta(days=offset)
        summary = stock_ledger.summarize_material(m, history, start, max(start, end))
        assert summary["closing"] == summary["opening"] + summary["total_in"] - summary["total_out"]
        if start <= end:
            assert summary["closing"] == full_closing


def test_swapping_same_day_created_at_keeps_closing():
    first = datetime(2024, 1, 2, 9, 0, 0)
    second = datetime(2024, 1, 2, 10, 0, 0)
    one = [tx("a", "in", 10, "2024-01-02", created=first), tx("b", "out", 7, "2024-01-02", created=second)]
    two = [tx("a", "in", 10, "2024-01-02", created=second), tx("b", "out", 7, "2024-01-02", created=first)]

    balances_one = [b for _, b in stock_ledger.compute_running_balances(one, Decimal("0"))]
    balances_two = [b for _, b in stock_ledger.compute_running_balances(two, Decimal("0"))]
    assert balances_one == [Decimal("10"), Decimal("3")]
    assert balances_two == [Decimal("-7"), Decimal("3")]
