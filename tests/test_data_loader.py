"""Tests for CSV import and model snapshots."""

import datetime as dt
import io
from types import SimpleNamespace

import pytest

from budget_tracker.data_loader import (
    EXPENSE,
    INCOME,
    load_csv_file,
    load_csv_stream,
    record_from_model,
)

BANK_EXPORT = """Date,Description,Amount,Category,Payment Method,Tags
2025-11-02,Puregold,"-1,250.50",Groceries,GCash,food; weekly
11/03/2025,November salary,30000,Salary,,
2025-11-04,Zero row,0,,,
2025-11-05,Refund reversal,(12.34),,,
"""


class TestLoadCsv:
    def test_sign_decides_type(self):
        records = load_csv_stream(io.StringIO(BANK_EXPORT))
        assert len(records) == 3

        groceries, salary, reversal = records
        assert groceries.transaction_type == EXPENSE
        assert groceries.amount == 1250.5
        assert groceries.category == "Groceries"
        assert groceries.payment_method == "GCash"
        assert groceries.tags == ["food", "weekly"]

        assert salary.transaction_date == dt.date(2025, 11, 3)
        assert salary.transaction_type == INCOME
        assert salary.payment_method is None

        assert reversal.transaction_type == EXPENSE
        assert reversal.amount == 12.34
        assert reversal.signed_amount == -12.34

    def test_type_column_wins(self):
        data = "date,amount,type\n2025-11-01,50,expense\n2025-11-02,-20,income\n"
        records = load_csv_stream(io.StringIO(data))
        assert [(r.transaction_type, r.amount) for r in records] == [(EXPENSE, 50.0), (INCOME, 20.0)]

    def test_missing_required_columns(self):
        with pytest.raises(ValueError, match="Need date and amount"):
            load_csv_stream(io.StringIO("description,amount\nx,1\n"))

    def test_bad_date_reports_line(self):
        with pytest.raises(ValueError, match="line 2"):
            load_csv_stream(io.StringIO("date,amount\nyesterday,10\n"), label="bad.csv")

    def test_file_is_sorted_by_date(self, tmp_path):
        path = tmp_path / "statement.csv"
        path.write_text("Date,Amount,Description\n2025-11-09,-5,b\n2025-11-01,-7,a\n", encoding="utf-8")
        records = load_csv_file(path)
        assert [r.description for r in records] == ["a", "b"]


class TestRecordFromModel:
    def test_snapshot(self):
        txn = SimpleNamespace(
            id=4,
            transaction_date=dt.date(2025, 11, 2),
            transaction_type="expense",
            amount=99.5,
            category=SimpleNamespace(name="Dining Out"),
            description=None,
            payment_method="",
            tags=None,
        )
        rec = record_from_model(txn)
        assert rec.category == "Dining Out"
        assert rec.description == ""
        assert rec.payment_method is None
        assert rec.tags == []
        assert rec.is_income is False
