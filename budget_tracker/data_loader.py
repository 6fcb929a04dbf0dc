"""Transaction records and CSV import.

Analytics work on :class:`TransactionRecord`, a plain snapshot of a stored
transaction:
    transaction_date (datetime.date), transaction_type ("income"|"expense"),
    amount (positive float), category (str), payment_method (str|None)

CSV columns are auto-detected case-insensitively among common variants.
"""

from __future__ import annotations

import csv
import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Iterable, List, Optional

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_TYPES = (INCOME, EXPENSE)


@dataclass
class TransactionRecord:
    transaction_date: dt.date
    transaction_type: str
    amount: float  # always positive; the type carries the sign
    category: str = "Other"
    description: str = ""
    payment_method: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    id: Optional[int] = None

    @property
    def is_income(self) -> bool:
        return self.transaction_type == INCOME

    @property
    def signed_amount(self) -> float:
        return self.amount if self.is_income else -self.amount


def record_from_model(txn) -> TransactionRecord:
    """Snapshot a stored ``Transaction`` row."""
    return TransactionRecord(
        transaction_date=txn.transaction_date,
        transaction_type=txn.transaction_type,
        amount=float(txn.amount),
        category=txn.category.name if txn.category else "Other",
        description=txn.description or "",
        payment_method=txn.payment_method or None,
        tags=list(txn.tags or []),
        id=txn.id,
    )


def records_from_models(txns: Iterable) -> List[TransactionRecord]:
    return [record_from_model(t) for t in txns]


def _parse_date(value: str) -> dt.date:
    value = value.strip()
    # Try multiple common date formats
    for fmt in ("%Y-%m-%d", "%m/%d/%Y", "%d/%m/%Y", "%Y/%m/%d"):
        try:
            return dt.datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognized date format: {value}")


def _to_float(value: str) -> float:
    v = value.replace(",", "").replace("₱", "").strip()
    # Some exports wrap negatives in parentheses, e.g., (12.34)
    if v.startswith("(") and v.endswith(")"):
        v = "-" + v[1:-1]
    try:
        return float(v)
    except ValueError as exc:
        raise ValueError(f"Invalid amount: {value}") from exc


def _find_column(row_keys: Iterable[str], candidates: Iterable[str]) -> Optional[str]:
    low = {k.lower().strip(): k for k in row_keys}
    for cand in candidates:
        if cand.lower() in low:
            return low[cand.lower()]
    return None


_DATE_COLS = ("date", "transaction date", "transaction_date", "posted date")
_DESC_COLS = ("description", "details", "memo", "name")
_AMT_COLS = ("amount", "amt", "value")
_TYPE_COLS = ("type", "transaction type", "transaction_type")
_CATEGORY_COLS = ("category", "category name")
_METHOD_COLS = ("payment method", "payment_method", "method")
_TAG_COLS = ("tags", "labels")


def load_csv_stream(stream: IO[str], label: str = "<stream>") -> List[TransactionRecord]:
    """Read transactions from an open CSV text stream.

    A ``type`` column wins when present; otherwise negative amounts are
    expenses and positive amounts are income.
    """
    reader = csv.DictReader(stream)
    fieldnames = reader.fieldnames or []
    date_col = _find_column(fieldnames, _DATE_COLS)
    desc_col = _find_column(fieldnames, _DESC_COLS)
    amt_col = _find_column(fieldnames, _AMT_COLS)
    type_col = _find_column(fieldnames, _TYPE_COLS)
    cat_col = _find_column(fieldnames, _CATEGORY_COLS)
    method_col = _find_column(fieldnames, _METHOD_COLS)
    tag_col = _find_column(fieldnames, _TAG_COLS)

    if not date_col or not amt_col:
        raise ValueError(f"{label}: Missing required columns. Need date and amount.")

    records: List[TransactionRecord] = []
    for line_no, row in enumerate(reader, start=2):
        try:
            date = _parse_date(row[date_col] or "")
            amount = _to_float(row[amt_col] or "")
        except ValueError as exc:
            raise ValueError(f"{label} line {line_no}: {exc}") from exc
        if amount == 0:
            continue
        tx_type = (row.get(type_col) or "").strip().lower() if type_col else ""
        if tx_type not in TRANSACTION_TYPES:
            tx_type = INCOME if amount > 0 else EXPENSE
        tags = []
        if tag_col and row.get(tag_col):
            tags = [t.strip() for t in row[tag_col].replace(";", ",").split(",") if t.strip()]
        records.append(
            TransactionRecord(
                transaction_date=date,
                transaction_type=tx_type,
                amount=abs(amount),
                category=((row.get(cat_col) or "").strip() if cat_col else "") or "",
                description=((row.get(desc_col) or "").strip() if desc_col else ""),
                payment_method=((row.get(method_col) or "").strip() or None) if method_col else None,
                tags=tags,
            )
        )
    return records


def load_csv_file(path: str | Path) -> List[TransactionRecord]:
    p = Path(path)
    with p.open("r", encoding="utf-8-sig", newline="") as f:
        records = load_csv_stream(f, label=p.name)
    # Sort by date ascending
    records.sort(key=lambda r: (r.transaction_date, r.description, r.amount))
    return records
