"""Reporting utilities.

Bundles analytics into one JSON-serializable summary and formats it as text
or CSV. The formatting helpers double as Jinja filters.
"""

from __future__ import annotations

import csv
import datetime as dt
import json
from pathlib import Path
from typing import Dict, IO, Iterable, List, Mapping, Optional

from . import analytics as an
from .data_loader import EXPENSE, INCOME, TransactionRecord

CURRENCY_SYMBOLS = {"PHP": "₱", "USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥"}


def format_currency(amount: Optional[float], currency: str = "PHP") -> str:
    value = float(amount or 0.0)
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper() + " ")
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_date(value: dt.date | str | None) -> str:
    """``2025-11-02`` -> ``Nov 2, 2025``."""
    if value is None or value == "":
        return ""
    if isinstance(value, str):
        value = dt.date.fromisoformat(value[:10])
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def format_month(key: str, long: bool = False) -> str:
    """``2025-11`` -> ``Nov 2025`` (``November 2025`` when ``long``)."""
    start = an.parse_month_key(key)
    if start is None:
        return key
    return start.strftime("%B %Y" if long else "%b %Y")


def build_summary(
    txns: Iterable[TransactionRecord],
    budgets: Optional[Mapping[str, float]] = None,
    month: Optional[str] = None,
    trend_category: Optional[str] = None,
    today: Optional[dt.date] = None,
) -> Dict:
    """Everything the analytics page, the summary API and the CLI report show.

    ``txns`` should already be restricted to the period being viewed; the
    monthly series and growth use whatever months are present.
    """
    txns = list(txns)
    today = today or dt.date.today()
    totals = an.calculate_financial_summary(txns)
    category_totals = an.group_by_category(txns, EXPENSE)
    total_for_pct = sum(category_totals.values())
    top = an.get_top_categories(txns, 8)
    for item in top:
        item["percentage"] = an.calculate_percentage(item["amount"], total_for_pct)

    monthly = an.get_monthly_summary(txns)
    velocity_month = an.parse_month_key(month) if month else None
    trend_months = list(reversed(an.recent_months(velocity_month or today, 6)))
    trend_category = trend_category or (top[0]["name"] if top else None)

    summary = {
        "month": month,
        "totals": totals,
        "income_count": sum(1 for t in txns if t.transaction_type == INCOME),
        "expense_count": sum(1 for t in txns if t.transaction_type == EXPENSE),
        "savings_rate": an.calculate_savings_rate(totals["total_income"], totals["total_expenses"]),
        "average_expense": an.calculate_average_transaction(txns, EXPENSE),
        "average_income": an.calculate_average_transaction(txns, INCOME),
        "average_transaction": an.calculate_average_transaction(txns),
        "expense_growth": an.get_month_over_month_growth(txns, EXPENSE),
        "income_growth": an.get_month_over_month_growth(txns, INCOME),
        "top_categories": top,
        "monthly": monthly,
        "recent_months": monthly[-6:],
        "weekly_pattern": an.get_weekly_spending_pattern(txns),
        "payment_methods": an.get_payment_method_breakdown(txns),
        "daily_velocity": an.get_daily_spending_velocity(
            txns,
            velocity_month.year if velocity_month else None,
            velocity_month.month if velocity_month else None,
        ),
        "trend_category": trend_category,
        "category_trend": an.get_category_trend(txns, trend_category, trend_months) if trend_category else [],
        "transaction_count": len(txns),
    }
    summary["budget_usage"] = an.calculate_budget_usage(txns, budgets)
    return summary


def format_text_report(summary: Dict, currency: str = "PHP") -> str:
    def money(v) -> str:
        return format_currency(v, currency)

    lines: List[str] = []
    t = summary["totals"]
    title = "=== Budget Summary"
    if summary.get("month"):
        title += f" ({format_month(summary['month'], long=True)})"
    lines.append(title + " ===")
    lines.append(f"Income:       {money(t['total_income'])}")
    lines.append(f"Expenses:     {money(t['total_expenses'])}")
    lines.append(f"Net:          {money(t['net_amount'])}")
    lines.append(f"Savings rate: {summary['savings_rate']:.2f}%")
    lines.append(f"Avg expense:  {money(summary['average_expense'])}")
    lines.append(f"Expense growth (MoM): {summary['expense_growth']:+.2f}%")
    lines.append("")

    lines.append("-- Top Categories --")
    for item in summary["top_categories"]:
        lines.append(f"{item['name']:18} {money(item['amount']):>14}  {item['percentage']:5.1f}%")
    lines.append("")

    lines.append("-- Monthly Totals --")
    for m in summary["monthly"]:
        lines.append(
            f"{format_month(m['month'])} | Inc {money(m['total_income'])}  "
            f"Exp {money(m['total_expenses'])}  Net {money(m['net_amount'])}"
        )
    lines.append("")

    if summary["payment_methods"]:
        lines.append("-- Payment Methods --")
        for item in summary["payment_methods"]:
            lines.append(f"{item['method']:18} {money(item['amount']):>14}")
        lines.append("")

    usage = summary.get("budget_usage")
    if usage:
        lines.append("-- Budgets --")
        for row in usage:
            flag = "  OVER" if row["over"] else ""
            lines.append(
                f"{row['category']:18} Limit {money(row['limit'])}  Spent {money(row['spent'])}  "
                f"Remaining {money(row['remaining'])}{flag}"
            )
    return "\n".join(lines).rstrip() + "\n"


def save_json(summary: Dict, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2)


def _ensure_text_writer(target: str | Path | IO[str]):
    if hasattr(target, "write"):
        return target, None
    path = Path(target)
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = path.open("w", newline="", encoding="utf-8")
    return handle, handle


def export_summary_csv(summary: Dict, path: str | Path | IO[str]) -> None:
    def fmt_amount(value) -> str:
        if value is None:
            return ""
        return f"{float(value):.2f}"

    rows: List[List[str]] = [["Section", "Item", "Metric", "Value"]]

    totals = summary.get("totals") or {}
    for key, label in (("total_income", "Income"), ("total_expenses", "Expenses"), ("net_amount", "Net")):
        if key in totals:
            rows.append(["Totals", "", label, fmt_amount(totals.get(key))])
    rows.append(["Totals", "", "Savings Rate %", fmt_amount(summary.get("savings_rate"))])

    for item in summary.get("top_categories") or []:
        rows.append(["Top Categories", item["name"], "Amount", fmt_amount(item["amount"])])

    for m in summary.get("monthly") or []:
        for key, label in (("total_income", "Income"), ("total_expenses", "Expenses"), ("net_amount", "Net")):
            rows.append(["Monthly Totals", m["month"], label, fmt_amount(m.get(key))])

    for item in summary.get("payment_methods") or []:
        rows.append(["Payment Methods", item["method"], "Amount", fmt_amount(item["amount"])])

    for row in summary.get("budget_usage") or []:
        for key, label in (("limit", "Limit"), ("spent", "Spent"), ("remaining", "Remaining")):
            rows.append(["Budgets", row["category"], label, fmt_amount(row.get(key))])

    txn_count = summary.get("transaction_count")
    if txn_count is not None:
        rows.append(["Metadata", "Transaction Count", "", str(txn_count)])

    writer_target, to_close = _ensure_text_writer(path)
    try:
        writer = csv.writer(writer_target, lineterminator="\n")
        writer.writerows(rows)
    finally:
        if to_close is not None:
            to_close.close()
