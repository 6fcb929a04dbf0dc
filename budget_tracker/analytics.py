"""Analytics and trend calculations.

Pure functions over transaction records. Each metric is a single pass over
the input and none of them touch the database.
"""

from __future__ import annotations

import calendar
import datetime as dt
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .data_loader import EXPENSE, INCOME, TransactionRecord

# Sunday first, matching the weekly chart
WEEKDAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def month_key(d: dt.date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def parse_month_key(value: str) -> Optional[dt.date]:
    """``"2025-11"`` -> ``date(2025, 11, 1)``; None for anything else."""
    try:
        year_s, month_s = value.split("-")
        return dt.date(int(year_s), int(month_s), 1)
    except (AttributeError, ValueError):
        return None


def filter_by_month(txns: Iterable[TransactionRecord], month: Optional[str]) -> List[TransactionRecord]:
    if not month:
        return list(txns)
    return [t for t in txns if month_key(t.transaction_date) == month]


def calculate_total_by_type(txns: Iterable[TransactionRecord], tx_type: str) -> float:
    return round(sum(t.amount for t in txns if t.transaction_type == tx_type), 2)


def calculate_financial_summary(txns: Iterable[TransactionRecord]) -> Dict[str, float]:
    income = 0.0
    expenses = 0.0
    for t in txns:
        if t.transaction_type == INCOME:
            income += t.amount
        elif t.transaction_type == EXPENSE:
            expenses += t.amount
    return {
        "total_income": round(income, 2),
        "total_expenses": round(expenses, 2),
        "net_amount": round(income - expenses, 2),
    }


def group_by_category(txns: Iterable[TransactionRecord], tx_type: str = EXPENSE) -> Dict[str, float]:
    """Totals per category name, keyed in order of first occurrence."""
    totals: Dict[str, float] = {}
    for t in txns:
        if t.transaction_type != tx_type:
            continue
        cat = t.category or "Other"
        totals[cat] = totals.get(cat, 0.0) + t.amount
    return {k: round(v, 2) for k, v in totals.items()}


def get_top_categories(txns: Iterable[TransactionRecord], limit: int = 8) -> List[Dict[str, float]]:
    """Expense categories ranked by total spend.

    ``sorted`` is stable, so equal totals keep first-occurrence order.
    """
    totals = group_by_category(txns, EXPENSE)
    ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    if limit is not None and limit >= 0:
        ranked = ranked[:limit]
    return [{"name": name, "amount": amount} for name, amount in ranked]


def get_monthly_summary(txns: Iterable[TransactionRecord]) -> List[Dict[str, float]]:
    """Income/expense/net per calendar month, oldest first.

    Only months that have at least one transaction appear.
    """
    months: Dict[str, Dict[str, float]] = defaultdict(lambda: {"total_income": 0.0, "total_expenses": 0.0})
    for t in txns:
        m = months[month_key(t.transaction_date)]
        if t.transaction_type == INCOME:
            m["total_income"] += t.amount
        else:
            m["total_expenses"] += t.amount
    return [
        {
            "month": key,
            "total_income": round(vals["total_income"], 2),
            "total_expenses": round(vals["total_expenses"], 2),
            "net_amount": round(vals["total_income"] - vals["total_expenses"], 2),
        }
        for key, vals in sorted(months.items())
    ]


def get_category_trend(
    txns: Iterable[TransactionRecord],
    category: str,
    months: Sequence[str],
) -> List[Dict[str, float]]:
    """Spend in one category for each requested month, zero-filled."""
    wanted = {m: 0.0 for m in months}
    for t in txns:
        if t.transaction_type != EXPENSE or t.category != category:
            continue
        key = month_key(t.transaction_date)
        if key in wanted:
            wanted[key] += t.amount
    return [{"month": m, "amount": round(wanted[m], 2)} for m in months]


def get_weekly_spending_pattern(txns: Iterable[TransactionRecord]) -> List[Dict[str, float]]:
    buckets = [0.0] * 7
    for t in txns:
        if t.transaction_type == EXPENSE:
            # date.weekday() is Monday=0; shift so Sunday=0
            buckets[(t.transaction_date.weekday() + 1) % 7] += t.amount
    return [{"day": label, "amount": round(buckets[i], 2)} for i, label in enumerate(WEEKDAY_LABELS)]


def get_payment_method_breakdown(txns: Iterable[TransactionRecord]) -> List[Dict[str, float]]:
    totals: Dict[str, float] = {}
    for t in txns:
        if t.transaction_type == EXPENSE and t.payment_method:
            totals[t.payment_method] = totals.get(t.payment_method, 0.0) + t.amount
    ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    return [{"method": method, "amount": round(amount, 2)} for method, amount in ranked]


def get_daily_spending_velocity(
    txns: Iterable[TransactionRecord],
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> List[Dict[str, float]]:
    """Running total of expenses by day of month.

    With ``year`` and ``month`` only that month counts and the buckets run to
    its last day; otherwise every month is folded together over days 1-31.
    """
    if year and month:
        days = calendar.monthrange(year, month)[1]
    else:
        days = 31
    per_day = [0.0] * (days + 1)
    for t in txns:
        if t.transaction_type != EXPENSE:
            continue
        d = t.transaction_date
        if year and month and (d.year != year or d.month != month):
            continue
        if d.day <= days:
            per_day[d.day] += t.amount
    result: List[Dict[str, float]] = []
    running = 0.0
    for day in range(1, days + 1):
        running += per_day[day]
        result.append({"day": day, "amount": round(running, 2)})
    return result


def calculate_savings_rate(income: float, expenses: float) -> float:
    if income <= 0:
        return 0.0
    return round((income - expenses) / income * 100, 2)


def calculate_average_transaction(txns: Iterable[TransactionRecord], tx_type: Optional[str] = None) -> float:
    count = 0
    total = 0.0
    for t in txns:
        if tx_type is None or t.transaction_type == tx_type:
            count += 1
            total += t.amount
    if not count:
        return 0.0
    return round(total / count, 2)


def calculate_growth_rate(previous: float, current: float) -> float:
    """Percent change from ``previous`` to ``current``.

    A zero baseline gives 100 when ``current`` is positive and 0 otherwise.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 2)


def get_month_over_month_growth(txns: Iterable[TransactionRecord], tx_type: str = EXPENSE) -> float:
    summary = get_monthly_summary(txns)
    if len(summary) < 2:
        return 0.0
    field = "total_income" if tx_type == INCOME else "total_expenses"
    return calculate_growth_rate(summary[-2][field], summary[-1][field])


def calculate_percentage(value: float, total: float) -> float:
    if not total:
        return 0.0
    return round(value / total * 100, 1)


def recent_months(today: dt.date, count: int = 12) -> List[str]:
    """Month keys for the ``count`` months ending at ``today``, newest first."""
    keys: List[str] = []
    year, month = today.year, today.month
    for _ in range(count):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return keys


# -- savings goals ---------------------------------------------------------

def calculate_goal_progress(current_amount: float, target_amount: float) -> float:
    if not target_amount:
        return 0.0
    return round(min(100.0, current_amount / target_amount * 100), 1)


def days_remaining(target_date: Optional[dt.date], today: Optional[dt.date] = None) -> Optional[int]:
    """Whole days until ``target_date``; negative once overdue."""
    if target_date is None:
        return None
    today = today or dt.date.today()
    now = dt.datetime.combine(today, dt.time.min)
    target = dt.datetime.combine(target_date, dt.time.min)
    return math.ceil((target - now).total_seconds() / 86400)


def is_goal_achieved(goal) -> bool:
    return bool(goal.is_achieved) or goal.current_amount >= goal.target_amount


def summarize_goals(goals: Iterable) -> Dict[str, float]:
    total_target = 0.0
    total_current = 0.0
    achieved = 0
    active = 0
    for goal in goals:
        total_target += goal.target_amount
        total_current += goal.current_amount
        if is_goal_achieved(goal):
            achieved += 1
        else:
            active += 1
    return {
        "total_target": round(total_target, 2),
        "total_current": round(total_current, 2),
        "total_progress": round(total_current / total_target * 100, 1) if total_target > 0 else 0.0,
        "achieved_count": achieved,
        "active_count": active,
    }


# -- budgets ---------------------------------------------------------------

def calculate_budget_usage(
    txns: Iterable[TransactionRecord],
    budgets: Optional[Mapping[str, float]] = None,
) -> List[Dict[str, float]]:
    """Compute budget usage metrics per category."""
    if not budgets:
        return []
    spend = group_by_category(txns, EXPENSE)
    usage: List[Dict[str, float]] = []
    for category, limit in budgets.items():
        if limit is None:
            continue
        limit_value = float(limit)
        spent = round(spend.get(category, 0.0), 2)
        if limit_value > 0:
            percent_used = round((spent / limit_value) * 100, 2)
        else:
            percent_used = 100.0 if spent > 0 else 0.0
        usage.append({
            "category": category,
            "spent": spent,
            "limit": round(limit_value, 2),
            "remaining": round(limit_value - spent, 2),
            "percent_used": percent_used,
            "over": spent > limit_value,
        })
    return usage
