"""Tests for the analytics reducers."""

import datetime as dt
from types import SimpleNamespace

import pytest

from budget_tracker import analytics as an
from budget_tracker.data_loader import EXPENSE, INCOME, TransactionRecord


def rec(day, tx_type, amount, category="Other", method=None):
    return TransactionRecord(
        transaction_date=dt.date.fromisoformat(day),
        transaction_type=tx_type,
        amount=amount,
        category=category,
        payment_method=method,
    )


@pytest.fixture
def november():
    return [
        rec("2025-11-01", INCOME, 1000.0, "Salary"),
        rec("2025-11-02", EXPENSE, 200.0, "Groceries", "GCash"),
        rec("2025-11-03", EXPENSE, 50.5, "Dining Out", "Cash"),
    ]


class TestTotals:
    """Summary totals and category grouping."""

    def test_financial_summary(self, november):
        assert an.calculate_financial_summary(november) == {
            "total_income": 1000.0,
            "total_expenses": 250.5,
            "net_amount": 749.5,
        }

    def test_financial_summary_empty(self):
        assert an.calculate_financial_summary([]) == {
            "total_income": 0.0,
            "total_expenses": 0.0,
            "net_amount": 0.0,
        }

    def test_total_by_type(self, november):
        assert an.calculate_total_by_type(november, EXPENSE) == 250.5
        assert an.calculate_total_by_type(november, INCOME) == 1000.0

    def test_group_by_category_ignores_other_type(self, november):
        assert an.group_by_category(november) == {"Groceries": 200.0, "Dining Out": 50.5}

    def test_top_categories_keep_first_occurrence_on_ties(self):
        txns = [
            rec("2025-11-01", EXPENSE, 100.0, "Groceries"),
            rec("2025-11-02", EXPENSE, 100.0, "Rent"),
            rec("2025-11-03", EXPENSE, 300.0, "Dining Out"),
            rec("2025-11-04", INCOME, 900.0, "Salary"),
        ]
        names = [c["name"] for c in an.get_top_categories(txns)]
        assert names == ["Dining Out", "Groceries", "Rent"]
        assert [c["name"] for c in an.get_top_categories(txns, 2)] == ["Dining Out", "Groceries"]


class TestTimeSeries:
    """Monthly, weekly and daily aggregations."""

    def test_monthly_summary_omits_empty_months(self):
        txns = [
            rec("2025-11-10", EXPENSE, 30.0),
            rec("2025-09-05", INCOME, 500.0),
            rec("2025-09-06", EXPENSE, 100.0),
        ]
        summary = an.get_monthly_summary(txns)
        assert [m["month"] for m in summary] == ["2025-09", "2025-11"]
        assert summary[0] == {
            "month": "2025-09",
            "total_income": 500.0,
            "total_expenses": 100.0,
            "net_amount": 400.0,
        }

    def test_weekly_pattern_starts_on_sunday(self):
        txns = [
            rec("2025-11-02", EXPENSE, 10.0),  # Sunday
            rec("2025-11-03", EXPENSE, 20.0),  # Monday
            rec("2025-11-01", EXPENSE, 5.0),  # Saturday
            rec("2025-11-04", INCOME, 99.0),
        ]
        pattern = an.get_weekly_spending_pattern(txns)
        assert [d["day"] for d in pattern] == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
        assert [d["amount"] for d in pattern] == [10.0, 20.0, 0.0, 0.0, 0.0, 0.0, 5.0]

    def test_daily_velocity_is_cumulative(self):
        txns = [
            rec("2025-11-01", EXPENSE, 5.0),
            rec("2025-11-03", EXPENSE, 20.0),
            rec("2025-11-03", INCOME, 1000.0),
            rec("2025-10-02", EXPENSE, 70.0),
        ]
        velocity = an.get_daily_spending_velocity(txns, 2025, 11)
        assert len(velocity) == 30
        assert velocity[0] == {"day": 1, "amount": 5.0}
        assert velocity[1]["amount"] == 5.0
        assert velocity[2]["amount"] == 25.0
        assert velocity[-1] == {"day": 30, "amount": 25.0}

    def test_daily_velocity_month_length(self):
        assert len(an.get_daily_spending_velocity([], 2024, 2)) == 29
        assert len(an.get_daily_spending_velocity([])) == 31

    def test_category_trend_zero_fills(self):
        txns = [
            rec("2025-09-03", EXPENSE, 40.0, "Groceries"),
            rec("2025-11-03", EXPENSE, 60.0, "Groceries"),
            rec("2025-10-03", EXPENSE, 80.0, "Rent"),
        ]
        trend = an.get_category_trend(txns, "Groceries", ["2025-09", "2025-10", "2025-11"])
        assert [t["amount"] for t in trend] == [40.0, 0.0, 60.0]

    def test_payment_method_breakdown(self):
        txns = [
            rec("2025-11-01", EXPENSE, 100.0, method="Cash"),
            rec("2025-11-02", EXPENSE, 300.0, method="GCash"),
            rec("2025-11-03", EXPENSE, 50.0, method="Cash"),
            rec("2025-11-04", EXPENSE, 70.0),
            rec("2025-11-05", INCOME, 500.0, method="Bank Transfer"),
        ]
        assert an.get_payment_method_breakdown(txns) == [
            {"method": "GCash", "amount": 300.0},
            {"method": "Cash", "amount": 150.0},
        ]

    def test_recent_months_crosses_year(self):
        assert an.recent_months(dt.date(2025, 2, 15), 3) == ["2025-02", "2025-01", "2024-12"]

    def test_month_keys(self):
        assert an.month_key(dt.date(2025, 3, 9)) == "2025-03"
        assert an.parse_month_key("2025-11") == dt.date(2025, 11, 1)
        assert an.parse_month_key("2025-13") is None
        assert an.parse_month_key("garbage") is None
        assert an.parse_month_key(None) is None

    def test_filter_by_month(self, november):
        extra = november + [rec("2025-10-31", EXPENSE, 1.0)]
        assert len(an.filter_by_month(extra, "2025-11")) == 3
        assert len(an.filter_by_month(extra, None)) == 4


class TestRates:
    """Savings rate, growth and percentages."""

    def test_savings_rate(self):
        assert an.calculate_savings_rate(1000.0, 250.0) == 75.0
        assert an.calculate_savings_rate(100.0, 150.0) == -50.0

    def test_savings_rate_without_income(self):
        assert an.calculate_savings_rate(0.0, 100.0) == 0.0
        assert an.calculate_savings_rate(-5.0, 10.0) == 0.0

    def test_growth_rate(self):
        assert an.calculate_growth_rate(100.0, 150.0) == 50.0
        assert an.calculate_growth_rate(200.0, 150.0) == -25.0

    def test_growth_rate_from_zero(self):
        assert an.calculate_growth_rate(0.0, 50.0) == 100.0
        assert an.calculate_growth_rate(0.0, 0.0) == 0.0

    def test_month_over_month_growth(self):
        txns = [rec("2025-10-05", EXPENSE, 100.0), rec("2025-11-05", EXPENSE, 150.0)]
        assert an.get_month_over_month_growth(txns) == 50.0
        assert an.get_month_over_month_growth(txns[:1]) == 0.0

    def test_percentage(self):
        assert an.calculate_percentage(25.0, 200.0) == 12.5
        assert an.calculate_percentage(1.0, 3.0) == 33.3
        assert an.calculate_percentage(5.0, 0.0) == 0.0

    def test_average_transaction(self, november):
        assert an.calculate_average_transaction(november, EXPENSE) == 125.25
        assert an.calculate_average_transaction([], EXPENSE) == 0.0


class TestGoals:
    """Savings goal progress helpers."""

    def test_progress_is_capped(self):
        assert an.calculate_goal_progress(500.0, 1000.0) == 50.0
        assert an.calculate_goal_progress(1500.0, 1000.0) == 100.0
        assert an.calculate_goal_progress(1.0, 3.0) == 33.3
        assert an.calculate_goal_progress(10.0, 0.0) == 0.0

    def test_days_remaining(self):
        today = dt.date(2025, 11, 1)
        assert an.days_remaining(dt.date(2025, 11, 10), today) == 9
        assert an.days_remaining(dt.date(2025, 10, 31), today) == -1
        assert an.days_remaining(None, today) is None

    def test_summarize_goals(self):
        goals = [
            SimpleNamespace(target_amount=1000.0, current_amount=1000.0, is_achieved=False),
            SimpleNamespace(target_amount=1000.0, current_amount=250.0, is_achieved=False),
        ]
        assert an.summarize_goals(goals) == {
            "total_target": 2000.0,
            "total_current": 1250.0,
            "total_progress": 62.5,
            "achieved_count": 1,
            "active_count": 1,
        }

    def test_summarize_no_goals(self):
        assert an.summarize_goals([])["total_progress"] == 0.0


class TestBudgetUsage:
    def test_usage_flags_overspend(self):
        txns = [
            rec("2025-11-01", EXPENSE, 120.0, "Groceries"),
            rec("2025-11-02", INCOME, 500.0, "Salary"),
        ]
        usage = an.calculate_budget_usage(txns, {"Groceries": 100.0, "Rent": 500.0})
        assert usage[0] == {
            "category": "Groceries",
            "spent": 120.0,
            "limit": 100.0,
            "remaining": -20.0,
            "percent_used": 120.0,
            "over": True,
        }
        assert usage[1]["spent"] == 0.0
        assert usage[1]["over"] is False

    def test_no_budgets(self):
        assert an.calculate_budget_usage([], None) == []

    def test_zero_limit_with_spend(self):
        txns = [rec("2025-11-01", EXPENSE, 40.0, "Groceries")]
        row = an.calculate_budget_usage(txns, {"Groceries": 0})[0]
        assert row["percent_used"] == 100.0
        assert row["over"] is True
        assert row["remaining"] == -40.0

    def test_zero_limit_without_spend(self):
        row = an.calculate_budget_usage([], {"Groceries": 0})[0]
        assert row["percent_used"] == 0.0
        assert row["over"] is False
