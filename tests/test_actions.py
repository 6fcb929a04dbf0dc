"""Tests for the database-backed actions."""

import datetime as dt

import pytest
from sqlalchemy.exc import SQLAlchemyError

from budget_tracker import actions
from budget_tracker.errors import ActionError, NotFoundError, ValidationError
from budget_tracker.models import User, db


def expense(categories, **overrides):
    data = {
        "category_id": categories["Groceries"].id,
        "amount": "250",
        "transaction_date": "2025-11-02",
        "transaction_type": "expense",
        "description": "Puregold",
        "payment_method": "GCash",
        "tags": "food",
    }
    data.update(overrides)
    return data


@pytest.fixture
def other_user(ctx):
    stranger = User(email="neighbor@example.com", full_name="Neighbor")
    db.session.add(stranger)
    db.session.commit()
    return stranger


class TestCategories:
    def test_seeded(self, categories):
        assert "Groceries" in categories
        assert categories["Salary"].is_income is True
        assert categories["Other Income"].is_income is True

    def test_inactive_hidden(self, categories):
        categories["Education"].is_active = False
        db.session.commit()
        names = [c.name for c in actions.get_categories()]
        assert "Education" not in names
        assert "Education" in [c.name for c in actions.get_categories(include_inactive=True)]


class TestTransactions:
    def test_create(self, user, categories):
        txn = actions.create_transaction(user, expense(categories))
        assert txn.id is not None
        assert txn.amount == 250.0
        assert txn.category.name == "Groceries"
        assert txn.tags == ["food"]
        assert txn.to_dict()["category"]["name"] == "Groceries"

    def test_category_must_match_type(self, user, categories):
        with pytest.raises(ValidationError, match="Salary is not an expense category."):
            actions.create_transaction(user, expense(categories, category_id=categories["Salary"].id))
        with pytest.raises(ValidationError, match="Groceries is not an income category."):
            actions.create_transaction(user, expense(categories, transaction_type="income"))

    @pytest.mark.parametrize("amount", ["inf", "nan"])
    def test_non_finite_amount_is_not_stored(self, user, categories, amount):
        with pytest.raises(ValidationError):
            actions.create_transaction(user, expense(categories, amount=amount))
        assert actions.get_transactions(user) == []

    def test_unknown_category(self, user, categories):
        with pytest.raises(ValidationError, match="Please choose a valid category."):
            actions.create_transaction(user, expense(categories, category_id=9999))

    def test_list_by_month_newest_first(self, user, categories):
        actions.create_transaction(user, expense(categories, transaction_date="2025-11-02", description="a"))
        actions.create_transaction(user, expense(categories, transaction_date="2025-11-20", description="b"))
        actions.create_transaction(user, expense(categories, transaction_date="2025-10-31", description="c"))
        assert [t.description for t in actions.get_transactions(user, "2025-11")] == ["b", "a"]
        assert len(actions.get_transactions(user)) == 3

    def test_bad_month(self, user):
        with pytest.raises(ValidationError):
            actions.get_transactions(user, "November")

    def test_partial_update(self, user, categories):
        txn = actions.create_transaction(user, expense(categories))
        actions.update_transaction(user, txn.id, {"amount": "75"})
        assert txn.amount == 75.0
        assert txn.description == "Puregold"
        assert txn.category.name == "Groceries"

    def test_update_checks_category_type(self, user, categories):
        txn = actions.create_transaction(user, expense(categories))
        with pytest.raises(ValidationError):
            actions.update_transaction(user, txn.id, {"transaction_type": "income"})
        actions.update_transaction(
            user, txn.id, {"transaction_type": "income", "category_id": categories["Salary"].id}
        )
        assert txn.transaction_type == "income"
        assert txn.category.name == "Salary"

    def test_other_users_transaction_is_not_found(self, user, other_user, categories):
        txn = actions.create_transaction(other_user, expense(categories))
        with pytest.raises(NotFoundError):
            actions.get_transaction(user, txn.id)
        with pytest.raises(NotFoundError):
            actions.delete_transaction(user, txn.id)

    def test_delete(self, user, categories):
        txn = actions.create_transaction(user, expense(categories))
        actions.delete_transaction(user, txn.id)
        assert actions.get_transactions(user) == []

    def test_commit_failure_rolls_back(self, user, categories, monkeypatch):
        def fail():
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(db.session, "commit", fail)
        with pytest.raises(ActionError, match="Failed to create transaction"):
            actions.create_transaction(user, expense(categories))
        monkeypatch.undo()
        assert actions.get_transactions(user) == []


class TestSavingsGoals:
    def test_create_and_order(self, user):
        actions.create_savings_goal(user, {"name": "Gadget", "target_amount": "20000", "priority": "3"})
        actions.create_savings_goal(
            user, {"name": "Tuition", "target_amount": "50000", "priority": "1", "target_date": "2026-06-01"}
        )
        actions.create_savings_goal(user, {"name": "Emergency Fund", "target_amount": "100000", "priority": "1"})
        names = [g.name for g in actions.get_savings_goals(user)]
        assert names == ["Tuition", "Emergency Fund", "Gadget"]

    def test_created_already_achieved(self, user):
        goal = actions.create_savings_goal(user, {"name": "Done", "target_amount": "100", "current_amount": "100"})
        assert goal.is_achieved is True

    def test_add_money(self, user):
        goal = actions.create_savings_goal(user, {"name": "Trip", "target_amount": "1000", "current_amount": "600"})
        first = actions.add_money_to_goal(user, goal.id, "300")
        assert (first.amount, first.newly_achieved, goal.current_amount) == (300.0, False, 900.0)
        second = actions.add_money_to_goal(user, goal.id, "150")
        assert second.newly_achieved is True
        assert goal.is_achieved is True
        third = actions.add_money_to_goal(user, goal.id, 10)
        assert third.newly_achieved is False

    @pytest.mark.parametrize(
        "amount,message",
        [
            ("abc", "Amount must be a valid number."),
            (None, "Amount must be a valid number."),
            ("nan", "Amount must be a valid number."),
            ("inf", "Amount must be a valid number."),
            ("0", "Amount must be greater than zero."),
        ],
    )
    def test_add_money_rejects_bad_amounts(self, user, amount, message):
        goal = actions.create_savings_goal(user, {"name": "Trip", "target_amount": "1000"})
        with pytest.raises(ValidationError, match=message):
            actions.add_money_to_goal(user, goal.id, amount)

    def test_update_recomputes_achieved(self, user):
        goal = actions.create_savings_goal(user, {"name": "Trip", "target_amount": "1000", "current_amount": "1000"})
        actions.update_savings_goal(user, goal.id, {"name": "Bigger trip", "target_amount": "5000", "current_amount": "1000"})
        assert goal.name == "Bigger trip"
        assert goal.is_achieved is False

    def test_delete(self, user):
        goal = actions.create_savings_goal(user, {"name": "Trip", "target_amount": "1000"})
        actions.delete_savings_goal(user, goal.id)
        with pytest.raises(NotFoundError):
            actions.get_savings_goal(user, goal.id)


class TestBudgets:
    def test_set_is_an_upsert(self, user, categories):
        today = dt.date(2025, 11, 1)
        first = actions.set_budget(user, {"category_id": categories["Groceries"].id, "amount": "8000"}, today=today)
        second = actions.set_budget(user, {"category_id": categories["Groceries"].id, "amount": "9000"}, today=today)
        assert first.id == second.id
        assert second.amount == 9000.0
        assert second.start_date == today
        assert len(actions.get_budgets(user)) == 1

    def test_sorted_by_category(self, user, categories):
        actions.set_budget(user, {"category_id": categories["Utilities"].id, "amount": "3000"})
        actions.set_budget(user, {"category_id": categories["Dining Out"].id, "amount": "2000"})
        assert [b.category.name for b in actions.get_budgets(user)] == ["Dining Out", "Utilities"]

    def test_income_category_rejected(self, user, categories):
        with pytest.raises(ValidationError):
            actions.set_budget(user, {"category_id": categories["Salary"].id, "amount": "100"})

    def test_delete(self, user, categories):
        budget = actions.set_budget(user, {"category_id": categories["Rent"].id, "amount": "15000"})
        actions.delete_budget(user, budget.id)
        assert actions.get_budgets(user) == []
        with pytest.raises(NotFoundError):
            actions.delete_budget(user, budget.id)


def test_month_bounds():
    assert actions.month_bounds("2024-02") == (dt.date(2024, 2, 1), dt.date(2024, 2, 29))
