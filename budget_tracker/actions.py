"""Server-side actions for transactions, categories, savings goals and budgets.

Every write is validated first, committed on success and rolled back on a
database error. Callers get model instances back, or one of the errors from
:mod:`budget_tracker.errors`.
"""

from __future__ import annotations

import calendar
import datetime as dt
import math
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .analytics import parse_month_key
from .errors import ActionError, NotFoundError, ValidationError
from .log import get_logger
from .models import Budget, Category, SavingsGoal, Transaction, User, db
from .schemas import (
    BudgetInput,
    SavingsGoalInput,
    TransactionInput,
    TransactionUpdate,
    validate_input,
)

log = get_logger(__name__)


def _commit(action: str, **context) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        log.error("action_failed", action=action, error=str(exc), **context)
        raise ActionError(action, str(exc.__class__.__name__)) from exc


def month_bounds(month: str) -> tuple[dt.date, dt.date]:
    start = parse_month_key(month)
    if start is None:
        raise ValidationError(f"Month must look like YYYY-MM, got {month!r}.")
    last_day = calendar.monthrange(start.year, start.month)[1]
    return start, dt.date(start.year, start.month, last_day)


# -- categories ------------------------------------------------------------

def get_categories(include_inactive: bool = False) -> List[Category]:
    stmt = db.select(Category).order_by(Category.name)
    if not include_inactive:
        stmt = stmt.where(Category.is_active.is_(True))
    return list(db.session.execute(stmt).scalars())


def _category_for(category_id: int, tx_type: str) -> Category:
    category = db.session.get(Category, category_id)
    if category is None or not category.is_active:
        raise ValidationError("Please choose a valid category.")
    if category.is_income != (tx_type == "income"):
        kind = "an income" if tx_type == "income" else "an expense"
        raise ValidationError(f"{category.name} is not {kind} category.")
    return category


# -- transactions ----------------------------------------------------------

def get_transactions(user: User, month: Optional[str] = None) -> List[Transaction]:
    """Newest first. ``month`` is ``YYYY-MM``; None returns everything."""
    stmt = db.select(Transaction).where(Transaction.user_id == user.id)
    if month:
        start, end = month_bounds(month)
        stmt = stmt.where(Transaction.transaction_date.between(start, end))
    stmt = stmt.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
    return list(db.session.execute(stmt).scalars().unique())


def get_transaction(user: User, txn_id: int) -> Transaction:
    txn = db.session.get(Transaction, txn_id)
    if txn is None or txn.user_id != user.id:
        raise NotFoundError("Transaction", txn_id)
    return txn


def create_transaction(user: User, data: dict) -> Transaction:
    payload = validate_input(TransactionInput, data)
    category = _category_for(payload.category_id, payload.transaction_type)
    txn = Transaction(
        user_id=user.id,
        category=category,
        amount=round(payload.amount, 2),
        description=payload.description,
        transaction_date=payload.transaction_date,
        transaction_type=payload.transaction_type,
        payment_method=payload.payment_method,
        location=payload.location,
        tags=payload.tags,
    )
    db.session.add(txn)
    _commit("create transaction", user_id=user.id)
    log.info("transaction_created", id=txn.id, type=txn.transaction_type, amount=txn.amount)
    return txn


def update_transaction(user: User, txn_id: int, data: dict) -> Transaction:
    txn = get_transaction(user, txn_id)
    payload = validate_input(TransactionUpdate, data)
    changes = payload.model_dump(exclude_unset=True)

    tx_type = changes.get("transaction_type") or txn.transaction_type
    category_id = changes.get("category_id") or txn.category_id
    if "transaction_type" in changes or "category_id" in changes:
        txn.category = _category_for(category_id, tx_type)
    for key in ("amount", "transaction_date", "transaction_type"):
        if changes.get(key) is not None:
            setattr(txn, key, round(changes[key], 2) if key == "amount" else changes[key])
    for key in ("description", "payment_method", "location"):
        if key in changes:
            setattr(txn, key, changes[key])
    if changes.get("tags") is not None:
        txn.tags = changes["tags"]

    _commit("update transaction", id=txn_id)
    log.info("transaction_updated", id=txn.id, fields=sorted(changes))
    return txn


def delete_transaction(user: User, txn_id: int) -> None:
    txn = get_transaction(user, txn_id)
    db.session.delete(txn)
    _commit("delete transaction", id=txn_id)
    log.info("transaction_deleted", id=txn_id)


# -- savings goals ---------------------------------------------------------

def get_savings_goals(user: User) -> List[SavingsGoal]:
    stmt = (
        db.select(SavingsGoal)
        .where(SavingsGoal.user_id == user.id)
        .order_by(
            SavingsGoal.priority,
            SavingsGoal.target_date.is_(None),
            SavingsGoal.target_date,
            SavingsGoal.name,
        )
    )
    return list(db.session.execute(stmt).scalars())


def get_savings_goal(user: User, goal_id: int) -> SavingsGoal:
    goal = db.session.get(SavingsGoal, goal_id)
    if goal is None or goal.user_id != user.id:
        raise NotFoundError("Savings goal", goal_id)
    return goal


def create_savings_goal(user: User, data: dict) -> SavingsGoal:
    payload = validate_input(SavingsGoalInput, data)
    goal = SavingsGoal(
        user_id=user.id,
        name=payload.name,
        description=payload.description,
        target_amount=round(payload.target_amount, 2),
        current_amount=round(payload.current_amount, 2),
        target_date=payload.target_date,
        priority=payload.priority,
        is_achieved=payload.current_amount >= payload.target_amount,
    )
    db.session.add(goal)
    _commit("create savings goal", user_id=user.id)
    log.info("savings_goal_created", id=goal.id, target=goal.target_amount)
    return goal


def update_savings_goal(user: User, goal_id: int, data: dict) -> SavingsGoal:
    goal = get_savings_goal(user, goal_id)
    payload = validate_input(SavingsGoalInput, data)
    goal.name = payload.name
    goal.description = payload.description
    goal.target_amount = round(payload.target_amount, 2)
    goal.current_amount = round(payload.current_amount, 2)
    goal.target_date = payload.target_date
    goal.priority = payload.priority
    goal.is_achieved = payload.current_amount >= payload.target_amount
    _commit("update savings goal", id=goal_id)
    return goal


@dataclass
class DepositResult:
    goal: SavingsGoal
    amount: float
    newly_achieved: bool


def add_money_to_goal(user: User, goal_id: int, amount) -> DepositResult:
    goal = get_savings_goal(user, goal_id)
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("Amount must be a valid number.") from None
    if not math.isfinite(value):
        raise ValidationError("Amount must be a valid number.")
    if value <= 0:
        raise ValidationError("Amount must be greater than zero.")
    was_achieved = goal.is_achieved
    goal.current_amount = round(goal.current_amount + value, 2)
    goal.is_achieved = goal.current_amount >= goal.target_amount
    _commit("update savings", id=goal_id)
    newly = goal.is_achieved and not was_achieved
    log.info("savings_deposit", id=goal.id, amount=value, achieved=goal.is_achieved)
    return DepositResult(goal=goal, amount=round(value, 2), newly_achieved=newly)


def delete_savings_goal(user: User, goal_id: int) -> None:
    goal = get_savings_goal(user, goal_id)
    db.session.delete(goal)
    _commit("delete savings goal", id=goal_id)
    log.info("savings_goal_deleted", id=goal_id)


# -- budgets ---------------------------------------------------------------

def get_budgets(user: User, active_only: bool = True) -> List[Budget]:
    stmt = db.select(Budget).where(Budget.user_id == user.id)
    if active_only:
        stmt = stmt.where(Budget.is_active.is_(True))
    return sorted(db.session.execute(stmt).scalars().unique(), key=lambda b: b.category.name)


def set_budget(user: User, data: dict, today: Optional[dt.date] = None) -> Budget:
    """Create the category's budget or replace its limit."""
    payload = validate_input(BudgetInput, data)
    category = _category_for(payload.category_id, "expense")
    budget = db.session.execute(
        db.select(Budget).where(Budget.user_id == user.id, Budget.category_id == category.id)
    ).scalars().first()
    if budget is None:
        budget = Budget(user_id=user.id, category=category)
        db.session.add(budget)
    budget.amount = round(payload.amount, 2)
    budget.period_type = payload.period_type
    budget.start_date = payload.start_date or today or dt.date.today()
    budget.end_date = payload.end_date
    budget.is_active = True
    _commit("save budget", category=category.name)
    return budget


def delete_budget(user: User, budget_id: int) -> None:
    budget = db.session.get(Budget, budget_id)
    if budget is None or budget.user_id != user.id:
        raise NotFoundError("Budget", budget_id)
    db.session.delete(budget)
    _commit("delete budget", id=budget_id)
