"""Flask web interface for the family budget tracker."""

from __future__ import annotations

import datetime as dt
from typing import Dict, List, Mapping, Optional

from flask import (
    Flask,
    current_app,
    flash,
    g,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)
from werkzeug.exceptions import HTTPException

from . import actions
from .ai_service import GeminiClient, categorize_transaction, parse_natural_language_transaction
from .analytics import (
    calculate_financial_summary,
    calculate_goal_progress,
    days_remaining,
    filter_by_month,
    is_goal_achieved,
    month_key,
    parse_month_key,
    recent_months,
    summarize_goals,
)
from .config import PRIORITY_LABELS, AppConfig
from .data_loader import records_from_models
from .db import init_db, load_current_user
from .errors import (
    ActionError,
    BudgetTrackerError,
    NotFoundError,
    TransactionParseError,
    ValidationError,
)
from .log import configure_logging, get_logger
from .models import db
from .reports import build_summary, format_currency, format_date, format_month
from .settings import PACKAGE_ROOT, get_gemini_settings, get_settings

log = get_logger(__name__)

ALL_MONTHS = "all"
RECENT_TRANSACTIONS = 5


def _today() -> dt.date:
    return dt.date.today()


def _current_month() -> str:
    return month_key(_today())


def _resolve_month(value: Optional[str], default: Optional[str]) -> Optional[str]:
    """Query value -> month key, ``None`` for all months."""
    if value == ALL_MONTHS:
        return None
    if value and parse_month_key(value):
        return value
    return default


def _app_config() -> AppConfig:
    return current_app.extensions["budget_config"]


def _ai_client():
    return current_app.extensions["budget_ai"]


def _transaction_form(data: Mapping) -> Dict[str, object]:
    return {
        "transaction_type": (data.get("transaction_type") or "expense").strip(),
        "category_id": (data.get("category_id") or "").strip(),
        "amount": (data.get("amount") or "").strip(),
        "transaction_date": (data.get("transaction_date") or "").strip(),
        "description": (data.get("description") or "").strip(),
        "payment_method": (data.get("payment_method") or "").strip(),
        "location": (data.get("location") or "").strip(),
        "tags": (data.get("tags") or "").strip(),
    }


def _blank_transaction_form() -> Dict[str, object]:
    form = _transaction_form({})
    form["transaction_date"] = _today().isoformat()
    return form


def _form_from_transaction(txn) -> Dict[str, object]:
    return {
        "transaction_type": txn.transaction_type,
        "category_id": str(txn.category_id),
        "amount": f"{txn.amount:.2f}",
        "transaction_date": txn.transaction_date.isoformat(),
        "description": txn.description or "",
        "payment_method": txn.payment_method or "",
        "location": txn.location or "",
        "tags": ", ".join(txn.tags or []),
    }


def _goal_form(data: Mapping) -> Dict[str, str]:
    return {
        "name": (data.get("name") or "").strip(),
        "description": (data.get("description") or "").strip(),
        "target_amount": (data.get("target_amount") or "").strip(),
        "current_amount": (data.get("current_amount") or "0").strip(),
        "target_date": (data.get("target_date") or "").strip(),
        "priority": (data.get("priority") or "2").strip(),
    }


def _form_from_goal(goal) -> Dict[str, str]:
    return {
        "name": goal.name,
        "description": goal.description or "",
        "target_amount": f"{goal.target_amount:.2f}",
        "current_amount": f"{goal.current_amount:.2f}",
        "target_date": goal.target_date.isoformat() if goal.target_date else "",
        "priority": str(goal.priority),
    }


def _flash_errors(exc: BudgetTrackerError) -> None:
    if isinstance(exc, ValidationError):
        for message in exc.messages:
            flash(message, "error")
    else:
        flash(str(exc), "error")


def _goal_rows(goals) -> List[Dict[str, object]]:
    today = _today()
    rows = []
    for goal in goals:
        remaining_days = days_remaining(goal.target_date, today)
        rows.append(
            {
                "goal": goal,
                "progress": calculate_goal_progress(goal.current_amount, goal.target_amount),
                "achieved": is_goal_achieved(goal),
                "days_remaining": remaining_days,
                "overdue": remaining_days is not None and remaining_days < 0,
                "remaining_amount": round(max(goal.target_amount - goal.current_amount, 0.0), 2),
                "priority_label": PRIORITY_LABELS.get(goal.priority, "Medium"),
            }
        )
    return rows


def _budget_limits(budgets) -> Dict[str, float]:
    return {b.category.name: b.amount for b in budgets}


def _render_transactions(form: Dict[str, object], status: int = 200, parsed: bool = False):
    month = _resolve_month(request.args.get("month") or request.form.get("month"), _current_month())
    txns = actions.get_transactions(g.user, month)
    records = records_from_models(txns)
    return (
        render_template(
            "transactions.html",
            transactions=txns,
            totals=calculate_financial_summary(records),
            month=month,
            month_value=month or ALL_MONTHS,
            current_month=_current_month(),
            available_months=recent_months(_today(), 12),
            categories=actions.get_categories(),
            form=form,
            parsed=parsed,
            nl_input=(request.form.get("input") or "").strip() if request.method == "POST" else "",
        ),
        status,
    )


def _render_goals(form: Dict[str, str], status: int = 200):
    goals = actions.get_savings_goals(g.user)
    return (
        render_template(
            "savings_goals.html",
            goal_rows=_goal_rows(goals),
            goals_summary=summarize_goals(goals),
            form=form,
        ),
        status,
    )


def _api_error(message: str, status: int):
    return jsonify({"error": message}), status


def create_app(test_config: Optional[Mapping] = None, ai_client=None) -> Flask:
    settings = get_settings()
    app = Flask(
        __name__,
        template_folder=str(PACKAGE_ROOT / "templates"),
        static_folder=str(PACKAGE_ROOT / "static"),
    )
    app.config.update(
        SECRET_KEY=settings.secret_key,
        SQLALCHEMY_DATABASE_URI=settings.sqlalchemy_url,
        BUDGET_CONFIG_PATH=settings.budget_config_path,
        LOG_LEVEL=settings.log_level,
        LOG_JSON=settings.log_json,
    )
    if test_config:
        app.config.update(test_config)

    configure_logging(app.config["LOG_LEVEL"], app.config["LOG_JSON"])
    db.init_app(app)

    cfg = AppConfig.load(app.config.get("BUDGET_CONFIG_PATH"))
    app.extensions["budget_config"] = cfg
    app.extensions["budget_ai"] = ai_client or GeminiClient(get_gemini_settings())

    with app.app_context():
        init_db(cfg.categories)

    app.before_request(load_current_user)

    app.add_template_filter(lambda v: format_currency(v, cfg.currency), "currency")
    app.add_template_filter(format_date, "date")
    app.add_template_filter(format_month, "month")

    @app.context_processor
    def inject_globals():
        return {
            "payment_methods": cfg.payment_methods,
            "priority_labels": PRIORITY_LABELS,
            "today": _today(),
        }

    # -- pages -------------------------------------------------------------

    @app.route("/")
    def index():
        month = _current_month()
        all_txns = actions.get_transactions(g.user)
        month_records = filter_by_month(records_from_models(all_txns), month)
        goals = actions.get_savings_goals(g.user)
        return render_template(
            "index.html",
            month=month,
            totals=calculate_financial_summary(month_records),
            recent_transactions=all_txns[:RECENT_TRANSACTIONS],
            goals_summary=summarize_goals(goals),
            goal_rows=_goal_rows(goals)[:3],
        )

    @app.route("/transactions", methods=["GET", "POST"])
    def transactions():
        if request.method == "GET":
            return _render_transactions(_blank_transaction_form())
        form = _transaction_form(request.form)
        try:
            txn = actions.create_transaction(g.user, form)
        except (ValidationError, ActionError) as exc:
            _flash_errors(exc)
            return _render_transactions(form, status=400)
        sign = "+" if txn.transaction_type == "income" else "-"
        flash(f"Transaction added successfully! {sign}{format_currency(txn.amount, cfg.currency)}", "success")
        return redirect(url_for("transactions", month=request.form.get("month") or None))

    @app.route("/transactions/parse", methods=["POST"])
    def parse_transaction():
        text = (request.form.get("input") or "").strip()
        if not text:
            flash("Please enter a transaction description", "error")
            return _render_transactions(_blank_transaction_form(), status=400)
        try:
            parsed = parse_natural_language_transaction(
                _ai_client(), text, actions.get_categories(), _today(), cfg.payment_methods
            )
        except TransactionParseError as exc:
            flash(str(exc), "error")
            return _render_transactions(_blank_transaction_form(), status=422)
        form = {
            "transaction_type": parsed.transaction_type,
            "category_id": str(parsed.category_id or ""),
            "amount": f"{parsed.amount:.2f}",
            "transaction_date": parsed.transaction_date.isoformat(),
            "description": parsed.description,
            "payment_method": parsed.payment_method or "",
            "location": parsed.location or "",
            "tags": ", ".join(parsed.tags or []),
        }
        flash("Transaction parsed successfully! Review the details and save.", "success")
        return _render_transactions(form, parsed=True)

    @app.route("/transactions/<int:txn_id>/edit", methods=["GET", "POST"])
    def edit_transaction(txn_id: int):
        txn = actions.get_transaction(g.user, txn_id)
        form = _form_from_transaction(txn)
        status = 200
        if request.method == "POST":
            form = _transaction_form(request.form)
            try:
                actions.update_transaction(g.user, txn_id, form)
            except (ValidationError, ActionError) as exc:
                _flash_errors(exc)
                status = 400
            else:
                flash("Transaction updated successfully!", "success")
                return redirect(url_for("transactions", month=request.form.get("month") or None))
        return (
            render_template(
                "transaction_edit.html",
                transaction=txn,
                form=form,
                categories=actions.get_categories(),
                month=request.args.get("month") or request.form.get("month") or "",
            ),
            status,
        )

    @app.route("/transactions/<int:txn_id>/delete", methods=["POST"])
    def delete_transaction(txn_id: int):
        try:
            actions.delete_transaction(g.user, txn_id)
        except ActionError as exc:
            _flash_errors(exc)
        else:
            flash("Transaction deleted successfully!", "success")
        return redirect(url_for("transactions", month=request.form.get("month") or None))

    @app.route("/analytics")
    def analytics():
        month = _resolve_month(request.args.get("month"), None)
        records = filter_by_month(records_from_models(actions.get_transactions(g.user)), month)
        budgets = actions.get_budgets(g.user)
        summary = build_summary(
            records,
            _budget_limits(budgets),
            month=month,
            trend_category=request.args.get("category") or None,
            today=_today(),
        )
        expense_categories = [c for c in actions.get_categories() if not c.is_income]
        return render_template(
            "analytics.html",
            summary=summary,
            totals=summary["totals"],
            month=month,
            month_value=month or ALL_MONTHS,
            available_months=recent_months(_today(), 12),
            budgets=budgets,
            expense_categories=expense_categories,
        )

    @app.route("/savings-goals", methods=["GET", "POST"])
    def savings_goals():
        if request.method == "GET":
            return _render_goals(_goal_form({}))
        form = _goal_form(request.form)
        try:
            goal = actions.create_savings_goal(g.user, form)
        except (ValidationError, ActionError) as exc:
            _flash_errors(exc)
            return _render_goals(form, status=400)
        flash(f"Savings goal “{goal.name}” created successfully!", "success")
        return redirect(url_for("savings_goals"))

    @app.route("/savings-goals/<int:goal_id>/edit", methods=["GET", "POST"])
    def edit_savings_goal(goal_id: int):
        goal = actions.get_savings_goal(g.user, goal_id)
        form = _form_from_goal(goal)
        status = 200
        if request.method == "POST":
            form = _goal_form(request.form)
            try:
                actions.update_savings_goal(g.user, goal_id, form)
            except (ValidationError, ActionError) as exc:
                _flash_errors(exc)
                status = 400
            else:
                flash("Savings goal updated successfully!", "success")
                return redirect(url_for("savings_goals"))
        return render_template("savings_goal_edit.html", goal=goal, form=form), status

    @app.route("/savings-goals/<int:goal_id>/add-money", methods=["POST"])
    def add_money(goal_id: int):
        try:
            result = actions.add_money_to_goal(g.user, goal_id, request.form.get("amount"))
        except (ValidationError, ActionError) as exc:
            flash("Failed to update savings", "error")
            _flash_errors(exc)
        else:
            flash(
                f"Savings updated! Added {format_currency(result.amount, cfg.currency)} to {result.goal.name}",
                "success",
            )
            if result.newly_achieved:
                flash(f"Goal achieved! You reached your target for {result.goal.name}.", "success")
        return redirect(url_for("savings_goals"))

    @app.route("/savings-goals/<int:goal_id>/delete", methods=["POST"])
    def delete_savings_goal(goal_id: int):
        try:
            actions.delete_savings_goal(g.user, goal_id)
        except ActionError as exc:
            _flash_errors(exc)
        else:
            flash("Savings goal deleted successfully!", "success")
        return redirect(url_for("savings_goals"))

    @app.route("/budgets", methods=["POST"])
    def save_budget():
        try:
            budget = actions.set_budget(g.user, dict(request.form), today=_today())
        except (ValidationError, ActionError) as exc:
            _flash_errors(exc)
        else:
            flash(f"Budget for {budget.category.name} saved.", "success")
        return redirect(url_for("analytics", month=request.form.get("month") or None))

    @app.route("/budgets/<int:budget_id>/delete", methods=["POST"])
    def delete_budget(budget_id: int):
        try:
            actions.delete_budget(g.user, budget_id)
        except ActionError as exc:
            _flash_errors(exc)
        else:
            flash("Budget removed.", "success")
        return redirect(url_for("analytics", month=request.form.get("month") or None))

    # -- JSON API ----------------------------------------------------------

    @app.route("/api/transactions", methods=["GET"])
    def api_list_transactions():
        month = request.args.get("month")
        year = request.args.get("year")
        month_filter = None
        if month and year:
            month_filter = f"{year}-{month.zfill(2)}"
        try:
            txns = actions.get_transactions(g.user, month_filter)
        except ValidationError as exc:
            return _api_error(str(exc), 400)
        return jsonify({"transactions": [t.to_dict() for t in txns]})

    @app.route("/api/transactions", methods=["POST"])
    def api_create_transaction():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return _api_error("Request body must be a JSON object", 400)
        try:
            txn = actions.create_transaction(g.user, body)
        except ValidationError as exc:
            return _api_error(str(exc), 400)
        except ActionError:
            return _api_error("Failed to create transaction", 500)
        return jsonify({"transaction": txn.to_dict()}), 201

    @app.route("/api/ai/categorize", methods=["POST"])
    def api_categorize():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            body = {}
        description = body.get("description")
        if not description or not isinstance(description, str):
            return _api_error("Description is required", 400)
        suggestion = categorize_transaction(
            _ai_client(),
            description,
            body.get("transaction_type") == "income",
            actions.get_categories(),
            cfg.rules,
        )
        return jsonify(suggestion.to_dict())

    @app.route("/api/ai/parse-transaction", methods=["POST"])
    def api_parse_transaction():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            body = {}
        text = body.get("input")
        if not text or not isinstance(text, str):
            return _api_error("Input text is required", 400)
        try:
            parsed = parse_natural_language_transaction(
                _ai_client(), text, actions.get_categories(), _today(), cfg.payment_methods
            )
        except TransactionParseError as exc:
            return _api_error(str(exc), 500)
        return jsonify(parsed.to_dict())

    @app.route("/api/summary")
    def api_summary():
        month = _resolve_month(request.args.get("month"), None)
        records = filter_by_month(records_from_models(actions.get_transactions(g.user)), month)
        summary = build_summary(
            records,
            _budget_limits(actions.get_budgets(g.user)),
            month=month,
            trend_category=request.args.get("category") or None,
            today=_today(),
        )
        return jsonify(summary)

    # -- errors ------------------------------------------------------------

    @app.errorhandler(NotFoundError)
    def handle_not_found(exc: NotFoundError):
        if request.path.startswith("/api/"):
            return _api_error(str(exc), 404)
        return render_template("404.html", message=str(exc)), 404

    @app.errorhandler(404)
    def handle_404(exc):
        if request.path.startswith("/api/"):
            return _api_error("Not found", 404)
        return render_template("404.html", message=None), 404

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        db.session.rollback()
        log.exception("unhandled_error", path=request.path)
        if request.path.startswith("/api/"):
            return _api_error("Internal server error", 500)
        return render_template("error.html"), 500

    return app
