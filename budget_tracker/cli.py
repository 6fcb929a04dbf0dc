"""Command-line interface for the budget tracker.

Usage:
  budget-tracker init-db
  budget-tracker serve --port 5000
  budget-tracker report --month 2025-11 --json out/summary.json
  budget-tracker import-csv statements/november.csv
"""

from __future__ import annotations

import argparse
from typing import List, Optional

from .actions import create_transaction, get_budgets, get_categories, get_transactions
from .analytics import parse_month_key
from .categorizer import fallback_category, match_category, suggest_category
from .data_loader import load_csv_file, records_from_models
from .db import ensure_household_user
from .errors import BudgetTrackerError
from .log import get_logger
from .reports import build_summary, export_summary_csv, format_text_report, save_json
from .settings import get_settings
from .webapp import create_app

log = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="budget-tracker", description="Family budget tracker")
    p.add_argument("--database", help="SQLAlchemy database URL (overrides DATABASE_URL)")
    p.add_argument("--config", "-c", help="Path to JSON config with categories/rules")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables and seed categories")

    serve = sub.add_parser("serve", help="Run the development server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)
    serve.add_argument("--debug", action="store_true")

    report = sub.add_parser("report", help="Print a summary of stored transactions")
    report.add_argument("--month", help="Restrict to one month (YYYY-MM)")
    report.add_argument("--json", dest="json_out", help="Write summary JSON to path")
    report.add_argument("--csv", dest="csv_out", help="Write summary CSV to path")

    imp = sub.add_parser("import-csv", help="Load transactions from CSV file(s)")
    imp.add_argument("inputs", nargs="+", help="CSV file(s) to load")
    return p.parse_args(argv)


def _app_from_args(args: argparse.Namespace):
    overrides = {}
    if args.database:
        overrides["SQLALCHEMY_DATABASE_URI"] = args.database
    if args.config:
        overrides["BUDGET_CONFIG_PATH"] = args.config
    return create_app(overrides or None)


def _run_report(args: argparse.Namespace) -> int:
    if args.month and parse_month_key(args.month) is None:
        print(f"Invalid --month {args.month!r}; expected YYYY-MM")
        return 2
    user = ensure_household_user()
    records = records_from_models(get_transactions(user, args.month))
    budgets = {b.category.name: b.amount for b in get_budgets(user)}
    summary = build_summary(records, budgets, month=args.month)
    print(format_text_report(summary))
    if args.json_out:
        save_json(summary, args.json_out)
        print(f"Saved JSON summary to: {args.json_out}")
    if args.csv_out:
        export_summary_csv(summary, args.csv_out)
        print(f"Saved CSV summary to: {args.csv_out}")
    return 0


def _run_import(args: argparse.Namespace, rules) -> int:
    user = ensure_household_user()
    categories = get_categories()
    imported = 0
    failed = 0
    for path in args.inputs:
        for rec in load_csv_file(path):
            candidates = [c for c in categories if c.is_income == rec.is_income]
            category = (
                match_category(rec.category, candidates)
                or suggest_category(rec.description, candidates, rules)
                or fallback_category(candidates)
            )
            if category is None:
                failed += 1
                continue
            try:
                create_transaction(
                    user,
                    {
                        "category_id": category.id,
                        "amount": rec.amount,
                        "description": rec.description,
                        "transaction_date": rec.transaction_date,
                        "transaction_type": rec.transaction_type,
                        "payment_method": rec.payment_method,
                        "tags": rec.tags,
                    },
                )
            except BudgetTrackerError as exc:
                log.warning("import_row_skipped", file=path, error=str(exc))
                failed += 1
            else:
                imported += 1
    print(f"Imported {imported} transaction(s); skipped {failed}.")
    return 0 if imported or not failed else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    app = _app_from_args(args)

    if args.command == "serve":
        app.run(host=args.host, port=args.port, debug=args.debug or get_settings().debug_mode)
        return 0

    with app.app_context():
        if args.command == "init-db":
            # create_app already created tables and seeded categories
            print(f"Database ready: {app.config['SQLALCHEMY_DATABASE_URI']}")
            return 0
        if args.command == "report":
            return _run_report(args)
        if args.command == "import-csv":
            return _run_import(args, app.extensions["budget_config"].rules)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
