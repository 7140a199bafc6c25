"""
cli.py – Command-line front end for the stationery backend.

Connection settings come from the YAML file given with --config (or the
built-in defaults) and from the environment:
    STATIONERY_API_HOST    – backend URL
    STATIONERY_API_TOKEN   – bearer token, if the backend wants one
    STATIONERY_QUEUE_FILE  – where offline transactions are kept
"""

import argparse
import logging
import sys
from datetime import date
from typing import Optional

from .client import StationeryAPI
from .config import Config, load_config
from .desk import StudentDesk
from .due import due_summary, render_due
from .eligibility import MODE_ADDON, MODE_MAPPED, products_for_mode, visible_products
from .errors import StationeryError
from .models import Settings, Student
from .pending import PendingQueue
from .receipt import day_end_summary, format_currency, render_day_end, render_receipt
from .stock import low_stock_products

log = logging.getLogger(__name__)


def _settings(api: StationeryAPI, config: Config) -> Settings:
    """Receipt branding from the backend, falling back to the config file."""
    try:
        return api.get_settings()
    except StationeryError as exc:
        log.warning("Using receipt branding from config: %s", exc)
        return Settings(receipt_header=config.receipt_header, receipt_subheader=config.receipt_subheader)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_products(api: StationeryAPI, config: Config, args: argparse.Namespace) -> int:
    student = Student(
        id="",
        name="",
        student_id="",
        course=args.course,
        year=args.year,
        branch=args.branch or "",
        semester=args.semester,
    )
    catalog = api.list_products()
    semester_aware = args.semester is not None
    if args.mode:
        products = products_for_mode(catalog, student, args.mode, semester_aware)
    else:
        products = visible_products(catalog, student, semester_aware)
    for p in products:
        kind = "set" if p.is_set else f"stock {p.stock}"
        print(f"{p.name:<32} {format_currency(p.price):>10}  {kind}")
    log.info("%d of %d products visible", len(products), len(catalog))
    return 0


def cmd_history(api: StationeryAPI, config: Config, args: argparse.Namespace) -> int:
    student = api.get_student(args.course, args.student)
    desk = StudentDesk(api, PendingQueue(config.queue_file))
    status = desk.history(student)
    if status.text:
        log.warning(status.text)
    for t in status.record or []:
        marker = "PENDING" if t.is_pending else ("PAID" if t.is_paid else "UNPAID")
        when = t.transaction_date or t.created_at
        stamp = when.strftime("%Y-%m-%d %H:%M") if when else "-"
        print(f"{stamp}  {t.id:<28} {format_currency(t.total_amount):>10}  {marker}")
    return 0 if status.ok else 1


def cmd_receipt(api: StationeryAPI, config: Config, args: argparse.Namespace) -> int:
    student = api.get_student(args.course, args.student)
    desk = StudentDesk(api, PendingQueue(config.queue_file))
    status = desk.history(student)
    match = next((t for t in status.record or [] if t.id == args.transaction), None)
    if match is None:
        log.error("Transaction %s not found for student %s", args.transaction, args.student)
        return 1
    print(render_receipt(student, match, _settings(api, config), api.list_products()), end="")
    return 0


def cmd_low_stock(api: StationeryAPI, config: Config, args: argparse.Namespace) -> int:
    products = low_stock_products(api.list_products(), args.threshold)
    for p in products:
        print(f"{p.name:<32} stock {p.stock:>5}  threshold {p.low_stock_threshold}")
    log.info("%d products below threshold", len(products))
    return 0


def cmd_day_end(api: StationeryAPI, config: Config, args: argparse.Namespace) -> int:
    day = date.fromisoformat(args.date) if args.date else date.today()
    summary = day_end_summary(api.list_transactions(), day)
    print(render_day_end(summary, day), end="")
    return 0


def cmd_due(api: StationeryAPI, config: Config, args: argparse.Namespace) -> int:
    records = due_summary(
        api.list_students(),
        api.list_products(),
        course=args.course,
        year=args.year,
        branch=args.branch,
        search=args.search or "",
    )
    print(render_due(records), end="")
    log.info("%d students with items due", len(records))
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Issue stationery and print receipts against the stationery backend."
    )
    parser.add_argument("--config",  help="YAML settings file (default: built-in)")
    parser.add_argument("--verbose", action="store_true", help="Log debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("products", help="List products visible to a course/year")
    p.add_argument("--course",   required=True, help="Course, e.g. b.tech")
    p.add_argument("--year",     required=True, type=int, help="Year of study")
    p.add_argument("--branch",   help="Branch, e.g. CSE")
    p.add_argument("--semester", type=int, help="Semester (enables semester filtering)")
    p.add_argument("--mode",     choices=[MODE_MAPPED, MODE_ADDON], help="Only kit items or only add-ons")
    p.set_defaults(func=cmd_products)

    p = sub.add_parser("history", help="Show a student's transactions, pending ones included")
    p.add_argument("--course",  required=True, help="Student's course")
    p.add_argument("--student", required=True, help="Student record id")
    p.set_defaults(func=cmd_history)

    p = sub.add_parser("receipt", help="Print a receipt")
    p.add_argument("--course",      required=True, help="Student's course")
    p.add_argument("--student",     required=True, help="Student record id")
    p.add_argument("--transaction", required=True, help="Transaction id (or pending-… id)")
    p.set_defaults(func=cmd_receipt)

    p = sub.add_parser("low-stock", help="List products below their stock threshold")
    p.add_argument("--threshold", type=int, help="Use this threshold for every product")
    p.set_defaults(func=cmd_low_stock)

    p = sub.add_parser("day-end", help="Summarise one day's sales")
    p.add_argument("--date", help="Day as YYYY-MM-DD (default: today)")
    p.set_defaults(func=cmd_day_end)

    p = sub.add_parser("due", help="List kit items students have not received yet")
    p.add_argument("--course", help="Only this course")
    p.add_argument("--year",   type=int, help="Only this year of study")
    p.add_argument("--branch", help="Only this branch")
    p.add_argument("--search", help="Match student name or id")
    p.set_defaults(func=cmd_due)

    return parser.parse_args(argv)


def main(argv: Optional[list] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )
    config = load_config(args.config)
    api = StationeryAPI.from_config(config)
    try:
        return args.func(api, config, args)
    except StationeryError as exc:
        log.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
