"""
receipt.py – Plain-text receipts and the day-end sales summary.

Amounts are carried as unrounded floats everywhere else; they are rounded
to two decimals only here, when they are shown.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from .models import Product, Settings, Student, Transaction
from .reconcile import effective_date
from .sets import explode_line_items, expand_set_components


CURRENCY = "₹"
RECEIPT_WIDTH = 48

# Internal stock movements, not sales.
_TRANSFER_TYPES = frozenset({"branch_transfer", "college_transfer"})


def format_currency(amount: Optional[float]) -> str:
    """
    Render an amount with the rupee glyph and exactly two decimals.
    1234.5 → '₹1234.50', None → '₹0.00'
    """
    value = Decimal(str(amount or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{CURRENCY}{value}"


def _row(left: str, right: str, width: int = RECEIPT_WIDTH) -> str:
    gap = max(width - len(left) - len(right), 1)
    return f"{left}{' ' * gap}{right}"


def render_receipt(
    student: Student,
    transaction: Transaction,
    settings: Optional[Settings] = None,
    catalog: Optional[Iterable[Product]] = None,
) -> str:
    """Return a printable receipt for *transaction*.

    Set lines list their components; a component not yet handed out is
    marked with its reason.  *catalog* is only used to fill in component
    names and quantities the stored transaction lacks.
    """
    settings = settings or Settings()
    products = {p.id: p for p in catalog or []}
    rule = "-" * RECEIPT_WIDTH

    lines = [
        settings.receipt_header.center(RECEIPT_WIDTH).rstrip(),
        settings.receipt_subheader.center(RECEIPT_WIDTH).rstrip(),
        rule,
        f"Student : {student.name}",
        f"ID      : {student.student_id}",
        f"Course  : {student.course.upper()}  Year {student.year}"
        + (f"  {student.branch}" if student.branch else ""),
    ]
    when = effective_date(transaction)
    lines.append(f"Date    : {when.strftime('%d %b %Y %H:%M')}")
    reference = transaction.transaction_id or transaction.id
    if transaction.is_pending:
        reference += " (pending sync)"
    lines.append(f"Receipt : {reference}")
    lines.append(rule)

    for item in transaction.items:
        label = f"{item.name} x{item.quantity} @ {format_currency(item.price)}"
        lines.append(_row(label, format_currency(item.total)))
        if item.is_set:
            components = expand_set_components(item, products.get(item.product_id), products)
            for component in components:
                mark = "[x]" if component.taken else "[ ]"
                text = f"   {mark} {component.name} x{component.quantity}"
                if not component.taken and component.reason:
                    text += f" ({component.reason})"
                lines.append(text)

    lines.append(rule)
    lines.append(_row("TOTAL", format_currency(transaction.total_amount)))
    lines.append(_row("Payment", transaction.payment_method.upper()))
    lines.append(_row("Status", "PAID" if transaction.is_paid else "UNPAID"))
    if transaction.remarks:
        lines.append(f"Remarks : {transaction.remarks}")
    return "\n".join(lines) + "\n"


@dataclass
class DayEndSummary:
    items_sold: list = field(default_factory=list)   # [(name, quantity)], most sold first
    transaction_count: int = 0
    total_amount: float = 0.0
    paid_count: int = 0
    paid_amount: float = 0.0

    @property
    def total_items_sold(self) -> int:
        return sum(qty for _, qty in self.items_sold)

    @property
    def unpaid_amount(self) -> float:
        return self.total_amount - self.paid_amount


def day_end_summary(transactions: Iterable[Transaction], day: Optional[date] = None) -> DayEndSummary:
    """
    Aggregate sales, exploding sets into their components.
    Transfers between locations are not sales and are skipped.  When *day*
    is given only transactions dated that day count.
    """
    sold: dict[str, int] = {}
    summary = DayEndSummary()
    for transaction in transactions:
        if transaction.transaction_type in _TRANSFER_TYPES:
            continue
        if day is not None and effective_date(transaction).date() != day:
            continue
        summary.transaction_count += 1
        summary.total_amount += transaction.total_amount
        if transaction.is_paid:
            summary.paid_count += 1
            summary.paid_amount += transaction.total_amount
        for name, qty in explode_line_items(transaction.items):
            sold[name] = sold.get(name, 0) + qty

    summary.items_sold = sorted(sold.items(), key=lambda pair: pair[1], reverse=True)
    return summary


def render_day_end(summary: DayEndSummary, day: Optional[date] = None) -> str:
    rule = "-" * RECEIPT_WIDTH
    title = "DAY-END SALES" + (f" {day.isoformat()}" if day else "")
    lines = [title, rule]
    for name, qty in summary.items_sold:
        lines.append(_row(name, str(qty)))
    lines.append(rule)
    lines.append(_row("Items sold", str(summary.total_items_sold)))
    lines.append(_row("Transactions", str(summary.transaction_count)))
    lines.append(_row("Total", format_currency(summary.total_amount)))
    lines.append(_row(f"Paid ({summary.paid_count})", format_currency(summary.paid_amount)))
    lines.append(_row("Unpaid", format_currency(summary.unpaid_amount)))
    return "\n".join(lines) + "\n"
