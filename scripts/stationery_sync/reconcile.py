"""
reconcile.py – Merge queued (offline) transactions with confirmed ones.

A queued entry and a confirmed transaction describe the same sale when
their content signatures match.  Once the confirmed copy exists the queued
one is dropped from the display, without waiting for the queue owner to
remove it.

Two distinct sales with identical items, amount, payment method and paid
state share a signature; the queued one is then hidden.  This is a known
limitation of content matching.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Iterable

from .models import LineItem, PendingEntry, Transaction

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _money(value: float) -> str:
    return f"{float(value):.2f}"


def _line_total(item: LineItem) -> float:
    if item.total is None:
        return item.quantity * item.price
    return item.total


def transaction_signature(transaction: Transaction) -> str:
    """Canonical string of a transaction's financial content; ids are ignored."""
    # Sorted by name so item order does not matter.
    items = sorted(
        [item.name, int(item.quantity), _money(_line_total(item))] for item in transaction.items
    )
    return json.dumps(
        {
            "totalAmount": _money(transaction.total_amount),
            "paymentMethod": transaction.payment_method,
            "isPaid": bool(transaction.is_paid),
            "items": items,
        },
        sort_keys=True,
        ensure_ascii=False,
    )


def pending_to_transaction(entry: PendingEntry) -> Transaction:
    """Shape a queued entry like a confirmed transaction for display."""
    payload = entry.payload
    items = []
    for item in payload.items:
        total = item.quantity * item.price
        items.append(LineItem(
            product_id=item.product_id,
            name=item.name,
            quantity=item.quantity,
            price=item.price,
            total=total,
            is_set=item.is_set,
            status=item.status,
            set_components=list(item.set_components),
        ))
    return Transaction(
        id=entry.id,
        student_id=payload.student_id,
        items=items,
        payment_method=payload.payment_method,
        is_paid=payload.is_paid,
        remarks=payload.remarks,
        total_amount=sum(i.total for i in items),
        transaction_date=entry.created_at,
        created_at=entry.created_at,
        is_pending=True,
    )


def effective_date(transaction: Transaction) -> datetime:
    """transaction_date, else created_at, else the epoch."""
    return transaction.transaction_date or transaction.created_at or EPOCH


def merge_for_display(
    confirmed: Iterable[Transaction],
    queued: Iterable[PendingEntry],
) -> list[Transaction]:
    """
    Return queued entries that have not synced yet plus every confirmed
    transaction, newest first.
    """
    confirmed = list(confirmed)
    synced = {transaction_signature(t) for t in confirmed}

    survivors = []
    for entry in queued:
        shaped = pending_to_transaction(entry)
        if transaction_signature(shaped) in synced:
            logger.debug("Queued entry %s already synced; hiding it", entry.id)
            continue
        survivors.append(shaped)

    merged = survivors + confirmed
    merged.sort(key=effective_date, reverse=True)
    return merged
