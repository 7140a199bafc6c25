"""
stock.py – Stock levels and incoming stock entries.
"""

from datetime import datetime
from typing import Iterable, Optional

from .errors import DraftValidationError
from .models import Product, StockEntryLine, format_datetime


def low_stock_products(catalog: Iterable[Product], default_threshold: Optional[int] = None) -> list[Product]:
    """
    Regular products whose stock is below their own threshold.
    Sets are skipped: their availability comes from their components.
    *default_threshold*, when given, replaces every product's threshold.
    """
    result = []
    for product in catalog:
        if product.is_set:
            continue
        threshold = default_threshold if default_threshold is not None else product.low_stock_threshold
        if product.stock < threshold:
            result.append(product)
    return sorted(result, key=lambda p: (p.stock, p.name))


def stock_value(catalog: Iterable[Product]) -> float:
    return sum(p.price * p.stock for p in catalog if not p.is_set)


def build_stock_entry_payload(
    lines: Iterable[StockEntryLine],
    vendor_id: str,
    college_id: Optional[str] = None,
    invoice_number: str = "",
    invoice_date: Optional[datetime] = None,
    remarks: str = "",
    created_by: str = "System",
) -> dict:
    """Body of ``POST /api/stock-entries`` in its batch form."""
    lines = list(lines)
    if not lines:
        raise DraftValidationError("No items provided for stock entry")
    if not vendor_id:
        raise DraftValidationError("Vendor is required")
    for line in lines:
        if not line.product_id:
            raise DraftValidationError("Every stock line needs a product")
        if line.quantity < 1:
            raise DraftValidationError(f"Quantity must be at least 1 (product {line.product_id})")
        if line.purchase_price < 0:
            raise DraftValidationError(f"Purchase price cannot be negative (product {line.product_id})")

    payload = {
        "vendor": vendor_id,
        "college": college_id,
        "invoiceNumber": invoice_number.strip(),
        "remarks": remarks.strip(),
        "createdBy": created_by,
        "items": [line.to_api() for line in lines],
    }
    if invoice_date is not None:
        payload["invoiceDate"] = format_datetime(invoice_date)
    return payload
