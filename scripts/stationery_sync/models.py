"""
models.py – Dataclasses for the records exchanged with the stationery backend.

Every record has a ``from_api`` constructor that accepts the backend's
camelCase JSON.  Records that are sent back also have ``to_api``.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("cash", "online")
# Accepted when parsing server data, never produced by this package.
_LEGACY_PAYMENT_METHODS = ("transfer",)

STATUS_FULFILLED = "fulfilled"
STATUS_PARTIAL = "partial"

DEFAULT_LOW_STOCK_THRESHOLD = 10


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def _ref_id(value: Any) -> str:
    """Return the id of a reference that may be a bare id or an embedded object."""
    if isinstance(value, dict):
        return str(value.get("_id") or value.get("id") or "")
    if value is None:
        return ""
    return str(value)


def _record_id(raw: dict) -> str:
    return _ref_id(raw.get("_id") or raw.get("id"))


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (or epoch milliseconds) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            logger.warning("Unparseable timestamp %r", value)
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@dataclass
class SetItem:
    """One component reference inside a set product definition."""

    product_id: str
    quantity: int = 1
    name_snapshot: str = ""
    price_snapshot: float = 0.0

    @classmethod
    def from_api(cls, raw: dict) -> "SetItem":
        product = raw.get("product", raw.get("productId"))
        name = raw.get("productNameSnapshot", "")
        if not name and isinstance(product, dict):
            name = product.get("name", "")
        return cls(
            product_id=_ref_id(product),
            quantity=_to_int(raw.get("quantity"), 1) or 1,
            name_snapshot=name or "",
            price_snapshot=_to_float(raw.get("productPriceSnapshot")),
        )


@dataclass
class Product:
    """A catalog product; ``is_set`` products bundle other products."""

    id: str
    name: str
    price: float
    stock: int = 0
    description: str = ""
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    for_course: str = ""
    years: list = field(default_factory=list)        # list[int]; empty = all years
    branch: list = field(default_factory=list)       # list[str]; empty = all branches
    semesters: list = field(default_factory=list)    # list[int]; empty = all semesters
    is_set: bool = False
    set_items: list = field(default_factory=list)    # list[SetItem]
    category: str = ""
    remarks: str = ""

    @classmethod
    def from_api(cls, raw: dict) -> "Product":
        years = [_to_int(y) for y in raw.get("years") or []]
        # Older products carry a single `year` instead of `years`.
        legacy_year = _to_int(raw.get("year"))
        if not years and legacy_year:
            years = [legacy_year]

        branch = raw.get("branch") or []
        if isinstance(branch, str):
            branch = [branch] if branch.strip() else []

        threshold = raw.get("lowStockThreshold")
        return cls(
            id=_record_id(raw),
            name=raw.get("name", ""),
            price=_to_float(raw.get("price")),
            stock=max(_to_int(raw.get("stock")), 0),
            description=raw.get("description", "") or "",
            low_stock_threshold=(
                _to_int(threshold, DEFAULT_LOW_STOCK_THRESHOLD)
                if isinstance(threshold, (int, float))
                else DEFAULT_LOW_STOCK_THRESHOLD
            ),
            for_course=(raw.get("forCourse") or "").strip(),
            years=years,
            branch=[str(b) for b in branch],
            semesters=[_to_int(s) for s in raw.get("semesters") or []],
            is_set=bool(raw.get("isSet")),
            set_items=[SetItem.from_api(si) for si in raw.get("setItems") or []],
            category=raw.get("category", "") or "",
            remarks=raw.get("remarks", "") or "",
        )


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------

@dataclass
class Student:
    """A student record; ``items`` maps kit item keys to a received flag."""

    id: str
    name: str
    student_id: str
    course: str
    year: int
    branch: str = ""
    semester: Optional[int] = None
    paid: bool = False
    items: dict = field(default_factory=dict)   # {item_key: received}

    @classmethod
    def from_api(cls, raw: dict) -> "Student":
        semester = raw.get("semester")
        return cls(
            id=_record_id(raw),
            name=raw.get("name", ""),
            student_id=str(raw.get("studentId", "") or ""),
            course=raw.get("course", "") or "",
            year=_to_int(raw.get("year")),
            branch=raw.get("branch", "") or "",
            semester=_to_int(semester) if semester not in (None, "") else None,
            paid=bool(raw.get("paid")),
            items={str(k): bool(v) for k, v in (raw.get("items") or {}).items()},
        )


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

@dataclass
class SetComponent:
    """Issuance state of one component of a set line item."""

    product_id: str
    name: str = ""
    quantity: Optional[int] = None
    taken: bool = True
    reason: str = ""

    @classmethod
    def from_api(cls, raw: dict) -> "SetComponent":
        quantity = raw.get("quantity")
        return cls(
            product_id=_ref_id(raw.get("productId", raw.get("product"))),
            name=raw.get("name") or raw.get("productNameSnapshot") or "",
            quantity=_to_int(quantity) if quantity not in (None, "") else None,
            taken=bool(raw.get("taken", True)),
            reason=raw.get("reason") or "",
        )

    def to_api(self) -> dict:
        return {
            "productId": self.product_id,
            "name": self.name,
            "quantity": self.quantity if self.quantity is not None else 1,
            "taken": self.taken,
            "reason": self.reason,
        }


@dataclass
class LineItem:
    """One line of a transaction."""

    product_id: str
    name: str
    quantity: int
    price: float
    total: float = 0.0
    is_set: bool = False
    status: str = STATUS_FULFILLED
    set_components: list = field(default_factory=list)   # list[SetComponent]

    @classmethod
    def from_api(cls, raw: dict) -> "LineItem":
        quantity = _to_int(raw.get("quantity"), 1)
        price = _to_float(raw.get("price"))
        if raw.get("total") is None:
            logger.warning("Line item %s has no total; recomputing", raw.get("name", "?"))
            total = quantity * price
        else:
            total = _to_float(raw.get("total"), quantity * price)
        components = [SetComponent.from_api(c) for c in raw.get("setComponents") or []]
        return cls(
            product_id=_ref_id(raw.get("productId", raw.get("product"))),
            name=raw.get("name") or "",
            quantity=quantity,
            price=price,
            total=total,
            is_set=bool(raw.get("isSet")) or bool(components),
            status=raw.get("status") or STATUS_FULFILLED,
            set_components=components,
        )

    def to_api(self) -> dict:
        data = {
            "productId": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "price": self.price,
            "total": self.total,
            "isSet": self.is_set,
            "status": self.status,
        }
        if self.is_set:
            data["setComponents"] = [c.to_api() for c in self.set_components]
        return data


@dataclass
class TransactionPayload:
    """Body of ``POST /api/transactions``; also the payload of a queued entry."""

    student_id: str
    items: list                 # list[LineItem]
    payment_method: str = "cash"
    is_paid: bool = False
    remarks: str = ""

    @classmethod
    def from_api(cls, raw: dict) -> "TransactionPayload":
        return cls(
            student_id=str(raw.get("studentId", "")),
            items=[LineItem.from_api(i) for i in raw.get("items") or []],
            payment_method=raw.get("paymentMethod") or "cash",
            is_paid=bool(raw.get("isPaid")),
            remarks=raw.get("remarks") or "",
        )

    def to_api(self) -> dict:
        return {
            "studentId": self.student_id,
            "items": [i.to_api() for i in self.items],
            "paymentMethod": self.payment_method,
            "isPaid": self.is_paid,
            "remarks": self.remarks,
        }


@dataclass
class TransactionUpdate:
    """Body of ``PUT /api/transactions/{id}``; the items list replaces the stored one."""

    items: list                 # list[LineItem]
    payment_method: str
    is_paid: bool
    remarks: str = ""

    def to_api(self) -> dict:
        return {
            "items": [i.to_api() for i in self.items],
            "paymentMethod": self.payment_method,
            "isPaid": self.is_paid,
            "remarks": self.remarks,
        }


@dataclass
class Transaction:
    """A confirmed transaction, or a queued one shaped for display."""

    id: str
    student_id: str
    items: list = field(default_factory=list)   # list[LineItem]
    payment_method: str = "cash"
    is_paid: bool = False
    remarks: str = ""
    total_amount: float = 0.0
    transaction_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    is_pending: bool = False
    stock_deducted: bool = False
    transaction_id: str = ""
    transaction_type: str = "student"

    @classmethod
    def from_api(cls, raw: dict) -> "Transaction":
        student = raw.get("student") or {}
        student_id = raw.get("studentId") or student.get("userId") or ""
        method = raw.get("paymentMethod") or "cash"
        if method not in PAYMENT_METHODS + _LEGACY_PAYMENT_METHODS:
            logger.warning("Unknown payment method %r on transaction %s", method, _record_id(raw))
        return cls(
            id=_record_id(raw),
            student_id=_ref_id(student_id),
            items=[LineItem.from_api(i) for i in raw.get("items") or []],
            payment_method=method,
            is_paid=bool(raw.get("isPaid")),
            remarks=raw.get("remarks") or "",
            total_amount=_to_float(raw.get("totalAmount")),
            transaction_date=parse_datetime(raw.get("transactionDate")),
            created_at=parse_datetime(raw.get("createdAt")),
            is_pending=bool(raw.get("isPending")),
            stock_deducted=bool(raw.get("stockDeducted")),
            transaction_id=raw.get("transactionId") or "",
            transaction_type=raw.get("transactionType") or "student",
        )


@dataclass
class PendingEntry:
    """A transaction recorded while the backend was unreachable."""

    id: str
    created_at: datetime
    payload: TransactionPayload

    @classmethod
    def from_api(cls, raw: dict) -> "PendingEntry":
        return cls(
            id=str(raw["id"]),
            created_at=parse_datetime(raw.get("createdAt")) or datetime.now(timezone.utc),
            payload=TransactionPayload.from_api(raw.get("payload") or {}),
        )

    def to_api(self) -> dict:
        return {
            "id": self.id,
            "createdAt": format_datetime(self.created_at),
            "payload": self.payload.to_api(),
        }


# ---------------------------------------------------------------------------
# Stock, vendors and settings
# ---------------------------------------------------------------------------

@dataclass
class StockEntryLine:
    """One product received in a stock entry."""

    product_id: str
    quantity: int
    purchase_price: float = 0.0

    @property
    def total_cost(self) -> float:
        return self.purchase_price * self.quantity

    def to_api(self) -> dict:
        return {
            "product": self.product_id,
            "quantity": self.quantity,
            "purchasePrice": self.purchase_price,
        }


@dataclass
class StockEntry:
    """A recorded receipt of stock from a vendor (``college_id`` None = central stock)."""

    id: str
    product_id: str
    vendor_id: str
    quantity: int
    college_id: Optional[str] = None
    invoice_number: str = ""
    invoice_date: Optional[datetime] = None
    purchase_price: float = 0.0
    remarks: str = ""
    created_by: str = "System"

    @property
    def total_cost(self) -> float:
        return self.purchase_price * self.quantity

    @classmethod
    def from_api(cls, raw: dict) -> "StockEntry":
        college = _ref_id(raw.get("college"))
        return cls(
            id=_record_id(raw),
            product_id=_ref_id(raw.get("product")),
            vendor_id=_ref_id(raw.get("vendor")),
            quantity=_to_int(raw.get("quantity")),
            college_id=college or None,
            invoice_number=raw.get("invoiceNumber") or "",
            invoice_date=parse_datetime(raw.get("invoiceDate")),
            purchase_price=_to_float(raw.get("purchasePrice")),
            remarks=raw.get("remarks") or "",
            created_by=raw.get("createdBy") or "System",
        )


@dataclass
class Vendor:
    id: str
    name: str
    contact: str = ""

    @classmethod
    def from_api(cls, raw: dict) -> "Vendor":
        return cls(
            id=_record_id(raw),
            name=raw.get("name", ""),
            contact=raw.get("contactPerson") or raw.get("phone") or "",
        )


@dataclass
class Settings:
    """Branding shown on printed receipts."""

    receipt_header: str = "PYDAH GROUP OF INSTITUTIONS"
    receipt_subheader: str = "Stationery Management System"
    app_name: str = ""

    @classmethod
    def from_api(cls, raw: dict) -> "Settings":
        defaults = cls()
        return cls(
            receipt_header=raw.get("receiptHeader") or defaults.receipt_header,
            receipt_subheader=raw.get("receiptSubheader") or defaults.receipt_subheader,
            app_name=raw.get("appName") or "",
        )
