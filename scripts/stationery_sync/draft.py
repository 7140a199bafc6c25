"""
draft.py – Accumulates a student's selected items into a transaction draft.

Quantities are stored sparsely: a product that is not in the draft has
quantity zero, and a line that drops to zero is removed.  Sets are either
in the draft once or not at all.
"""

import logging
from typing import Iterable, Optional

from .eligibility import is_mapped, item_key
from .errors import DraftValidationError
from .models import PAYMENT_METHODS, LineItem, Product, Student, TransactionPayload
from .sets import components_from_set_items

logger = logging.getLogger(__name__)


class TransactionDraft:
    """Client-side order being assembled for one student."""

    def __init__(self, student: Student, catalog: Iterable[Product]):
        self.student = student
        self.catalog = {p.id: p for p in catalog}
        self._quantities: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _product(self, product_id: str) -> Product:
        product = self.catalog.get(product_id)
        if product is None:
            raise DraftValidationError(f"Unknown product: {product_id}")
        return product

    def _store(self, product: Product, quantity: int) -> int:
        quantity = max(0, min(quantity, product.stock))
        if quantity == 0:
            self._quantities.pop(product.id, None)
        else:
            self._quantities[product.id] = quantity
        return quantity

    def add_item(self, product_id: str, delta: int = 1) -> int:
        """
        Change the quantity of a regular product by *delta* and return the
        new quantity, clamped to [0, stock].  Sets ignore deltas; use
        ``toggle_set`` for them.
        """
        product = self._product(product_id)
        if product.is_set:
            logger.debug("Ignoring delta %+d on set %s", delta, product.name)
            return self.quantity(product_id)
        return self._store(product, self.quantity(product_id) + delta)

    def set_quantity(self, product_id: str, quantity: int) -> int:
        """Set an absolute quantity; sets accept only 0 or 1."""
        product = self._product(product_id)
        if product.is_set:
            if quantity > 0:
                self._quantities[product.id] = 1
                return 1
            self._quantities.pop(product.id, None)
            return 0
        return self._store(product, quantity)

    def toggle_set(self, product_id: str) -> int:
        """Add a set to the draft, or take it out again."""
        product = self._product(product_id)
        if not product.is_set:
            raise DraftValidationError(f"{product.name} is not a set")
        if product_id in self._quantities:
            del self._quantities[product_id]
            return 0
        self._quantities[product_id] = 1
        return 1

    def remove_item(self, product_id: str) -> None:
        self._quantities.pop(product_id, None)

    def clear(self) -> None:
        self._quantities.clear()

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def quantity(self, product_id: str) -> int:
        return self._quantities.get(product_id, 0)

    @property
    def is_empty(self) -> bool:
        return not self._quantities

    def lines(self) -> list[LineItem]:
        """Line items in the order products were first added."""
        lines = []
        for product_id, qty in self._quantities.items():
            product = self.catalog[product_id]
            line = LineItem(
                product_id=product.id,
                name=product.name,
                quantity=qty,
                price=product.price,
                total=qty * product.price,
                is_set=product.is_set,
            )
            if product.is_set:
                line.set_components = components_from_set_items(product.set_items, self.catalog)
            lines.append(line)
        return lines

    def totals(self) -> float:
        """Unrounded draft total; round only when rendering."""
        return sum(self.catalog[pid].price * qty for pid, qty in self._quantities.items())

    def mapped_item_keys(self) -> list[str]:
        """Keys of the student's ``items`` map that this draft issues."""
        return [
            item_key(self.catalog[pid].name)
            for pid in self._quantities
            if is_mapped(self.catalog[pid], self.student)
        ]

    def build_payload(
        self,
        payment_method: str = "cash",
        is_paid: bool = False,
        remarks: Optional[str] = "",
    ) -> TransactionPayload:
        """Validate the draft and return the body to submit (or queue)."""
        if self.is_empty:
            raise DraftValidationError("Select at least one item before saving")
        if payment_method not in PAYMENT_METHODS:
            raise DraftValidationError(
                f"Unknown payment method {payment_method!r}; expected one of {', '.join(PAYMENT_METHODS)}"
            )
        if not self.student.id:
            raise DraftValidationError("Student has no id")
        return TransactionPayload(
            student_id=self.student.id,
            items=self.lines(),
            payment_method=payment_method,
            is_paid=is_paid,
            remarks=(remarks or "").strip(),
        )


def apply_received(student_items: dict, keys: Iterable[str]) -> dict:
    """Return a copy of *student_items* with every key in *keys* marked received."""
    updated = dict(student_items)
    for key in keys:
        updated[key] = True
    return updated
