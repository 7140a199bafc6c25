"""
fulfillment.py – Partial fulfillment of set line items.

Each set component is either not taken or taken.  A component only ever
moves forward, from not taken to taken.  Updates rebuild the whole item list
of the transaction, because the backend replaces the stored list wholesale.
"""

import enum
import logging
from dataclasses import replace

from .errors import IdentifierError
from .models import LineItem, SetComponent, Transaction, TransactionUpdate
from .sets import line_status

logger = logging.getLogger(__name__)


class ComponentState(enum.Enum):
    NOT_TAKEN = "not_taken"
    TAKEN = "taken"

    @classmethod
    def of(cls, component: SetComponent) -> "ComponentState":
        return cls.TAKEN if component.taken else cls.NOT_TAKEN

    def advance(self) -> "ComponentState":
        """TAKEN is terminal."""
        return ComponentState.TAKEN


def _rebuild_line(line: LineItem, target_component_id: str) -> LineItem:
    components = []
    for component in line.set_components:
        if component.product_id == target_component_id:
            state = ComponentState.of(component).advance()
            component = replace(component, taken=state is ComponentState.TAKEN, reason="")
        components.append(component)
    return replace(line, set_components=components, status=line_status(components))


def mark_component_taken(
    transaction: Transaction,
    line_item: LineItem,
    component: SetComponent,
) -> TransactionUpdate:
    """
    Build the update that hands out *component* of the set *line_item*.

    Raises ``IdentifierError`` without building anything when the
    transaction id, the line's product id or the component's product id
    is missing or does not belong to *transaction*.  Calling it for a
    component already taken yields the same list with its reason cleared.
    """
    if not transaction.id or transaction.is_pending:
        raise IdentifierError("Transaction has not been saved yet; cannot update it")
    if not line_item.product_id:
        raise IdentifierError(f"Line item {line_item.name or '?'} has no product id")
    if not component.product_id:
        raise IdentifierError(f"Component {component.name or '?'} has no product id")

    target = next((line for line in transaction.items if line.product_id == line_item.product_id), None)
    if target is None:
        raise IdentifierError(
            f"Product {line_item.product_id} is not part of transaction {transaction.id}"
        )
    if not any(c.product_id == component.product_id for c in target.set_components):
        raise IdentifierError(
            f"Component {component.product_id} is not part of set {line_item.product_id}"
        )

    items = []
    for line in transaction.items:
        if line.product_id == line_item.product_id:
            line = _rebuild_line(line, component.product_id)
        items.append(line)

    logger.debug(
        "Marking component %s of %s taken on transaction %s",
        component.product_id, line_item.product_id, transaction.id,
    )
    return TransactionUpdate(
        items=items,
        payment_method=transaction.payment_method,
        is_paid=transaction.is_paid,
        remarks=transaction.remarks,
    )


def paid_status_update(transaction: Transaction, is_paid: bool) -> TransactionUpdate:
    """Update that flips the paid state and resends the items unchanged."""
    if not transaction.id or transaction.is_pending:
        raise IdentifierError("Transaction has not been saved yet; cannot update it")
    return TransactionUpdate(
        items=list(transaction.items),
        payment_method=transaction.payment_method,
        is_paid=is_paid,
        remarks=transaction.remarks,
    )
