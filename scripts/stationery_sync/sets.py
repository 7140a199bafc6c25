"""
sets.py – Expansion of set (kit) products into their components.

A set line item can be described by two sources:

1. the ``set_components`` already stored on the line item – authoritative
   for history, including the taken/not-taken state;
2. the ``set_items`` of the current catalog product – used to seed new
   drafts and to fill in component metadata history lacks.

Stored components are repaired from the catalog but never overwritten.
"""

import logging
from dataclasses import replace
from typing import Iterable, Optional

from .models import STATUS_FULFILLED, STATUS_PARTIAL, LineItem, Product, SetComponent, SetItem

logger = logging.getLogger(__name__)

UNKNOWN_ITEM = "Unknown item"


def _snapshot_name(set_item: Optional[SetItem], catalog: Optional[dict]) -> str:
    if set_item is None:
        return ""
    if set_item.name_snapshot:
        return set_item.name_snapshot
    product = (catalog or {}).get(set_item.product_id)
    return product.name if product else ""


def components_from_set_items(
    set_items: Iterable[SetItem],
    catalog: Optional[dict] = None,
) -> list[SetComponent]:
    """Fresh components for a new draft: everything taken, no reason.

    *catalog* maps product ids to products and names components whose
    snapshot name is blank.
    """
    return [
        SetComponent(
            product_id=si.product_id,
            name=_snapshot_name(si, catalog) or UNKNOWN_ITEM,
            quantity=si.quantity or 1,
            taken=True,
            reason="",
        )
        for si in set_items
    ]


def expand_set_components(
    line_item: LineItem,
    catalog_product: Optional[Product],
    catalog: Optional[dict] = None,
) -> list[SetComponent]:
    """Return the components of a set *line_item*.

    When the line item carries components they are the base; a component
    whose name or quantity is missing is completed from the matching
    ``set_items`` entry of *catalog_product*.  Existing name, quantity,
    taken and reason values are kept as they are.

    When the line item carries none, components are built from the
    catalog product's ``set_items``.
    """
    set_items = catalog_product.set_items if catalog_product else []

    if not line_item.set_components:
        if not set_items:
            logger.debug("Set %s has no components to expand", line_item.product_id)
        return components_from_set_items(set_items, catalog)

    by_id = {si.product_id: si for si in set_items}
    expanded = []
    for component in line_item.set_components:
        source = by_id.get(component.product_id)
        name = component.name
        quantity = component.quantity
        if not name:
            name = _snapshot_name(source, catalog)
            if not name and catalog and component.product_id in catalog:
                name = catalog[component.product_id].name
            if not name:
                logger.warning(
                    "No name for component %s of set %s", component.product_id, line_item.product_id
                )
                name = UNKNOWN_ITEM
        if quantity is None:
            quantity = source.quantity if source else 1
        expanded.append(replace(component, name=name, quantity=quantity))
    return expanded


def line_status(components: Iterable[SetComponent]) -> str:
    """'partial' as soon as one component has not been handed out."""
    return STATUS_FULFILLED if all(c.taken for c in components) else STATUS_PARTIAL


def explode_line_items(items: Iterable[LineItem]) -> list[tuple[str, int]]:
    """
    Flatten line items into (name, quantity) pairs for reporting.
    A set line contributes each component, multiplied by the set quantity.
    """
    pairs = []
    for item in items:
        if item.is_set and item.set_components:
            for component in item.set_components:
                qty = component.quantity if component.quantity else 1
                pairs.append((component.name or UNKNOWN_ITEM, qty * item.quantity))
        else:
            pairs.append((item.name or UNKNOWN_ITEM, item.quantity))
    return pairs
