"""
eligibility.py – Which catalog products a student may be issued.

A product is visible to a student when every constraint it declares
(course, years, branches and, where requested, semesters) matches.
An empty constraint matches everyone.
"""

import re
from typing import Iterable, Optional

from .models import Product, Student


MODE_MAPPED = "mapped"
MODE_ADDON = "addon"

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_WHITESPACE = re.compile(r"\s+")


def normalize(value: Optional[str]) -> str:
    """
    Canonical form for course and branch comparison.
    'B.Tech' → 'btech', ' B TECH ' → 'btech', None → ''
    """
    if not value:
        return ""
    return _NON_ALNUM.sub("", str(value).lower())


def item_key(name: str) -> str:
    """
    Key of a product in a student's ``items`` map.
    'Lab Record' → 'lab_record', 'A' → 'a'
    """
    return _WHITESPACE.sub("_", name.strip().lower())


def is_addon(product: Product) -> bool:
    """An add-on is offered to every student, outside the mapped kit."""
    return not product.for_course.strip()


def is_mapped(product: Product, student: Student) -> bool:
    """True when *product* belongs to the kit of *student*'s course."""
    return not is_addon(product) and normalize(product.for_course) == normalize(student.course)


def is_visible(product: Product, student: Student, semester_aware: bool = False) -> bool:
    if not is_addon(product) and normalize(product.for_course) != normalize(student.course):
        return False
    if product.years and int(student.year) not in {int(y) for y in product.years}:
        return False
    if product.branch:
        allowed = {normalize(b) for b in product.branch}
        if normalize(student.branch) not in allowed:
            return False
    if semester_aware and product.semesters:
        if student.semester is None or int(student.semester) not in {int(s) for s in product.semesters}:
            return False
    return True


def visible_products(
    catalog: Iterable[Product],
    student: Student,
    semester_aware: bool = False,
) -> list[Product]:
    """Return the products of *catalog* visible to *student*, in catalog order."""
    return [p for p in catalog if is_visible(p, student, semester_aware)]


def products_for_mode(
    catalog: Iterable[Product],
    student: Student,
    mode: str,
    semester_aware: bool = False,
) -> list[Product]:
    """Split the visible products into the mapped kit or the add-ons."""
    visible = visible_products(catalog, student, semester_aware)
    if mode == MODE_MAPPED:
        return [p for p in visible if not is_addon(p)]
    if mode == MODE_ADDON:
        return [p for p in visible if is_addon(p)]
    raise ValueError(f"unknown product mode {mode!r}; expected {MODE_MAPPED!r} or {MODE_ADDON!r}")


def selectable_set_components(
    catalog: Iterable[Product],
    set_product_id: Optional[str] = None,
) -> list[Product]:
    """Products a set may reference: never a set, never the set itself."""
    return [p for p in catalog if not p.is_set and p.id != set_product_id]
