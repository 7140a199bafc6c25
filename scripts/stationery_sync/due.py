"""
due.py – Kit items still owed to students.

A mapped product is due to a student until the student's ``items`` map
flags its item key as received.  Add-ons are never due.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .eligibility import MODE_MAPPED, item_key, normalize, products_for_mode
from .models import Product, Student
from .receipt import RECEIPT_WIDTH, format_currency


@dataclass
class StudentDue:
    student: Student
    mapped: list[Product] = field(default_factory=list)
    pending: list[Product] = field(default_factory=list)

    @property
    def issued_count(self) -> int:
        return len(self.mapped) - len(self.pending)

    @property
    def mapped_value(self) -> float:
        return sum(p.price for p in self.mapped)

    @property
    def pending_value(self) -> float:
        return sum(p.price for p in self.pending)

    @property
    def issued_value(self) -> float:
        return max(self.mapped_value - self.pending_value, 0.0)


def due_items(student: Student, catalog: Iterable[Product]) -> list[Product]:
    """Mapped products of *student* not yet flagged as received, in catalog order."""
    return due_record(student, catalog).pending


def due_record(student: Student, catalog: Iterable[Product]) -> StudentDue:
    mapped = products_for_mode(catalog, student, MODE_MAPPED)
    pending = [p for p in mapped if not student.items.get(item_key(p.name))]
    return StudentDue(student=student, mapped=mapped, pending=pending)


def _matches(
    student: Student,
    course: Optional[str],
    year: Optional[int],
    branch: Optional[str],
    search: str,
) -> bool:
    if course and normalize(student.course) != normalize(course):
        return False
    if year and student.year != year:
        return False
    if branch and normalize(student.branch) != normalize(branch):
        return False
    if search:
        needle = search.strip().lower()
        if needle not in student.name.lower() and needle not in student.student_id.lower():
            return False
    return True


def due_summary(
    students: Iterable[Student],
    catalog: Iterable[Product],
    course: Optional[str] = None,
    year: Optional[int] = None,
    branch: Optional[str] = None,
    search: str = "",
) -> list[StudentDue]:
    """
    One record per student who still has something due, ordered by course,
    then year, then name.  Course and branch filters compare normalised
    values; *search* matches the name or the student id.
    """
    catalog = list(catalog)
    records = []
    for student in students:
        if not _matches(student, course, year, branch, search):
            continue
        record = due_record(student, catalog)
        if record.pending:
            records.append(record)
    records.sort(key=lambda r: (r.student.course.lower(), r.student.year, r.student.name.lower()))
    return records


def render_due(records: list[StudentDue]) -> str:
    rule = "-" * RECEIPT_WIDTH
    lines = ["ITEMS DUE", rule]
    for record in records:
        student = record.student
        lines.append(
            f"{student.name} ({student.student_id})  {student.course.upper()} Year {student.year}"
            + (f" {student.branch}" if student.branch else "")
        )
        lines.append(
            f"  issued {record.issued_count}/{len(record.mapped)}"
            f"  issued {format_currency(record.issued_value)}"
            f"  pending {format_currency(record.pending_value)}"
        )
        for product in record.pending:
            lines.append(f"   - {product.name}")
    lines.append(rule)
    lines.append(f"Students with items due: {len(records)}")
    lines.append(f"Pending value: {format_currency(sum(r.pending_value for r in records))}")
    return "\n".join(lines) + "\n"
