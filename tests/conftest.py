"""Shared fixtures: a small catalog, a student, and an in-memory backend."""

from datetime import datetime, timezone

import pytest

from stationery_sync.errors import ApiError
from stationery_sync.models import (
    LineItem,
    Product,
    SetComponent,
    SetItem,
    Student,
    Transaction,
)


def make_product(id, name=None, price=10.0, stock=100, **kwargs):
    return Product(id=id, name=name or id.upper(), price=price, stock=stock, **kwargs)


@pytest.fixture
def student():
    return Student(
        id="stu1",
        name="Asha Rao",
        student_id="22CS001",
        course="b.tech",
        year=1,
        branch="CSE",
        semester=1,
        items={"lab_record": True},
    )


@pytest.fixture
def catalog():
    product_a = make_product("a", name="A", price=50.0, stock=10, for_course="b.tech", years=[1])
    notebook = make_product("nb", name="Notebook", price=50.0, stock=40, for_course="B.Tech")
    pen = make_product("pen", name="Pen", price=10.0, stock=7)
    kit = make_product(
        "s",
        name="S",
        price=90.0,
        stock=0,
        is_set=True,
        set_items=[SetItem(product_id="a", quantity=2, name_snapshot="A")],
    )
    diploma = make_product("dip", name="Drafter", price=300.0, for_course="diploma")
    return [product_a, notebook, pen, kit, diploma]


def make_transaction(id="t1", date=None, items=None, **kwargs):
    items = items if items is not None else [
        LineItem(product_id="nb", name="Notebook", quantity=2, price=50.0, total=100.0),
        LineItem(product_id="pen", name="Pen", quantity=5, price=10.0, total=50.0),
    ]
    defaults = dict(
        student_id="stu1",
        payment_method="cash",
        is_paid=True,
        total_amount=sum(i.total for i in items),
        transaction_date=date,
    )
    defaults.update(kwargs)
    return Transaction(id=id, items=items, **defaults)


def set_line(taken=(True, True)):
    return LineItem(
        product_id="s",
        name="S",
        quantity=1,
        price=90.0,
        total=90.0,
        is_set=True,
        status="fulfilled" if all(taken) else "partial",
        set_components=[
            SetComponent(product_id="a", name="A", quantity=2, taken=taken[0],
                         reason="" if taken[0] else "Out of stock"),
            SetComponent(product_id="nb", name="Notebook", quantity=1, taken=taken[1],
                         reason="" if taken[1] else "Out of stock"),
        ],
    )


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class FakeAPI:
    """In-memory stand-in for StationeryAPI."""

    def __init__(self, student, transactions=None):
        self.student = student
        self.transactions = list(transactions or [])
        self.offline = False
        self.reject = None
        self.calls = []

    def _check(self, name):
        self.calls.append(name)
        if self.offline:
            raise ApiError("Could not reach the server: connection refused")
        if self.reject and name in self.reject:
            raise ApiError("Insufficient stock for A", status_code=400, path="/api/transactions")

    def create_transaction(self, payload):
        self._check("create_transaction")
        tx = Transaction(
            id=f"srv{len(self.transactions) + 1}",
            student_id=payload.student_id,
            items=payload.items,
            payment_method=payload.payment_method,
            is_paid=payload.is_paid,
            remarks=payload.remarks,
            total_amount=sum(i.total for i in payload.items),
            transaction_date=utc(2024, 5, 1),
        )
        self.transactions.append(tx)
        return tx

    def list_student_transactions(self, student_id):
        self._check("list_student_transactions")
        return [t for t in self.transactions if t.student_id == student_id]

    def update_transaction(self, transaction_id, update):
        self._check("update_transaction")
        for tx in self.transactions:
            if tx.id == transaction_id:
                tx.items = update.items
                tx.is_paid = update.is_paid
                return tx
        raise ApiError("Transaction not found", status_code=404)

    def update_student_items(self, student, items):
        self._check("update_student_items")
        self.student.items = dict(items)
        return self.student

    def get_student(self, course, student_id):
        self._check("get_student")
        return Student(**{**self.student.__dict__, "items": dict(self.student.items)})
