import pytest

from conftest import make_transaction, set_line
from stationery_sync.errors import IdentifierError
from stationery_sync.fulfillment import ComponentState, mark_component_taken, paid_status_update
from stationery_sync.models import LineItem, SetComponent


@pytest.fixture
def transaction():
    pen = LineItem(product_id="pen", name="Pen", quantity=2, price=10.0, total=20.0)
    return make_transaction("t1", items=[pen, set_line((False, False))], remarks="kit")


def _component(transaction, product_id):
    line = transaction.items[1]
    return line, next(c for c in line.set_components if c.product_id == product_id)


def test_marks_only_the_target_component(transaction):
    line, target = _component(transaction, "a")
    update = mark_component_taken(transaction, line, target)

    pen, kit = update.items
    assert pen == transaction.items[0]
    a, notebook = kit.set_components
    assert (a.taken, a.reason) == (True, "")
    assert (notebook.taken, notebook.reason) == (False, "Out of stock")
    assert kit.status == "partial"


def test_sends_full_item_list(transaction):
    line, target = _component(transaction, "nb")
    update = mark_component_taken(transaction, line, target)
    body = update.to_api()
    assert [i["productId"] for i in body["items"]] == ["pen", "s"]
    assert body["paymentMethod"] == "cash"
    assert body["isPaid"] is True
    assert body["remarks"] == "kit"


def test_last_component_completes_the_line(transaction):
    transaction.items[1].set_components[0].taken = True
    line, target = _component(transaction, "nb")
    update = mark_component_taken(transaction, line, target)
    assert update.items[1].status == "fulfilled"


def test_input_transaction_untouched(transaction):
    line, target = _component(transaction, "a")
    mark_component_taken(transaction, line, target)
    assert transaction.items[1].set_components[0].taken is False


def test_already_taken_is_a_safe_noop():
    tx = make_transaction("t1", items=[set_line((True, True))])
    tx.items[0].set_components[0].reason = "stale note"
    line = tx.items[0]
    update = mark_component_taken(tx, line, line.set_components[0])
    component = update.items[0].set_components[0]
    assert component.taken is True
    assert component.reason == ""


@pytest.mark.parametrize("mutate, message", [
    (lambda tx, line, comp: setattr(tx, "id", ""), "not been saved"),
    (lambda tx, line, comp: setattr(tx, "is_pending", True), "not been saved"),
    (lambda tx, line, comp: setattr(line, "product_id", ""), "no product id"),
    (lambda tx, line, comp: setattr(comp, "product_id", ""), "no product id"),
])
def test_unresolvable_identifiers(transaction, mutate, message):
    line, target = _component(transaction, "a")
    line = LineItem(**{**line.__dict__})
    target = SetComponent(**{**target.__dict__})
    mutate(transaction, line, target)
    with pytest.raises(IdentifierError, match=message):
        mark_component_taken(transaction, line, target)


def test_line_not_in_transaction(transaction):
    foreign = LineItem(product_id="other-set", name="Other", quantity=1, price=1.0, is_set=True)
    with pytest.raises(IdentifierError, match="not part of transaction"):
        mark_component_taken(transaction, foreign, SetComponent(product_id="a"))


def test_component_not_in_set(transaction):
    line = transaction.items[1]
    with pytest.raises(IdentifierError, match="not part of set"):
        mark_component_taken(transaction, line, SetComponent(product_id="pen"))


def test_component_state_is_one_way():
    assert ComponentState.NOT_TAKEN.advance() is ComponentState.TAKEN
    assert ComponentState.TAKEN.advance() is ComponentState.TAKEN
    assert ComponentState.of(SetComponent(product_id="x", taken=False)) is ComponentState.NOT_TAKEN


def test_paid_status_update(transaction):
    update = paid_status_update(transaction, False)
    assert update.is_paid is False
    assert update.items == transaction.items
