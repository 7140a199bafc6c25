import pytest

from conftest import FakeAPI, make_transaction, set_line, utc
from stationery_sync.cache import TransactionCache
from stationery_sync.desk import LEVEL_ERROR, LEVEL_WARNING, StudentDesk
from stationery_sync.draft import TransactionDraft
from stationery_sync.pending import PendingQueue


@pytest.fixture
def api(student):
    return FakeAPI(student)


@pytest.fixture
def desk(api):
    return StudentDesk(api, PendingQueue(), TransactionCache())


@pytest.fixture
def draft(student, catalog):
    return TransactionDraft(student, catalog)


def test_online_save_marks_mapped_items_received(desk, api, draft):
    draft.set_quantity("a", 3)
    draft.toggle_set("s")
    status = desk.save_draft(draft, "cash", True)

    assert status.ok
    assert status.timeout == 1.5
    assert status.record.total_amount == pytest.approx(240.0)
    assert draft.student.items == {"lab_record": True, "a": True}
    assert draft.is_empty
    # read-after-write: the student is fetched after the update
    assert api.calls == ["create_transaction", "update_student_items", "get_student"]


def test_addon_only_save_skips_student_update(desk, api, draft):
    draft.add_item("pen", 2)
    desk.save_draft(draft)
    assert api.calls == ["create_transaction", "get_student"]


def test_validation_error_is_inline_and_sends_nothing(desk, api, draft):
    status = desk.save_draft(draft)
    assert status.level == LEVEL_ERROR
    assert status.timeout is None
    assert api.calls == []


def test_offline_save_is_queued_and_shown_as_pending(desk, api, draft, student):
    api.offline = True
    draft.add_item("pen", 2)
    status = desk.save_draft(draft, "cash", False)

    assert status.level == LEVEL_WARNING
    assert status.timeout == 3.0
    assert len(desk.queue) == 1
    assert draft.is_empty

    api.offline = False
    history = desk.history(student).record
    assert [t.is_pending for t in history] == [True]


def test_offline_save_with_unwritable_queue_keeps_draft(api, draft, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    desk = StudentDesk(api, PendingQueue(str(blocker / "pending.json")), TransactionCache())
    api.offline = True
    draft.add_item("pen", 2)

    status = desk.save_draft(draft)

    assert status.level == LEVEL_ERROR
    assert status.timeout == 3.0
    assert len(desk.queue) == 0
    assert draft.quantity("pen") == 2
    assert not desk.saving


def test_queued_entry_disappears_once_synced(desk, api, draft, student):
    api.offline = True
    draft.add_item("pen", 2)
    desk.save_draft(draft)
    entry = desk.queue.entries()[0]

    # The connectivity owner retries the write; the server now has a copy.
    api.offline = False
    api.create_transaction(entry.payload)

    history = desk.history(student, force=True).record
    assert len(history) == 1
    assert not history[0].is_pending
    assert len(desk.queue) == 1


def test_server_rejection_is_not_queued(desk, api, draft):
    api.reject = {"create_transaction"}
    draft.add_item("pen")
    status = desk.save_draft(draft)
    assert status.level == LEVEL_ERROR
    assert "Insufficient stock" in status.text
    assert len(desk.queue) == 0
    assert not draft.is_empty


def test_saving_guard(desk, draft):
    draft.add_item("pen")
    desk.saving = True
    status = desk.save_draft(draft)
    assert status.level == LEVEL_WARNING
    assert "in progress" in status.text


def test_history_uses_cache_until_forced(desk, api, student):
    api.transactions.append(make_transaction("t1", date=utc(2024, 1, 1)))
    desk.history(student)
    desk.history(student)
    assert api.calls.count("list_student_transactions") == 1
    desk.history(student, force=True)
    assert api.calls.count("list_student_transactions") == 2


def test_history_failure_falls_back_to_cache(desk, api, student):
    api.transactions.append(make_transaction("t1"))
    desk.history(student)
    api.offline = True
    status = desk.history(student, force=True)
    assert status.level == LEVEL_ERROR
    assert [t.id for t in status.record] == ["t1"]


def test_mark_component_taken_refetches(desk, api, student):
    tx = make_transaction("t1", items=[set_line((False, True))])
    api.transactions.append(tx)
    line = tx.items[0]

    status = desk.mark_component_taken(student, tx, line, line.set_components[0])

    assert status.ok
    assert api.calls == ["update_transaction", "list_student_transactions"]
    [refreshed] = status.record
    assert refreshed.items[0].set_components[0].taken is True
    assert refreshed.items[0].status == "fulfilled"


def test_mark_component_taken_failure_changes_nothing(desk, api, student):
    tx = make_transaction("t1", items=[set_line((False, True))])
    line = tx.items[0]
    api.offline = True
    status = desk.mark_component_taken(student, tx, line, line.set_components[0])
    assert status.level == LEVEL_ERROR
    assert status.timeout == 3.0
    assert line.set_components[0].taken is False


def test_mark_component_taken_unresolved_id(desk, api, student):
    tx = make_transaction("", items=[set_line((False, True))])
    line = tx.items[0]
    status = desk.mark_component_taken(student, tx, line, line.set_components[0])
    assert status.level == LEVEL_ERROR
    assert status.timeout is None
    assert api.calls == []


def test_set_paid(desk, api, student):
    tx = make_transaction("t1", is_paid=False)
    api.transactions.append(tx)
    status = desk.set_paid(student, tx, True)
    assert status.text == "Marked as paid"
    assert status.record[0].is_paid is True
