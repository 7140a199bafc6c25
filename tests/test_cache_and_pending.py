import json
import re
from unittest import mock

import pytest

from conftest import utc
from stationery_sync.cache import TransactionCache
from stationery_sync.models import LineItem, TransactionPayload
from stationery_sync.pending import PendingQueue, new_pending_id


# ---------------------------------------------------------------------------
# TransactionCache
# ---------------------------------------------------------------------------

def test_cache_loads_once():
    cache = TransactionCache()
    loader = mock.Mock(return_value=["t1"])
    assert cache.fetch("stu1", loader) == ["t1"]
    assert cache.fetch("stu1", loader) == ["t1"]
    loader.assert_called_once_with("stu1")


def test_cache_forced_fetch_reloads():
    cache = TransactionCache()
    loader = mock.Mock(side_effect=[["old"], ["new"]])
    cache.fetch("stu1", loader)
    assert cache.fetch("stu1", loader, force=True) == ["new"]
    assert loader.call_count == 2


def test_cache_keyed_by_student_and_invalidated():
    cache = TransactionCache()
    cache.put("stu1", ["a"])
    cache.put("stu2", ["b"])
    cache.invalidate("stu1")
    assert "stu1" not in cache
    assert cache.get("stu2") == ["b"]
    cache.clear()
    assert cache.get("stu2") is None


def test_cache_returns_copies():
    cache = TransactionCache()
    cache.put("stu1", ["a"])
    cache.get("stu1").append("b")
    assert cache.get("stu1") == ["a"]


# ---------------------------------------------------------------------------
# PendingQueue
# ---------------------------------------------------------------------------

def _payload(student_id="stu1"):
    return TransactionPayload(
        student_id=student_id,
        items=[LineItem(product_id="pen", name="Pen", quantity=2, price=10.0, total=20.0)],
        payment_method="cash",
        is_paid=False,
    )


def test_pending_id_format():
    pid = new_pending_id(utc(2024, 1, 1))
    assert re.fullmatch(r"pending-1704067200000-[a-z0-9]{9}", pid)
    assert new_pending_id() != new_pending_id()


def test_queue_in_memory():
    queue = PendingQueue()
    entry = queue.enqueue(_payload())
    queue.enqueue(_payload("stu2"))
    assert len(queue) == 2
    assert [e.id for e in queue.for_student("stu1")] == [entry.id]
    assert queue.remove(entry.id) is True
    assert queue.remove(entry.id) is False
    assert len(queue) == 1


def test_queue_persists_between_sessions(tmp_path):
    path = tmp_path / "queue" / "pending.json"
    entry = PendingQueue(str(path)).enqueue(_payload(), now=utc(2024, 6, 1, 9, 30))

    reloaded = PendingQueue(str(path))
    [restored] = reloaded.entries()
    assert restored.id == entry.id
    assert restored.created_at == utc(2024, 6, 1, 9, 30)
    assert restored.payload.items[0].name == "Pen"
    assert restored.payload.items[0].quantity == 2

    reloaded.remove(entry.id)
    assert json.loads(path.read_text(encoding="utf-8")) == []


def test_corrupt_queue_file_starts_empty(tmp_path):
    path = tmp_path / "pending.json"
    path.write_text("{not json", encoding="utf-8")
    assert PendingQueue(str(path)).entries() == []


def test_failed_write_leaves_queue_unchanged(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    queue = PendingQueue(str(blocker / "pending.json"))
    with pytest.raises(OSError):
        queue.enqueue(_payload())
    assert len(queue) == 0
