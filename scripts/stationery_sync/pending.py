"""
pending.py – Local store of transactions recorded while offline.

Entries are only stored and read here.  Retrying them once the backend is
reachable again is the job of whatever owns connectivity; once a retry
succeeds the duplicate is hidden by ``reconcile.merge_for_display``.
"""

import json
import logging
import os
import random
import string
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .models import PendingEntry, TransactionPayload

logger = logging.getLogger(__name__)


def new_pending_id(now: Optional[datetime] = None) -> str:
    """'pending-<epoch ms>-<random>'"""
    now = now or datetime.now(timezone.utc)
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"pending-{int(now.timestamp() * 1000)}-{suffix}"


class PendingQueue:
    """Queued transactions, optionally persisted to a JSON file."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self._entries: list[PendingEntry] = self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> list[PendingEntry]:
        if self.path is None or not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as fh:
                raw = json.load(fh) or []
            return [PendingEntry.from_api(r) for r in raw]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.error("Pending queue %s is unreadable, starting empty: %s", self.path, exc)
            return []

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Replace the file atomically.
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump([e.to_api() for e in self._entries], fh, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        finally:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def enqueue(self, payload: TransactionPayload, now: Optional[datetime] = None) -> PendingEntry:
        now = now or datetime.now(timezone.utc)
        entry = PendingEntry(id=new_pending_id(now), created_at=now, payload=payload)
        self._entries.append(entry)
        try:
            self._save()
        except OSError:
            self._entries.remove(entry)
            raise
        logger.info("Queued transaction %s for student %s", entry.id, payload.student_id)
        return entry

    def entries(self) -> list[PendingEntry]:
        return list(self._entries)

    def for_student(self, student_id: str) -> list[PendingEntry]:
        return [e for e in self._entries if e.payload.student_id == student_id]

    def remove(self, entry_id: str) -> bool:
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.id != entry_id]
        if len(self._entries) == before:
            return False
        self._save()
        return True

    def __len__(self) -> int:
        return len(self._entries)
