"""
cache.py – Per-student cache of confirmed transactions.
"""

import logging
from typing import Callable, Optional

from .models import Transaction

logger = logging.getLogger(__name__)


class TransactionCache:
    """Confirmed transactions keyed by student id.

    Entries live until they are invalidated: explicitly, by a forced
    ``fetch``, or by ``clear``.
    """

    def __init__(self):
        self._entries: dict[str, list[Transaction]] = {}

    def __contains__(self, student_id: str) -> bool:
        return student_id in self._entries

    def get(self, student_id: str) -> Optional[list[Transaction]]:
        cached = self._entries.get(student_id)
        return list(cached) if cached is not None else None

    def put(self, student_id: str, transactions: list[Transaction]) -> None:
        self._entries[student_id] = list(transactions)

    def invalidate(self, student_id: str) -> None:
        if self._entries.pop(student_id, None) is not None:
            logger.debug("Invalidated cached transactions for student %s", student_id)

    def clear(self) -> None:
        self._entries.clear()

    def fetch(
        self,
        student_id: str,
        loader: Callable[[str], list[Transaction]],
        force: bool = False,
    ) -> list[Transaction]:
        """Return cached transactions, calling *loader* on a miss or when *force* is set."""
        if force:
            self.invalidate(student_id)
        cached = self.get(student_id)
        if cached is not None:
            return cached
        transactions = loader(student_id)
        self.put(student_id, transactions)
        return list(transactions)
