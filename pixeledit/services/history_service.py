from __future__ import annotations
from typing import Optional
import logging
import os

from dotenv import load_dotenv

from ..models.history import History, HistoryEntry
from ..repositories.history_repository import HistoryRepository

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "50"))


class HistoryService:
    """
    Bounded linear undo/redo over HistoryEntry snapshots.

    The cursor points at the entry currently shown. Committing while the
    cursor is not on the last entry discards the redo branch; once the limit
    is reached the oldest entries are evicted.
    """

    def __init__(self, limit: int = HISTORY_LIMIT):
        if limit < 1:
            raise ValueError(f"History limit must be at least 1, got {limit}")
        self.limit = limit
        self.repository = HistoryRepository()
        self.history: History = self.repository.create_history()

    def commit(self, entry: HistoryEntry) -> None:
        discarded = self.repository.truncate_after_cursor(self.history)
        if discarded:
            logger.debug(f"Discarded {len(discarded)} redo entries")
        self.repository.append(self.history, entry)
        evicted = self.repository.evict_oldest(self.history, self.limit)
        if evicted:
            logger.debug(f"Evicted {evicted} oldest history entries (limit {self.limit})")

    def undo(self) -> Optional[HistoryEntry]:
        """Step back one entry; None when already at the first one."""
        if not self.can_undo():
            return None
        self.repository.move_cursor(self.history, self.history.cursor - 1)
        return self.current()

    def redo(self) -> Optional[HistoryEntry]:
        if not self.can_redo():
            return None
        self.repository.move_cursor(self.history, self.history.cursor + 1)
        return self.current()

    def can_undo(self) -> bool:
        return self.history.cursor > 0

    def can_redo(self) -> bool:
        return self.history.cursor < self.repository.size(self.history) - 1

    def current(self) -> Optional[HistoryEntry]:
        return self.repository.entry_at(self.history, self.history.cursor)

    def clear(self) -> None:
        self.repository.clear(self.history)

    def __len__(self) -> int:
        return self.repository.size(self.history)

    @property
    def cursor(self) -> int:
        return self.history.cursor
