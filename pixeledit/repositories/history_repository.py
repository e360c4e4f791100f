from typing import List, Optional

from ..models.history import History, HistoryEntry


class HistoryRepository:
    """
    Low-level bookkeeping on a History: slicing, appending, moving the cursor.
    No policy here; HistoryService decides when each of these runs.
    """

    @staticmethod
    def create_history() -> History:
        return History()

    @staticmethod
    def size(history: History) -> int:
        return len(history.entries)

    @staticmethod
    def entry_at(history: History, index: int) -> Optional[HistoryEntry]:
        if 0 <= index < len(history.entries):
            return history.entries[index]
        return None

    @staticmethod
    def truncate_after_cursor(history: History) -> List[HistoryEntry]:
        """Drop the redo branch; returns what was discarded."""
        keep = history.cursor + 1 if history.entries else 0
        discarded = history.entries[keep:]
        del history.entries[keep:]
        return discarded

    @staticmethod
    def append(history: History, entry: HistoryEntry) -> None:
        history.entries.append(entry)
        history.cursor = len(history.entries) - 1

    @staticmethod
    def evict_oldest(history: History, limit: int) -> int:
        """Keep at most *limit* entries, shifting the cursor with them."""
        overflow = max(0, len(history.entries) - limit)
        if overflow:
            del history.entries[:overflow]
            history.cursor = max(0, history.cursor - overflow)
        return overflow

    @staticmethod
    def move_cursor(history: History, index: int) -> None:
        history.cursor = index

    @staticmethod
    def clear(history: History) -> None:
        history.entries.clear()
        history.cursor = 0
