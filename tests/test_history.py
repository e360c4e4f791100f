import pytest

from conftest import make_buffer
from pixeledit.models.adjustments import Adjustments
from pixeledit.models.history import HistoryEntry
from pixeledit.services.history_service import HistoryService


def _entry(level):
    return HistoryEntry(buffer=make_buffer(1, 1, (level, level, level, 255)).snapshot(),
                        adjustments=Adjustments(brightness=level))


def _level(entry):
    return entry.adjustments.brightness


def test_empty_history_cannot_move():
    history = HistoryService()
    assert history.undo() is None
    assert history.redo() is None
    assert history.current() is None
    assert len(history) == 0


def test_undo_redo_walks_entries():
    history = HistoryService()
    for level in (0, 1, 2):
        history.commit(_entry(level))
    assert _level(history.undo()) == 1
    assert _level(history.undo()) == 0
    assert history.undo() is None
    assert _level(history.redo()) == 1
    assert _level(history.redo()) == 2
    assert history.redo() is None


def test_commit_discards_redo_branch():
    history = HistoryService()
    for level in (0, 1, 2):
        history.commit(_entry(level))
    history.undo()
    history.undo()
    history.commit(_entry(9))
    assert len(history) == 2
    assert not history.can_redo()
    assert _level(history.current()) == 9
    assert _level(history.undo()) == 0


def test_oldest_entries_are_evicted():
    history = HistoryService(limit=3)
    for level in range(6):
        history.commit(_entry(level))
    assert len(history) == 3
    assert history.cursor == 2
    assert [_level(history.undo()), _level(history.undo())] == [4, 3]
    assert history.undo() is None


def test_clear():
    history = HistoryService()
    history.commit(_entry(1))
    history.clear()
    assert len(history) == 0
    assert history.cursor == 0


def test_limit_must_be_positive():
    with pytest.raises(ValueError):
        HistoryService(limit=0)
