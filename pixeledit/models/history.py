from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, List, Tuple

from .adjustments import Adjustments
from .pixel_buffer import PixelBuffer


@dataclass(frozen=True)
class AppliedFilter:
    """A catalog filter as it was applied, so renders can replay it."""
    name: str
    intensity: float = 1.0
    options: Tuple[Tuple[str, Any], ...] = ()


@dataclass(frozen=True)
class HistoryEntry:
    """
    Snapshot taken after a completed edit: the rendered buffer plus the
    state needed to re-render it (adjustments, applied filters, source).
    Buffers are read-only copies owned by the entry.
    """
    buffer: PixelBuffer
    adjustments: Adjustments
    filters: Tuple[AppliedFilter, ...] = ()
    source: PixelBuffer | None = None


@dataclass
class History:
    """Linear undo/redo sequence. `cursor` points at the materialised entry."""
    entries: List[HistoryEntry] = field(default_factory=list)
    cursor: int = 0
