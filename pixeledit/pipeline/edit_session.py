"""
Edit session
Owns the source image, the current render, the adjustment state and the
undo/redo history. It is the only entry point that mutates any of them.
"""

from __future__ import annotations
from typing import Optional, Tuple
import logging

from ..errors import InvalidParameter
from ..models.adjustments import Adjustments, is_integer
from ..models.history import AppliedFilter, HistoryEntry
from ..models.pixel_buffer import PixelBuffer
from ..services.color_adjustment_service import ColorAdjustmentService
from ..services.filter_catalog_service import FilterCatalogService
from ..services.geometry_service import FLIP_DIRECTIONS, GeometryService
from ..services.history_service import HistoryService
from ..services.pixel_buffer_service import PixelBufferService
from .operation_dispatcher import DescriptorLike, OperationDispatcher

logger = logging.getLogger(__name__)


class EditSession:
    """
    One editor instance. Scale, rotation and flips are always re-derived from
    the untouched source; filters are replayed on top of each render, so an
    adjustment made after a filter keeps the filter.
    """

    def __init__(self,
                 buffer: Optional[PixelBuffer] = None,
                 *,
                 color_service: ColorAdjustmentService | None = None,
                 geometry_service: GeometryService | None = None,
                 filter_catalog: FilterCatalogService | None = None,
                 history_service: HistoryService | None = None):
        self.color_service = color_service or ColorAdjustmentService()
        self.geometry_service = geometry_service or GeometryService()
        self.filter_catalog = filter_catalog or FilterCatalogService()
        self.history = history_service or HistoryService()
        self.buffer_service = PixelBufferService()
        self.dispatcher = OperationDispatcher(self.color_service, self.geometry_service, self.filter_catalog)

        self._loaded: Optional[PixelBuffer] = None     # as handed to load()
        self._source: Optional[PixelBuffer] = None     # after resize / watermark
        self._current: Optional[PixelBuffer] = None
        self._adjustments = Adjustments()
        self._filters: Tuple[AppliedFilter, ...] = ()

        if buffer is not None:
            self.load(buffer)

    # ─── State accessors ───────────────────────────────────────────
    @property
    def is_loaded(self) -> bool:
        return self._source is not None

    @property
    def current(self) -> PixelBuffer:
        """Read-only copy of the current render."""
        self._require_loaded()
        return self._current.snapshot()

    @property
    def source(self) -> PixelBuffer:
        self._require_loaded()
        return self._source

    @property
    def adjustments(self) -> Adjustments:
        return self._adjustments

    @property
    def filters(self) -> Tuple[AppliedFilter, ...]:
        return self._filters

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    # ─── Loading / reset ───────────────────────────────────────────
    def load(self, buffer: PixelBuffer) -> PixelBuffer:
        """Take *buffer* as the new source; adjustments and history start over."""
        if not isinstance(buffer, PixelBuffer):
            raise InvalidParameter(f"Expected a PixelBuffer, got {type(buffer).__name__}")
        self._loaded = buffer.snapshot()
        logger.info(f"Loaded {buffer.width}x{buffer.height} source")
        return self._start_over()

    def reset(self) -> PixelBuffer:
        """Discard every edit and return to the loaded image."""
        self._require_loaded()
        return self._start_over()

    def _start_over(self) -> PixelBuffer:
        self._source = self._loaded
        self._adjustments = Adjustments()
        self._filters = ()
        self.history.clear()
        self._current = self._render(self._source, self._adjustments, self._filters)
        self._commit()
        return self.current

    # ─── Adjustments / geometry ────────────────────────────────────
    def adjust(self, **changes) -> PixelBuffer:
        """Set one or more adjustment values and re-render from the source."""
        self._require_loaded()
        adjustments = self._adjustments.with_changes(**changes)
        return self._update(adjustments=adjustments)

    def rotate(self, degrees: int) -> PixelBuffer:
        """Rotations accumulate; they are reduced mod 360 only when rendering."""
        if not is_integer(degrees):
            raise InvalidParameter(f"rotation must be an integer number of degrees, got {degrees!r}")
        return self.adjust(rotation=self._adjustments.rotation + degrees)

    def set_scale(self, percent: int) -> PixelBuffer:
        return self.adjust(scale=percent)

    def flip(self, direction: str) -> PixelBuffer:
        if direction not in FLIP_DIRECTIONS:
            raise InvalidParameter(
                f"flip direction must be one of {sorted(FLIP_DIRECTIONS)}, got {direction!r}"
            )
        key = "flip_horizontal" if direction == "horizontal" else "flip_vertical"
        return self.adjust(**{key: not getattr(self._adjustments, key)})

    def resize(self, width: int, height: int, fit: str = "cover") -> PixelBuffer:
        self._require_loaded()
        source = self.geometry_service.resize(self._source, width, height, fit)
        return self._update(source=source.snapshot())

    def watermark(self, mark: PixelBuffer, opacity: float = 0.5) -> PixelBuffer:
        self._require_loaded()
        source = self.geometry_service.composite_watermark(self._source, mark, opacity)
        return self._update(source=source.snapshot())

    # ─── Filters ───────────────────────────────────────────────────
    def apply_filter(self, name: str, intensity: float = 1.0, **options) -> PixelBuffer:
        """Filter the current render; the filter is replayed by later renders."""
        self._require_loaded()
        rendered = self.filter_catalog.apply(name, self._current, intensity, **options)
        applied = AppliedFilter(name, float(intensity), tuple(sorted(options.items())))
        self._current = rendered
        self._filters = self._filters + (applied,)
        self._commit()
        return self.current

    # ─── Descriptor boundary ───────────────────────────────────────
    def apply(self, operation: DescriptorLike) -> PixelBuffer:
        self._require_loaded()
        return self.dispatcher.apply_to_session(self, operation)

    # ─── History ───────────────────────────────────────────────────
    def undo(self) -> bool:
        entry = self.history.undo()
        if entry is None:
            return False
        self._restore(entry)
        return True

    def redo(self) -> bool:
        entry = self.history.redo()
        if entry is None:
            return False
        self._restore(entry)
        return True

    # ─── Output ────────────────────────────────────────────────────
    def export(self, fmt: str = "png", quality: int | None = None) -> bytes:
        """Encode the current render for an external consumer."""
        self._require_loaded()
        return self.buffer_service.encode(self._current, fmt, quality)

    def to_data_url(self, fmt: str = "png", quality: int | None = None) -> str:
        self._require_loaded()
        return self.buffer_service.to_data_url(self._current, fmt, quality)

    # ─── Internal helpers ──────────────────────────────────────────
    def _require_loaded(self) -> None:
        if self._source is None:
            raise InvalidParameter("No image loaded in this session")

    def _render(self, source: PixelBuffer, adjustments: Adjustments,
                filters: Tuple[AppliedFilter, ...]) -> PixelBuffer:
        rendered = self.geometry_service.compose(source, adjustments)
        rendered = self.color_service.apply(rendered, adjustments)
        for applied in filters:
            rendered = self.filter_catalog.apply(applied.name, rendered, applied.intensity,
                                                 **dict(applied.options))
        return rendered

    def _update(self, *, adjustments: Adjustments | None = None,
                source: PixelBuffer | None = None) -> PixelBuffer:
        """Re-render with the new state, then swap it in and record it."""
        adjustments = self._adjustments if adjustments is None else adjustments
        source = self._source if source is None else source
        rendered = self._render(source, adjustments, self._filters)
        self._adjustments, self._source, self._current = adjustments, source, rendered
        self._commit()
        return self.current

    def _commit(self) -> None:
        self.history.commit(HistoryEntry(
            buffer=self._current.snapshot(),
            adjustments=self._adjustments,
            filters=self._filters,
            source=self._source,
        ))

    def _restore(self, entry: HistoryEntry) -> None:
        self._current = entry.buffer.copy()
        self._adjustments = entry.adjustments
        self._filters = entry.filters
        self._source = entry.source
