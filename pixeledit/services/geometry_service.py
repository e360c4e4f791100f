from __future__ import annotations
from typing import Tuple
import logging
import math

import cv2
import numpy as np

from ..errors import InvalidParameter
from ..models.adjustments import Adjustments
from ..models.pixel_buffer import PixelBuffer
from .pixel_buffer_service import PixelBufferService

logger = logging.getLogger(__name__)

FLIP_DIRECTIONS = {"horizontal": 1, "vertical": 0}   # cv2.flip codes
RESIZE_FITS = ("cover", "contain", "fill", "inside", "outside")

# Exact (cos, sin) for quarter turns so axis-aligned rotations land on the grid.
_QUARTER_TURNS = {0: (1.0, 0.0), 90: (0.0, 1.0), 180: (-1.0, 0.0), 270: (0.0, -1.0)}


class GeometryService:
    """
    Scale / rotate / flip compositing plus resize and watermark helpers.
    Every method returns a *new* PixelBuffer.
    """

    def __init__(self):
        self.buffer_service = PixelBufferService()

    # ─── Transform-from-source ─────────────────────────────────────
    def compose(self, source: PixelBuffer, adjustments: Adjustments) -> PixelBuffer:
        """
        Render *source* onto a same-sized transparent canvas through
        translate(center) → scale → rotate → flip → translate(-center).

        Each output pixel center is mapped back into the source and sampled
        nearest-neighbour (floor); pixels that land outside stay (0, 0, 0, 0).
        """
        if source.is_empty or not adjustments.has_geometry:
            return source.copy()

        width, height = source.width, source.height
        cx, cy = width / 2.0, height / 2.0
        scale = adjustments.scale / 100.0
        cos_t, sin_t = self._rotation_terms(adjustments.rotation)
        fx = -1.0 if adjustments.flip_horizontal else 1.0
        fy = -1.0 if adjustments.flip_vertical else 1.0

        dx = (np.arange(width, dtype=np.float64) + 0.5 - cx)[None, :]
        dy = (np.arange(height, dtype=np.float64) + 0.5 - cy)[:, None]

        # Inverse of p' = C + s·R·F·(p - C)  →  p = C + F·Rᵀ·(p' - C) / s
        src_x = cx + fx * (cos_t * dx + sin_t * dy) / scale
        src_y = cy + fy * (-sin_t * dx + cos_t * dy) / scale

        ix = np.floor(src_x).astype(np.int64)
        iy = np.floor(src_y).astype(np.int64)
        valid = (ix >= 0) & (ix < width) & (iy >= 0) & (iy < height)

        samples = np.zeros((height, width, 4), dtype=np.uint8)
        samples[valid] = source.samples[iy[valid], ix[valid]]
        return self.buffer_service.create_buffer(samples)

    @staticmethod
    def _rotation_terms(degrees: int) -> Tuple[float, float]:
        normalised = degrees % 360
        if normalised in _QUARTER_TURNS:
            return _QUARTER_TURNS[normalised]
        radians = math.radians(normalised)
        return math.cos(radians), math.sin(radians)

    # ─── Destructive helpers ───────────────────────────────────────
    def flip(self, buffer: PixelBuffer, direction: str) -> PixelBuffer:
        """Mirror about the buffer's own vertical (horizontal flip) or horizontal axis."""
        code = FLIP_DIRECTIONS.get(direction)
        if code is None:
            raise InvalidParameter(
                f"flip direction must be one of {sorted(FLIP_DIRECTIONS)}, got {direction!r}"
            )
        if buffer.is_empty:
            return buffer.copy()
        return self.buffer_service.create_buffer(cv2.flip(buffer.samples, code))

    def resize(self, buffer: PixelBuffer, width, height, fit: str = "cover") -> PixelBuffer:
        """
        Resize towards width x height without ever enlarging the source.

        • fill    – stretch to the exact box
        • cover   – keep aspect, fill the box, centre-crop the overflow
        • contain – keep aspect, fit inside, pad with transparency
        • inside  – keep aspect, fit inside, no padding
        • outside – keep aspect, cover the box, no cropping
        """
        if not width or not height:
            raise InvalidParameter("Width and height are required for resize operation")
        width, height = int(width), int(height)
        if width <= 0 or height <= 0:
            raise InvalidParameter(f"Resize target must be positive, got {width}x{height}")
        if fit not in RESIZE_FITS:
            raise InvalidParameter(f"fit must be one of {RESIZE_FITS}, got {fit!r}")
        if buffer.is_empty:
            return buffer.copy()

        src_w, src_h = buffer.width, buffer.height
        if fit == "fill":
            new_w, new_h = min(width, src_w), min(height, src_h)
        else:
            ratio_w, ratio_h = width / src_w, height / src_h
            factor = max(ratio_w, ratio_h) if fit in ("cover", "outside") else min(ratio_w, ratio_h)
            factor = min(factor, 1.0)
            new_w = max(1, round(src_w * factor))
            new_h = max(1, round(src_h * factor))

        samples = buffer.samples
        if (new_w, new_h) != (src_w, src_h):
            samples = cv2.resize(samples, (new_w, new_h), interpolation=cv2.INTER_AREA)
        else:
            samples = samples.copy()

        if fit == "cover":
            crop_w, crop_h = min(width, new_w), min(height, new_h)
            left, top = (new_w - crop_w) // 2, (new_h - crop_h) // 2
            samples = samples[top:top + crop_h, left:left + crop_w].copy()
        elif fit == "contain":
            canvas = np.zeros((max(height, new_h), max(width, new_w), 4), dtype=np.uint8)
            left, top = (canvas.shape[1] - new_w) // 2, (canvas.shape[0] - new_h) // 2
            canvas[top:top + new_h, left:left + new_w] = samples
            samples = canvas

        logger.debug(f"Resized {src_w}x{src_h} → {samples.shape[1]}x{samples.shape[0]} ({fit})")
        return self.buffer_service.create_buffer(samples)

    def composite_watermark(self, buffer: PixelBuffer, watermark: PixelBuffer,
                            opacity: float = 0.5) -> PixelBuffer:
        """
        Alpha-composite *watermark* over *buffer*, anchored bottom-right.
        A watermark larger than the buffer is clipped to its bottom-right part.
        """
        opacity = float(opacity)
        if opacity < 0:
            raise InvalidParameter(f"opacity must be >= 0, got {opacity}")
        opacity = min(opacity, 1.0)
        if buffer.is_empty or watermark.is_empty or opacity == 0:
            return buffer.copy()

        h = min(buffer.height, watermark.height)
        w = min(buffer.width, watermark.width)
        mark = watermark.samples[watermark.height - h:, watermark.width - w:].astype(np.float64)
        samples = buffer.samples.copy()
        base = samples[buffer.height - h:, buffer.width - w:].astype(np.float64)

        alpha = (mark[..., 3:4] / 255.0) * opacity
        rgb = mark[..., :3] * alpha + base[..., :3] * (1.0 - alpha)
        out_alpha = alpha * 255.0 + base[..., 3:4] * (1.0 - alpha)

        to_uint8 = self.buffer_service.to_uint8
        samples[buffer.height - h:, buffer.width - w:] = np.concatenate(
            [to_uint8(rgb), to_uint8(out_alpha)], axis=-1
        )
        return self.buffer_service.create_buffer(samples)
