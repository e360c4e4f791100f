from __future__ import annotations
from typing import Tuple
import logging

import numpy as np

from ..models.adjustments import Adjustments
from ..models.pixel_buffer import PixelBuffer
from .pixel_buffer_service import PixelBufferService

logger = logging.getLogger(__name__)


class ColorAdjustmentService:
    """
    Per-pixel brightness / contrast / hue-saturation over the RGB channels.
    Alpha passes through untouched. Works only with PixelBuffer objects.
    """

    def __init__(self):
        self.buffer_service = PixelBufferService()

    # ─── Public API ────────────────────────────────────────────────
    def apply(self, buffer: PixelBuffer, adjustments: Adjustments) -> PixelBuffer:
        """
        Apply brightness → contrast → hue/saturation and return a *new* buffer.
        Steps with a zero value are skipped; intermediate values are not clamped.
        """
        if buffer.is_empty or not adjustments.has_color:
            return buffer.copy()

        rgb = buffer.samples[..., :3].astype(np.float64)

        if adjustments.brightness != 0:
            rgb = self.brightness(rgb, adjustments.brightness)

        if adjustments.contrast != 0:
            rgb = self.contrast(rgb, adjustments.contrast)

        if adjustments.saturation != 0 or adjustments.hue != 0:
            rgb = self.hue_saturation(rgb, adjustments.hue, adjustments.saturation)

        return self.buffer_service.with_rgb(buffer, rgb)

    # ─── Core math (float RGB in, float RGB out) ───────────────────
    @staticmethod
    def brightness(rgb: np.ndarray, value: float) -> np.ndarray:
        return rgb + value * 2.55

    @staticmethod
    def contrast_factor(value: float) -> float:
        # value is confined to [-100, 100], so the denominator never reaches 0.
        return (259.0 * (value + 255.0)) / (255.0 * (259.0 - value))

    @classmethod
    def contrast(cls, rgb: np.ndarray, value: float) -> np.ndarray:
        return cls.contrast_factor(value) * (rgb - 128.0) + 128.0

    @classmethod
    def hue_saturation(cls, rgb: np.ndarray, hue: float, saturation: float) -> np.ndarray:
        h, s, l = cls.rgb_to_hsl(rgb / 255.0)
        h = np.mod(h + hue / 360.0, 1.0)
        # Only the upper bound is clamped; s < 0 swings towards the complement.
        s = np.minimum(s + saturation / 100.0, 1.0)
        return cls.hsl_to_rgb(h, s, l) * 255.0

    @staticmethod
    def rgb_to_hsl(rgb: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        RGB in [0, 1] → (h, s, l) in [0, 1]. When several channels share the
        maximum, red wins over green and green over blue.
        """
        r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
        mx = np.maximum(np.maximum(r, g), b)
        mn = np.minimum(np.minimum(r, g), b)
        l = (mx + mn) / 2.0
        d = mx - mn
        chromatic = d != 0

        with np.errstate(divide="ignore", invalid="ignore"):
            s = np.where(l > 0.5, d / (2.0 - mx - mn), d / (mx + mn))
            safe_d = np.where(chromatic, d, 1.0)
            h_r = ((g - b) / safe_d + np.where(g < b, 6.0, 0.0)) / 6.0
            h_g = ((b - r) / safe_d + 2.0) / 6.0
            h_b = ((r - g) / safe_d + 4.0) / 6.0

        h = np.select([mx == r, mx == g], [h_r, h_g], default=h_b)
        h = np.where(chromatic, h, 0.0)
        s = np.where(chromatic, s, 0.0)
        # Out-of-range inputs (after brightness) can divide by zero; that
        # saturates rather than producing NaN.
        s = np.nan_to_num(s, nan=0.0, posinf=1.0, neginf=0.0)
        return h, s, l

    @staticmethod
    def hsl_to_rgb(h: np.ndarray, s: np.ndarray, l: np.ndarray) -> np.ndarray:
        """(h, s, l) → RGB in [0, 1] via chroma / intermediate / match value."""
        c = (1.0 - np.abs(2.0 * l - 1.0)) * s
        h6 = h * 6.0
        x = c * (1.0 - np.abs(np.mod(h6, 2.0) - 1.0))
        m = l - c / 2.0
        zero = np.zeros_like(c)

        sector = np.floor(h6)
        conditions = [sector < 1, sector < 2, sector < 3, sector < 4, sector < 5]
        r = np.select(conditions, [c, x, zero, zero, x], default=c)
        g = np.select(conditions, [x, c, c, x, zero], default=zero)
        b = np.select(conditions, [zero, zero, x, c, c], default=x)
        return np.stack([r + m, g + m, b + m], axis=-1)
