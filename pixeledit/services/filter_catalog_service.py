from __future__ import annotations
from typing import Callable, Dict, Tuple
import logging

import numpy as np

from ..errors import InvalidParameter, UnsupportedOperation
from ..models.pixel_buffer import PixelBuffer
from .convolution_service import BOX_BLUR_PASSES, LUMA_WEIGHTS, ConvolutionService
from .pixel_buffer_service import PixelBufferService

logger = logging.getLogger(__name__)

SEPIA_MATRIX = np.array([
    [0.393, 0.769, 0.189],
    [0.349, 0.686, 0.168],
    [0.272, 0.534, 0.131],
], dtype=np.float64)

# Per-channel offsets at full intensity.
VINTAGE_SHIFT = np.array([30.0, 10.0, -20.0])
COOL_SHIFT = np.array([-20.0, 10.0, 20.0])


class FilterCatalogService:
    """
    Single dispatch surface for the named filters.

    Colour filters blend `original*(1-intensity) + filtered*intensity`;
    the structural ones (blur, sharpen, edge) always run at full strength.
    """

    def __init__(self):
        self.buffer_service = PixelBufferService()
        self.convolution = ConvolutionService()
        self._filters: Dict[str, Callable[..., PixelBuffer]] = {
            "grayscale": self.grayscale,
            "sepia": self.sepia,
            "invert": self.invert,
            "vintage": self.vintage,
            "cool": self.cool,
            "blur": self.blur,
            "sharpen": self.sharpen,
            "edge": self.edge,
        }

    # ─── Public API ────────────────────────────────────────────────
    def names(self) -> Tuple[str, ...]:
        return tuple(self._filters)

    def apply(self, name: str, buffer: PixelBuffer, intensity: float = 1.0, **options) -> PixelBuffer:
        handler = self._filters.get(name)
        if handler is None:
            raise UnsupportedOperation(f"Unknown filter: {name}")
        intensity = self.validate_intensity(intensity)
        logger.debug(f"Applying filter {name} (intensity={intensity}) to {buffer.width}x{buffer.height}")
        return handler(buffer, intensity, **options)

    @staticmethod
    def validate_intensity(intensity) -> float:
        try:
            value = float(intensity)
        except (TypeError, ValueError):
            raise InvalidParameter(f"intensity must be a number, got {intensity!r}") from None
        if not 0.0 <= value <= 1.0:
            raise InvalidParameter(f"intensity must be in [0, 1], got {value}")
        return value

    # ─── Colour filters ────────────────────────────────────────────
    def grayscale(self, buffer: PixelBuffer, intensity: float) -> PixelBuffer:
        rgb = self._rgb(buffer)
        gray = (rgb @ LUMA_WEIGHTS)[..., None]
        return self._blend(buffer, rgb, np.broadcast_to(gray, rgb.shape), intensity)

    def sepia(self, buffer: PixelBuffer, intensity: float) -> PixelBuffer:
        rgb = self._rgb(buffer)
        # Blended unclamped; with_rgb clamps the mix at 255.
        return self._blend(buffer, rgb, rgb @ SEPIA_MATRIX.T, intensity)

    def invert(self, buffer: PixelBuffer, intensity: float) -> PixelBuffer:
        rgb = self._rgb(buffer)
        return self._blend(buffer, rgb, 255.0 - rgb, intensity)

    def vintage(self, buffer: PixelBuffer, intensity: float) -> PixelBuffer:
        return self.buffer_service.with_rgb(buffer, self._rgb(buffer) + VINTAGE_SHIFT * intensity)

    def cool(self, buffer: PixelBuffer, intensity: float) -> PixelBuffer:
        return self.buffer_service.with_rgb(buffer, self._rgb(buffer) + COOL_SHIFT * intensity)

    # ─── Structural filters (intensity not consumed) ───────────────
    def blur(self, buffer: PixelBuffer, intensity: float, passes: int = BOX_BLUR_PASSES) -> PixelBuffer:
        return self.convolution.box_blur(buffer, passes=passes)

    def sharpen(self, buffer: PixelBuffer, intensity: float) -> PixelBuffer:
        return self.convolution.sharpen(buffer)

    def edge(self, buffer: PixelBuffer, intensity: float) -> PixelBuffer:
        return self.convolution.detect_edges(buffer)

    # ─── Internal helpers ──────────────────────────────────────────
    @staticmethod
    def _rgb(buffer: PixelBuffer) -> np.ndarray:
        return buffer.samples[..., :3].astype(np.float64)

    def _blend(self, buffer: PixelBuffer, original: np.ndarray, filtered: np.ndarray,
               intensity: float) -> PixelBuffer:
        return self.buffer_service.with_rgb(buffer, original * (1.0 - intensity) + filtered * intensity)
