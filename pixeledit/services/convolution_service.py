from __future__ import annotations
import logging
import os

import cv2
import numpy as np
from dotenv import load_dotenv

from ..errors import DegenerateInput
from ..models.filter_kernel import BOX_BLUR, SHARPEN, SOBEL_X, SOBEL_Y, FilterKernel
from ..models.pixel_buffer import PixelBuffer
from .pixel_buffer_service import PixelBufferService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

BOX_BLUR_PASSES = int(os.getenv("BOX_BLUR_PASSES", "3"))

# Luminance weights shared with the grayscale filter.
LUMA_WEIGHTS = np.array([0.3, 0.59, 0.11], dtype=np.float64)


class ConvolutionService:
    """
    Kernel filters over PixelBuffer objects.

    Only pixels whose whole kernel footprint lies inside the buffer are
    written; the border (kernel radius wide) is copied through unchanged.
    Sums run in float64 through OpenCV's correlation routines and are
    quantised back to uint8 once per pass.
    """

    def __init__(self):
        self.buffer_service = PixelBufferService()

    # ─── Public API ────────────────────────────────────────────────
    def convolve(self, buffer: PixelBuffer, kernel: FilterKernel) -> PixelBuffer:
        """Correlate R, G and B with *kernel*; returns a *new* buffer."""
        try:
            ry, rx = self._check_fits(buffer, kernel)
        except DegenerateInput as err:
            logger.debug(f"Convolution skipped: {err}")
            return buffer.copy()

        rgb = buffer.samples[..., :3].astype(np.float64)
        filtered = self._correlate(rgb, kernel) / kernel.divisor

        samples = buffer.samples.copy()
        inner = (slice(ry, buffer.height - ry), slice(rx, buffer.width - rx))
        samples[inner + (slice(0, 3),)] = self.buffer_service.to_uint8(filtered[inner])
        return self.buffer_service.create_buffer(samples)

    def box_blur(self, buffer: PixelBuffer, passes: int = BOX_BLUR_PASSES,
                 kernel: FilterKernel = BOX_BLUR) -> PixelBuffer:
        """
        Repeated 3x3 mean filter. Each pass re-quantises to 8 bits, so N
        passes differ from one larger kernel.
        """
        result = buffer.copy()
        for _ in range(max(0, int(passes))):
            result = self.convolve(result, kernel)
        return result

    def sharpen(self, buffer: PixelBuffer) -> PixelBuffer:
        return self.convolve(buffer, SHARPEN)

    def detect_edges(self, buffer: PixelBuffer) -> PixelBuffer:
        """
        Sobel gradient magnitude on the luminance plane, written to R, G and B.
        Magnitudes above 255 saturate.
        """
        try:
            ry, rx = self._check_fits(buffer, SOBEL_X)
        except DegenerateInput as err:
            logger.debug(f"Edge detection skipped: {err}")
            return buffer.copy()

        gray = self.luminance(buffer).astype(np.float64)
        gx = self._correlate(gray, SOBEL_X)
        gy = self._correlate(gray, SOBEL_Y)
        magnitude = self.buffer_service.to_uint8(np.sqrt(gx * gx + gy * gy))

        samples = buffer.samples.copy()
        inner = (slice(ry, buffer.height - ry), slice(rx, buffer.width - rx))
        samples[inner + (slice(0, 3),)] = magnitude[inner][..., None]
        return self.buffer_service.create_buffer(samples)

    def luminance(self, buffer: PixelBuffer) -> np.ndarray:
        """8-bit gray plane, 0.3R + 0.59G + 0.11B."""
        rgb = buffer.samples[..., :3].astype(np.float64)
        return self.buffer_service.to_uint8(rgb @ LUMA_WEIGHTS)

    # ─── Internal helpers ──────────────────────────────────────────
    @staticmethod
    def _check_fits(buffer: PixelBuffer, kernel: FilterKernel):
        ry, rx = kernel.radius
        if buffer.is_empty:
            raise DegenerateInput(f"zero-area buffer {buffer.width}x{buffer.height}")
        if buffer.height <= 2 * ry or buffer.width <= 2 * rx:
            raise DegenerateInput(
                f"kernel {kernel.weights.shape} does not fit {buffer.width}x{buffer.height}"
            )
        return ry, rx

    @staticmethod
    def _correlate(plane: np.ndarray, kernel: FilterKernel) -> np.ndarray:
        """
        Raw weighted sums. Border values are whatever OpenCV extrapolates;
        callers only read the interior.
        """
        if kernel.is_separable:
            return cv2.sepFilter2D(plane, cv2.CV_64F, kernel.row.copy(), kernel.column.copy(),
                                   borderType=cv2.BORDER_REPLICATE)
        return cv2.filter2D(plane, cv2.CV_64F, kernel.weights.copy(),
                            borderType=cv2.BORDER_REPLICATE)
