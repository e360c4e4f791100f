from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass(eq=False)
class PixelBuffer:
    """
    Simple data object: RGBA8 pixels plus their dimensions.
    No codec logic outside the repository.
    """
    width: int
    height: int
    samples: np.ndarray  # Shape (H, W, 4), dtype uint8, RGBA order.

    def __post_init__(self):
        expected = (self.height, self.width, 4)
        if self.samples.dtype != np.uint8 or self.samples.shape != expected:
            raise ValueError(
                f"samples must be uint8 with shape {expected}, "
                f"got {self.samples.dtype} {self.samples.shape}"
            )

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def copy(self) -> PixelBuffer:
        """Return a buffer that owns a writable copy of the samples."""
        return PixelBuffer(self.width, self.height, self.samples.copy())

    def snapshot(self) -> PixelBuffer:
        """Read-only copy, safe to keep while the original keeps changing."""
        frozen = self.samples.copy()
        frozen.flags.writeable = False
        return PixelBuffer(self.width, self.height, frozen)
