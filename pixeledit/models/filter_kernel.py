from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True, eq=False)
class FilterKernel:
    """
    Immutable correlation kernel plus its normalisation divisor.
    Separable kernels keep their 1-D row and column instead of the full matrix.
    """
    weights: np.ndarray                 # (kh, kw) float64, read-only
    divisor: float = 1.0
    row: np.ndarray | None = None       # (kw,) for separable kernels
    column: np.ndarray | None = None    # (kh,) for separable kernels

    @classmethod
    def from_matrix(cls, rows, divisor: float = 1.0) -> FilterKernel:
        weights = np.array(rows, dtype=np.float64)
        if weights.ndim != 2 or weights.shape[0] % 2 == 0 or weights.shape[1] % 2 == 0:
            raise ValueError(f"Kernel must be a 2-D matrix with odd sides, got {weights.shape}")
        weights.flags.writeable = False
        return cls(weights=weights, divisor=float(divisor))

    @classmethod
    def separable(cls, row, column, divisor: float = 1.0) -> FilterKernel:
        row = np.array(row, dtype=np.float64)
        column = np.array(column, dtype=np.float64)
        weights = np.outer(column, row)
        for arr in (row, column, weights):
            arr.flags.writeable = False
        return cls(weights=weights, divisor=float(divisor), row=row, column=column)

    @property
    def is_separable(self) -> bool:
        return self.row is not None and self.column is not None

    @property
    def radius(self) -> tuple[int, int]:
        """(ry, rx): how far the footprint reaches from its center."""
        kh, kw = self.weights.shape
        return kh // 2, kw // 2


# ── Predefined kernels ───────────────────────────────────────────────
BOX_BLUR = FilterKernel.from_matrix([[1, 1, 1], [1, 1, 1], [1, 1, 1]], divisor=9)
BOX_BLUR_SEPARABLE = FilterKernel.separable([1, 1, 1], [1, 1, 1], divisor=9)
SHARPEN = FilterKernel.from_matrix([[0, -1, 0], [-1, 5, -1], [0, -1, 0]])
SOBEL_X = FilterKernel.from_matrix([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]])
SOBEL_Y = FilterKernel.from_matrix([[-1, -2, -1], [0, 0, 0], [1, 2, 1]])
