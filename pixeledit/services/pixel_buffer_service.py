from __future__ import annotations
from pathlib import Path
from typing import Iterable, Iterator, Union
import os

import numpy as np
from dotenv import load_dotenv

from ..models.pixel_buffer import PixelBuffer
from ..repositories.pixel_buffer_repository import PixelBufferRepository

# Load environment variables
load_dotenv()


class PixelBufferService:
    """I/O and bookkeeping helpers. No pixel math here."""
    def __init__(self):
        self.JPEG_QUALITY = int(os.getenv("JPEG_QUALITY", "95"))
        self.repository = PixelBufferRepository()

    def create_buffer(self, samples: np.ndarray) -> PixelBuffer:
        return self.repository.create_buffer(samples)

    def blank(self, width: int, height: int, rgba=(0, 0, 0, 0)) -> PixelBuffer:
        return self.repository.blank(width, height, rgba)

    def from_bytes(self, width: int, height: int, data) -> PixelBuffer:
        return self.repository.from_bytes(width, height, data)

    def to_bytes(self, buffer: PixelBuffer) -> bytes:
        return self.repository.to_bytes(buffer)

    def load(self, path: Union[str, Path]) -> PixelBuffer:
        """Decode a single image from disk into an RGBA PixelBuffer."""
        return self.repository.load(path)

    def save(self, buffer: PixelBuffer, path: Union[str, Path], quality: int | None = None) -> Path:
        return self.repository.save(buffer, path, quality or self.JPEG_QUALITY)

    def encode(self, buffer: PixelBuffer, fmt: str = "png", quality: int | None = None) -> bytes:
        return self.repository.encode(buffer, fmt, quality or self.JPEG_QUALITY)

    def to_data_url(self, buffer: PixelBuffer, fmt: str = "png", quality: int | None = None) -> str:
        return self.repository.to_data_url(buffer, fmt, quality or self.JPEG_QUALITY)

    def stream_paths(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Path]:
        return self.repository.iter_dir(folder, recursive=recursive, exts=exts)

    @staticmethod
    def to_uint8(values: np.ndarray) -> np.ndarray:
        """
        Clamp float channel values to [0, 255] and round half to even,
        the same quantisation a clamped 8-bit canvas buffer applies.
        """
        return np.rint(np.clip(values, 0.0, 255.0)).astype(np.uint8)

    def with_rgb(self, buffer: PixelBuffer, rgb: np.ndarray) -> PixelBuffer:
        """Return a *new* buffer with float RGB values quantised and alpha kept."""
        samples = buffer.samples.copy()
        samples[..., :3] = self.to_uint8(rgb)
        return self.create_buffer(samples)
