from __future__ import annotations
from pathlib import Path
from typing import Union, Iterable, Iterator
from io import BytesIO
import base64
import logging
import os

import numpy as np
from PIL import Image as PILImage
from dotenv import load_dotenv

from ..models.pixel_buffer import PixelBuffer

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# Pillow format names keyed by the short names used in operation parameters.
_FORMATS = {"png": "PNG", "jpeg": "JPEG", "jpg": "JPEG", "webp": "WEBP"}


class PixelBufferRepository:
    """
    Handles file I/O, codecs and raw sample access for PixelBuffer entities.
    """
    def __init__(self):
        self.VALID_EXTS = {
            ext.strip().lower()
            for ext in os.getenv("VALID_IMAGE_EXTENSIONS", ".png,.jpg,.jpeg,.webp,.bmp").split(",")
        }

    @staticmethod
    def create_buffer(samples: np.ndarray) -> PixelBuffer:
        height, width = samples.shape[:2]
        return PixelBuffer(width=width, height=height, samples=samples)

    @staticmethod
    def blank(width: int, height: int, rgba=(0, 0, 0, 0)) -> PixelBuffer:
        samples = np.empty((height, width, 4), dtype=np.uint8)
        samples[...] = rgba
        return PixelBuffer(width=width, height=height, samples=samples)

    @staticmethod
    def from_bytes(width: int, height: int, data: Union[bytes, bytearray, memoryview]) -> PixelBuffer:
        """Wrap a flat row-major RGBA sequence of length width*height*4."""
        flat = np.frombuffer(data, dtype=np.uint8)
        if flat.size != width * height * 4:
            raise ValueError(
                f"Expected {width * height * 4} samples for {width}x{height}, got {flat.size}"
            )
        return PixelBuffer(width, height, flat.reshape((height, width, 4)).copy())

    @staticmethod
    def to_bytes(buffer: PixelBuffer) -> bytes:
        return np.ascontiguousarray(buffer.samples).tobytes()

    # ─── Codec boundary (Pillow) ─────────────────────────────────────
    @staticmethod
    def from_pil(pil_img: PILImage.Image) -> PixelBuffer:
        arr = np.asarray(pil_img.convert("RGBA"), dtype=np.uint8).copy()
        return PixelBufferRepository.create_buffer(arr)

    @staticmethod
    def to_pil(buffer: PixelBuffer) -> PILImage.Image:
        return PILImage.fromarray(np.ascontiguousarray(buffer.samples))

    @staticmethod
    def load(path: Union[str, Path]) -> PixelBuffer:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found or unreadable: {path}")
        with PILImage.open(path) as pil_img:
            return PixelBufferRepository.from_pil(pil_img)

    @staticmethod
    def encode(buffer: PixelBuffer, fmt: str = "png", quality: int = 95) -> bytes:
        pil_format = _FORMATS.get(fmt.lower())
        if pil_format is None:
            raise ValueError(f"Unsupported output format: {fmt}")
        pil_img = PixelBufferRepository.to_pil(buffer)
        out = BytesIO()
        if pil_format == "JPEG":
            # JPEG has no alpha channel.
            pil_img.convert("RGB").save(out, format="JPEG", quality=min(int(quality), 100), progressive=True)
        elif pil_format == "WEBP":
            pil_img.save(out, format="WEBP", quality=min(int(quality), 100))
        else:
            pil_img.save(out, format="PNG")
        return out.getvalue()

    @staticmethod
    def to_data_url(buffer: PixelBuffer, fmt: str = "png", quality: int = 95) -> str:
        mime = "jpeg" if fmt.lower() == "jpg" else fmt.lower()
        payload = base64.b64encode(PixelBufferRepository.encode(buffer, fmt, quality)).decode("utf-8")
        return f"data:image/{mime};base64,{payload}"

    @staticmethod
    def save(buffer: PixelBuffer, path: Union[str, Path], quality: int = 95) -> Path:
        path = Path(path)
        fmt = path.suffix.lstrip(".").lower() or "png"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(PixelBufferRepository.encode(buffer, fmt, quality))
        return path

    def iter_dir(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Path]:
        """
        Yield image paths one at a time, filtered by extension.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        allowed = {e.lower() for e in (exts or self.VALID_EXTS)}
        pattern = "**/*" if recursive else "*"

        for p in sorted(folder.glob(pattern)):
            if not p.is_file():
                continue
            if p.suffix.lower() not in allowed:
                logger.debug(f"Skipping due to extension: {p}")
                continue
            yield p
