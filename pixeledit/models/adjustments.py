from __future__ import annotations
from dataclasses import dataclass, fields, replace
import numbers
import os

from dotenv import load_dotenv

from ..errors import InvalidParameter

load_dotenv()
MAX_SCALE_PERCENT = int(os.getenv("MAX_SCALE_PERCENT", "500"))

_INT_FIELDS = ("brightness", "contrast", "saturation", "hue", "scale", "rotation")
_FLAG_FIELDS = ("flip_horizontal", "flip_vertical")


def is_integer(value) -> bool:
    """True for ints (numpy ones included) but not for bools."""
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


@dataclass(frozen=True)
class Adjustments:
    """
    Value-object holding the cumulative edit state of a session, in the
    slider units of the editor (percent / degrees).
    """
    brightness: int = 0          # [-100, +100]
    contrast:   int = 0          # [-100, +100]
    saturation: int = 0          # [-100, +100], additive delta
    hue:        int = 0          # (-360, +360] degrees
    scale:      int = 100        # [1, MAX_SCALE_PERCENT] percent
    rotation:   int = 0          # degrees, reduced mod 360 at render time
    flip_horizontal: bool = False
    flip_vertical:   bool = False

    def __post_init__(self):
        for name in _INT_FIELDS:
            value = getattr(self, name)
            if not is_integer(value):
                raise InvalidParameter(f"{name} must be an integer, got {value!r}")
        for name in _FLAG_FIELDS:
            if not isinstance(getattr(self, name), bool):
                raise InvalidParameter(f"{name} must be a bool, got {getattr(self, name)!r}")
        for name in ("brightness", "contrast", "saturation"):
            value = getattr(self, name)
            if not -100 <= value <= 100:
                raise InvalidParameter(f"{name} must be in [-100, 100], got {value}")
        if not -360 < self.hue <= 360:
            raise InvalidParameter(f"hue must be in (-360, 360], got {self.hue}")
        if not 1 <= self.scale <= MAX_SCALE_PERCENT:
            raise InvalidParameter(f"scale must be in [1, {MAX_SCALE_PERCENT}], got {self.scale}")

    # ── Helpers ──────────────────────────────────────────────────────
    @classmethod
    def keys(cls) -> tuple:
        return tuple(f.name for f in fields(cls))

    def with_changes(self, **changes) -> Adjustments:
        """Validated copy; unknown keys are rejected rather than ignored."""
        unknown = set(changes) - set(self.keys())
        if unknown:
            raise InvalidParameter(f"Unknown adjustment(s): {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    @property
    def has_color(self) -> bool:
        return bool(self.brightness or self.contrast or self.saturation or self.hue)

    @property
    def has_geometry(self) -> bool:
        return (self.scale != 100 or self.rotation % 360 != 0
                or self.flip_horizontal or self.flip_vertical)
