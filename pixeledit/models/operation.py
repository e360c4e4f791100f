from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from ..errors import InvalidParameter

OPERATION_KINDS = (
    "resize", "blur", "grayscale", "compress", "rotate", "watermark",
    "brightness", "contrast", "saturation", "hue", "scale", "flip",
    "invert", "sepia", "vintage", "cool", "sharpen", "edge",
)


@dataclass
class OperationDescriptor:
    """
    Boundary request object: which operation to run and its named parameters.
    Built by whatever adapter sits in front of the engine (CLI, RPC, UI).
    """
    kind: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OperationDescriptor:
        """Accepts both {"kind": ...} and the older {"operation": ...} spelling."""
        kind = data.get("kind") or data.get("operation")
        if not kind:
            raise InvalidParameter("Missing required field: kind")
        parameters = data.get("parameters") or {}
        if not isinstance(parameters, Mapping):
            raise InvalidParameter(f"parameters must be a mapping, got {type(parameters).__name__}")
        return cls(kind=str(kind), parameters=dict(parameters))
