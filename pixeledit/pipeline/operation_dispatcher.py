"""
Operation dispatcher
Maps boundary operation descriptors ({kind, parameters}) onto the engine,
either statelessly on a single buffer or onto an EditSession.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union
import logging
import os

from dotenv import load_dotenv

from ..errors import InvalidParameter, PixelEditError, UnsupportedOperation
from ..models.adjustments import Adjustments
from ..models.operation import OperationDescriptor
from ..models.pixel_buffer import PixelBuffer
from ..services.color_adjustment_service import ColorAdjustmentService
from ..services.convolution_service import BOX_BLUR_PASSES
from ..services.filter_catalog_service import FilterCatalogService
from ..services.geometry_service import GeometryService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

MAX_BLUR_RADIUS = int(os.getenv("MAX_BLUR_RADIUS", "50"))
DEFAULT_ROTATE_ANGLE = int(os.getenv("DEFAULT_ROTATE_ANGLE", "90"))

COLOR_KINDS = ("brightness", "contrast", "saturation", "hue")
BLEND_FILTER_KINDS = ("grayscale", "sepia", "invert", "vintage", "cool")
STRUCTURAL_FILTER_KINDS = ("sharpen", "edge")
COMPRESS_FORMATS = ("jpeg", "jpg", "webp", "png")

DescriptorLike = Union[OperationDescriptor, Mapping[str, Any]]
_MISSING = object()


def as_descriptor(operation: DescriptorLike) -> OperationDescriptor:
    if isinstance(operation, OperationDescriptor):
        return operation
    if isinstance(operation, Mapping):
        return OperationDescriptor.from_dict(operation)
    raise InvalidParameter(f"Operation must be a descriptor or mapping, got {type(operation).__name__}")


def _number(params: Mapping[str, Any], key: str, default=_MISSING) -> float:
    value = params.get(key, default)
    if value is _MISSING or value is None:
        raise InvalidParameter(f"Missing required parameter: {key}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidParameter(f"Parameter {key} must be numeric, got {value!r}") from None


def _integer(params: Mapping[str, Any], key: str, default=_MISSING) -> int:
    """Integral numbers (or numeric strings) only; 45.7 is rejected, 45.0 is 45."""
    value = _number(params, key, default)
    if not value.is_integer():
        raise InvalidParameter(f"Parameter {key} must be a whole number, got {params.get(key, default)!r}")
    return int(value)


class OperationDispatcher:
    """
    Validates descriptor parameters up front so that a rejected operation
    never touches a buffer or a session.
    """

    def __init__(self,
                 color_service: ColorAdjustmentService | None = None,
                 geometry_service: GeometryService | None = None,
                 filter_catalog: FilterCatalogService | None = None):
        self.color_service = color_service or ColorAdjustmentService()
        self.geometry_service = geometry_service or GeometryService()
        self.filter_catalog = filter_catalog or FilterCatalogService()

    # ─── Parameter parsing ─────────────────────────────────────────
    def parse(self, operation: DescriptorLike) -> Tuple[str, Dict[str, Any]]:
        """Return (kind, normalised keyword arguments) or raise."""
        descriptor = as_descriptor(operation)
        kind, params = descriptor.kind, descriptor.parameters

        if kind == "resize":
            if not params.get("width") or not params.get("height"):
                raise InvalidParameter("Width and height are required for resize operation")
            return kind, {
                "width": _integer(params, "width"),
                "height": _integer(params, "height"),
                "fit": str(params.get("fit", "cover")),
            }
        if kind == "blur":
            radius = _integer(params, "radius", BOX_BLUR_PASSES)
            if radius < 0:
                raise InvalidParameter(f"blur radius must be >= 0, got {radius}")
            return kind, {"passes": min(radius, MAX_BLUR_RADIUS)}
        if kind in BLEND_FILTER_KINDS:
            intensity = self.filter_catalog.validate_intensity(params.get("intensity", 1.0))
            return kind, {"intensity": intensity}
        if kind in STRUCTURAL_FILTER_KINDS:
            return kind, {}
        if kind == "rotate":
            return kind, {"degrees": _integer(params, "angle", DEFAULT_ROTATE_ANGLE)}
        if kind == "scale":
            percent = _integer(params, "value")
            Adjustments(scale=percent)  # range check
            return kind, {"percent": percent}
        if kind == "flip":
            direction = params.get("direction", "horizontal")
            if direction not in ("horizontal", "vertical"):
                raise InvalidParameter(f"flip direction must be horizontal or vertical, got {direction!r}")
            return kind, {"direction": direction}
        if kind in COLOR_KINDS:
            if "delta" in params:
                return kind, {"delta": _integer(params, "delta")}
            return kind, {"value": _integer(params, "value")}
        if kind == "watermark":
            mark = params.get("watermark")
            if not isinstance(mark, PixelBuffer):
                raise InvalidParameter("Watermark buffer is required")
            opacity = _number(params, "opacity", 0.5)
            if opacity < 0:
                raise InvalidParameter(f"opacity must be >= 0, got {opacity}")
            return kind, {"mark": mark, "opacity": min(opacity, 1.0)}
        if kind == "compress":
            quality = _integer(params, "quality", 80)
            fmt = str(params.get("format", "jpeg")).lower()
            if fmt not in COMPRESS_FORMATS:
                raise InvalidParameter(f"Unsupported compress format: {fmt}")
            if quality < 1:
                raise InvalidParameter(f"quality must be >= 1, got {quality}")
            return kind, {"quality": min(quality, 100), "format": fmt}
        raise UnsupportedOperation(f"Unknown operation: {kind}")

    # ─── Stateless execution ───────────────────────────────────────
    def apply(self, buffer: PixelBuffer, operation: DescriptorLike) -> PixelBuffer:
        """Run one operation on *buffer* and return a *new* buffer."""
        kind, args = self.parse(operation)
        logger.debug(f"Applying {kind} {args} to {buffer.width}x{buffer.height}")

        if kind == "resize":
            return self.geometry_service.resize(buffer, args["width"], args["height"], args["fit"])
        if kind == "blur":
            return self.filter_catalog.apply("blur", buffer, passes=args["passes"])
        if kind in BLEND_FILTER_KINDS:
            return self.filter_catalog.apply(kind, buffer, args["intensity"])
        if kind in STRUCTURAL_FILTER_KINDS:
            return self.filter_catalog.apply(kind, buffer)
        if kind == "rotate":
            return self.geometry_service.compose(buffer, Adjustments(rotation=args["degrees"]))
        if kind == "scale":
            return self.geometry_service.compose(buffer, Adjustments(scale=args["percent"]))
        if kind == "flip":
            return self.geometry_service.flip(buffer, args["direction"])
        if kind in COLOR_KINDS:
            value = args.get("value", args.get("delta"))
            return self.color_service.apply(buffer, Adjustments(**{kind: value}))
        if kind == "watermark":
            return self.geometry_service.composite_watermark(buffer, args["mark"], args["opacity"])
        # compress: the raster is unchanged, the encoder consumes quality/format.
        return buffer.copy()

    def apply_all(self, buffer: PixelBuffer, operations: Iterable[DescriptorLike]) -> PixelBuffer:
        """Chain *operations*; all descriptors are validated before the first runs."""
        operations = list(operations)
        for operation in operations:
            self.parse(operation)
        result = buffer
        for operation in operations:
            result = self.apply(result, operation)
        return result if result is not buffer else buffer.copy()

    # ─── Session execution ─────────────────────────────────────────
    def apply_to_session(self, session, operation: DescriptorLike) -> PixelBuffer:
        """Route one operation through an EditSession so it lands in its history."""
        kind, args = self.parse(operation)

        if kind == "resize":
            session.resize(args["width"], args["height"], args["fit"])
        elif kind == "blur":
            session.apply_filter("blur", passes=args["passes"])
        elif kind in BLEND_FILTER_KINDS:
            session.apply_filter(kind, args["intensity"])
        elif kind in STRUCTURAL_FILTER_KINDS:
            session.apply_filter(kind)
        elif kind == "rotate":
            session.rotate(args["degrees"])
        elif kind == "scale":
            session.set_scale(args["percent"])
        elif kind == "flip":
            session.flip(args["direction"])
        elif kind in COLOR_KINDS:
            if "delta" in args:
                session.adjust(**{kind: getattr(session.adjustments, kind) + args["delta"]})
            else:
                session.adjust(**{kind: args["value"]})
        elif kind == "watermark":
            session.watermark(args["mark"], args["opacity"])
        return session.current

    # ─── Batch ─────────────────────────────────────────────────────
    def process_batch(
        self,
        buffers: Mapping[str, PixelBuffer],
        operations: Iterable[DescriptorLike],
    ) -> List[Dict[str, Any]]:
        """
        Run every operation independently on every buffer.
        One result record per (buffer, operation); failures are recorded, not raised.
        """
        operations = list(operations)
        results: List[Dict[str, Any]] = []
        for key, buffer in buffers.items():
            for operation in operations:
                name = self._operation_name(operation)
                try:
                    output = self.apply(buffer, operation)
                    results.append({"key": key, "operation": name, "status": "success", "result": output})
                except PixelEditError as err:
                    logger.warning(f"Batch operation {name} failed for {key}: {err}")
                    results.append({"key": key, "operation": name, "status": "error", "error": str(err)})
        return results

    @staticmethod
    def _operation_name(operation: DescriptorLike) -> str:
        if isinstance(operation, OperationDescriptor):
            return operation.kind
        if isinstance(operation, Mapping):
            return str(operation.get("kind") or operation.get("operation") or "")
        return ""


def apply_operation(
    buffer: PixelBuffer,
    operation: DescriptorLike,
    *,
    dispatcher: OperationDispatcher | None = None,
) -> PixelBuffer:
    return (dispatcher or OperationDispatcher()).apply(buffer, operation)


def process_batch(
    buffers: Mapping[str, PixelBuffer],
    operations: Iterable[DescriptorLike],
    *,
    dispatcher: OperationDispatcher | None = None,
) -> List[Dict[str, Any]]:
    return (dispatcher or OperationDispatcher()).process_batch(buffers, operations)
