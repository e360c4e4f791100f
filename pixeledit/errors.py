class PixelEditError(Exception):
    """Base class for every error raised by the editing engine."""


class InvalidParameter(PixelEditError, ValueError):
    """A required parameter is missing or outside its declared domain."""


class UnsupportedOperation(PixelEditError, LookupError):
    """An operation or filter name the engine does not know."""


class DegenerateInput(PixelEditError):
    """
    Zero-area buffer, or a kernel larger than the buffer.
    Services catch this and return the input unchanged.
    """
