from .errors import DegenerateInput, InvalidParameter, PixelEditError, UnsupportedOperation
from .models.adjustments import Adjustments
from .models.pixel_buffer import PixelBuffer
from .pipeline.edit_session import EditSession
from .pipeline.operation_dispatcher import apply_operation, process_batch

__version__ = "1.0.0"
