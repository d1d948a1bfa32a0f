"""
Cross-stage contracts shared by the rasterizer, OCR and extraction stages.

Stage code should consume/produce these objects (not ad-hoc dicts), and raise
only the errors defined in `contracts.errors`.
"""

from .errors import (
    BlankRaster,
    DocumentError,
    DocumentParseError,
    DocumentTooLarge,
    EmptyDocument,
    ErrorRecord,
    InvalidDocument,
    NoUsableText,
    PageError,
    PageNotFound,
    PipelineError,
    RecognitionEngineError,
    RecognitionTimeout,
    RenderTimeout,
    SurfaceUnavailable,
    TooManyPages,
)
from .fields import MANUAL_CONFIDENCE, REQUIRED_FIELDS, ExtractedField
from .progress import ProgressEvent, ProgressSink, ProgressStep, emit_progress

__all__ = [
    "BlankRaster",
    "DocumentError",
    "DocumentParseError",
    "DocumentTooLarge",
    "EmptyDocument",
    "ErrorRecord",
    "ExtractedField",
    "InvalidDocument",
    "MANUAL_CONFIDENCE",
    "NoUsableText",
    "PageError",
    "PageNotFound",
    "PipelineError",
    "ProgressEvent",
    "ProgressSink",
    "ProgressStep",
    "REQUIRED_FIELDS",
    "RecognitionEngineError",
    "RecognitionTimeout",
    "RenderTimeout",
    "SurfaceUnavailable",
    "TooManyPages",
    "emit_progress",
]
