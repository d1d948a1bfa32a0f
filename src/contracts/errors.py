"""
Error taxonomy for the document-to-text pipeline.

Two branches:
- `DocumentError`: surfaced to the caller, terminates the run.
- `PageError`: recovered locally by the page pipeline and recorded on the page
  outcome as an `ErrorRecord`; never aborts the document run.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ErrorRecord:
    code: str
    message: str
    detail: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PipelineError(Exception):
    code = "PIPELINE_ERROR"

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_record(self) -> ErrorRecord:
        return ErrorRecord(code=self.code, message=self.message, detail=self.detail)


# Document-level (surfaced)


class DocumentError(PipelineError):
    code = "DOCUMENT_ERROR"


class InvalidDocument(DocumentError):
    code = "INVALID_DOCUMENT"


class DocumentTooLarge(DocumentError):
    code = "DOCUMENT_TOO_LARGE"


class TooManyPages(DocumentError):
    code = "TOO_MANY_PAGES"


class EmptyDocument(DocumentError):
    code = "EMPTY_DOCUMENT"


class DocumentParseError(DocumentError):
    code = "DOCUMENT_PARSE_ERROR"


class NoUsableText(DocumentError):
    """
    Raised when every page failed or produced no text.

    `partial_text` keeps the page markers so callers can still show what
    happened to each page.
    """

    code = "NO_USABLE_TEXT"

    def __init__(
        self, message: str, *, partial_text: str = "", detail: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message, detail=detail)
        self.partial_text = partial_text


# Page-level (recovered)


class PageError(PipelineError):
    code = "PAGE_ERROR"


class PageNotFound(PageError):
    code = "PAGE_NOT_FOUND"


class SurfaceUnavailable(PageError):
    code = "SURFACE_UNAVAILABLE"


class BlankRaster(SurfaceUnavailable):
    code = "BLANK_RASTER"


class RenderTimeout(PageError):
    code = "RENDER_TIMEOUT"


class RecognitionTimeout(PageError):
    code = "RECOGNITION_TIMEOUT"


class RecognitionEngineError(PageError):
    code = "RECOGNITION_ENGINE_ERROR"
