from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from contracts.errors import ErrorRecord
from normalize_pdf.contracts import RenderConfig

from .contracts import OcrEngineName, RecognitionConfig

DEFAULT_MAX_FILE_BYTES = 50 * 1024 * 1024
DEFAULT_MAX_PAGES = 20


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """
    Document pipeline configuration, passed explicitly per run.

    - `max_file_bytes` / `max_pages` are policy limits; None disables them.
    - `retry_scales` are extra render scales tried, in order, when a page
      yields no usable text at `render.scale`. Empty means a single pass.
    - No environment variable reads happen anywhere in the pipeline.
    """

    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    ocr_engine: OcrEngineName = OcrEngineName.TESSERACT_CLI
    recognition_timeout_s: float | None = 90.0
    reject_blank_rasters: bool = True
    retry_scales: tuple[float, ...] = ()
    max_file_bytes: int | None = DEFAULT_MAX_FILE_BYTES
    max_pages: int | None = DEFAULT_MAX_PAGES

    def __post_init__(self) -> None:
        if self.recognition_timeout_s is not None and self.recognition_timeout_s <= 0:
            raise ValueError("recognition_timeout_s must be positive or None")
        if any(s <= 0 for s in self.retry_scales):
            raise ValueError("retry_scales must all be positive")
        if self.max_file_bytes is not None and self.max_file_bytes <= 0:
            raise ValueError("max_file_bytes must be positive or None")
        if self.max_pages is not None and self.max_pages <= 0:
            raise ValueError("max_pages must be positive or None")


class PageState(str, Enum):
    PENDING = "pending"
    RASTERIZING = "rasterizing"
    RECOGNIZING = "recognizing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class PageOutcome:
    """
    Final state of one page after the page pipeline ran.

    `history` lists every state the page went through, in order.
    """

    page_num: int
    state: PageState
    text: str
    confidence: float
    has_usable_text: bool
    errors: list[ErrorRecord]
    history: list[PageState]
    scale: float | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == PageState.SUCCEEDED

    @property
    def counts_toward_confidence(self) -> bool:
        return self.succeeded and self.has_usable_text

    def fragment(self) -> str:
        """
        Text block contributed to the aggregate, including its page header.
        """

        if not self.succeeded:
            message = self.errors[0].message if self.errors else "unknown error"
            return f"\n--- Page {self.page_num} (Error) ---\n[Page processing failed: {message}]\n"
        if not self.has_usable_text:
            return f"\n--- Page {self.page_num} (No text found) ---\n"
        return f"\n--- Page {self.page_num} ---\n{self.text}\n"


@dataclass(frozen=True, slots=True)
class AggregateResult:
    """
    Best-effort document transcription.

    `confidence` is the mean over pages with usable text only; failed and
    empty pages stay visible as markers in `text` but do not drag the mean.
    """

    text: str
    confidence: float
    total_pages: int
    succeeded_pages: int
    pages: list[PageOutcome]
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def failed_pages(self) -> list[int]:
        return [p.page_num for p in self.pages if not p.succeeded]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
