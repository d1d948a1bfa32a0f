from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Optional


class ProgressStep(str, Enum):
    LOADING = "loading"
    CONVERTING = "converting"
    OCR = "ocr"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """
    Structured progress notification for UI callers.

    `ocr_progress` is a whole percent (0..100) and only set during recognition.
    `error` is set when a page stage failed; the run continues.
    """

    step: ProgressStep
    page_number: int | None = None
    total_pages: int | None = None
    ocr_progress: int | None = None
    message: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["step"] = self.step.value
        return d


ProgressSink = Callable[[ProgressEvent], Any]


def emit_progress(sink: Optional[ProgressSink], event: ProgressEvent) -> None:
    # The sink is optional and its return value is ignored.
    if sink is not None:
        sink(event)
