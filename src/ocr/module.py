from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from contracts.deadline import run_with_deadline
from contracts.errors import RecognitionTimeout
from normalize_pdf.contracts import Raster

from .contracts import OcrEngineName, RecognitionConfig, RecognitionResult
from .engines import RECOGNIZING_TEXT, OcrEngine, TesseractCliEngine

logger = logging.getLogger(__name__)

DEFAULT_RECOGNITION_TIMEOUT_S = 90.0


def _get_engine(engine: OcrEngineName) -> OcrEngine:
    if engine == OcrEngineName.TESSERACT_CLI:
        return TesseractCliEngine()
    raise ValueError(f"Unsupported OCR engine: {engine}")


def _to_percent(fraction: float) -> int:
    fraction = max(0.0, min(1.0, float(fraction)))
    return int(fraction * 100 + 0.5)


def recognize_raster(
    *,
    raster: Raster,
    config: RecognitionConfig,
    engine: OcrEngineName = OcrEngineName.TESSERACT_CLI,
    timeout_s: float | None = DEFAULT_RECOGNITION_TIMEOUT_S,
    on_progress: Optional[Callable[[int], None]] = None,
) -> RecognitionResult:
    """
    Run the recognition engine over one raster.

    - Only "recognizing text" progress is forwarded, as whole percent.
    - Exceeding `timeout_s` raises `RecognitionTimeout`; the engine call is
      abandoned and any progress it reports afterwards is dropped.
    - Engine confidence is kept as reported, bounded to 0..100.
    """

    backend = _get_engine(engine)
    abandoned = threading.Event()

    def _progress(status: str, fraction: float) -> None:
        if on_progress is None or abandoned.is_set() or status != RECOGNIZING_TEXT:
            return
        on_progress(_to_percent(fraction))

    def _run() -> RecognitionResult:
        return backend.recognize(
            image=raster.image, config=config, timeout_s=timeout_s, progress=_progress
        )

    def _on_timeout() -> RecognitionTimeout:
        abandoned.set()
        return RecognitionTimeout(
            f"Recognition of page {raster.page_num} exceeded {timeout_s}s",
            detail={"page_num": raster.page_num, "timeout_s": timeout_s},
        )

    result = run_with_deadline(
        _run, timeout_s=timeout_s, on_timeout=_on_timeout, name=f"ocr-p{raster.page_num}"
    )

    confidence = max(0.0, min(100.0, float(result.confidence)))
    if confidence != result.confidence:
        result = RecognitionResult(text=result.text, confidence=confidence, meta=result.meta)

    if not result.has_usable_text:
        logger.info(
            "Page %d: engine returned no usable text (reported confidence %.1f)",
            raster.page_num,
            result.confidence,
        )
    return result
