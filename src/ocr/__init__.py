"""
OCR stage: raster recognition plus page and document orchestration.

- `recognize_raster`: one raster -> text + confidence, with a hard deadline
- `run_page`: rasterize -> recognize for one page, failures contained
- `run_document_pipeline`: all pages in order -> `AggregateResult`

No environment variable reads; every knob arrives via `PipelineConfig`.
"""

from .contracts import (
    RECOGNITION_PRESETS,
    OcrEngineName,
    PageSegMode,
    RecognitionConfig,
    RecognitionResult,
)
from .doc_contracts import AggregateResult, PageOutcome, PageState, PipelineConfig
from .doc_module import (
    aggregate_page_outcomes,
    run_document_pipeline,
    run_document_pipeline_on_file,
)
from .module import recognize_raster
from .page_module import run_page

__all__ = [
    "RECOGNITION_PRESETS",
    "AggregateResult",
    "OcrEngineName",
    "PageOutcome",
    "PageSegMode",
    "PageState",
    "PipelineConfig",
    "RecognitionConfig",
    "RecognitionResult",
    "aggregate_page_outcomes",
    "recognize_raster",
    "run_document_pipeline",
    "run_document_pipeline_on_file",
    "run_page",
]
