from __future__ import annotations

import logging
from pathlib import Path

from contracts.errors import (
    DocumentError,
    DocumentTooLarge,
    EmptyDocument,
    InvalidDocument,
    NoUsableText,
    TooManyPages,
)
from contracts.progress import ProgressEvent, ProgressSink, ProgressStep, emit_progress
from normalize_pdf.module import open_document

from .doc_contracts import AggregateResult, PageOutcome, PipelineConfig
from .page_module import run_page

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"
# PDF readers accept the header anywhere in the first kilobyte.
PDF_HEADER_WINDOW = 1024


def _validate_pdf_bytes(*, pdf_bytes: bytes, config: PipelineConfig) -> None:
    if not isinstance(pdf_bytes, (bytes, bytearray, memoryview)):
        raise InvalidDocument(
            f"Expected PDF bytes, got {type(pdf_bytes).__name__}",
            detail={"type": type(pdf_bytes).__name__},
        )
    if len(pdf_bytes) == 0:
        raise InvalidDocument("Empty PDF file provided")
    if PDF_MAGIC not in bytes(pdf_bytes[:PDF_HEADER_WINDOW]):
        raise InvalidDocument(
            f"Invalid PDF file: no PDF header in the first {PDF_HEADER_WINDOW} bytes"
        )
    if config.max_file_bytes is not None and len(pdf_bytes) > config.max_file_bytes:
        raise DocumentTooLarge(
            f"PDF is {len(pdf_bytes)} bytes; the limit is {config.max_file_bytes}",
            detail={"size_bytes": len(pdf_bytes), "max_file_bytes": config.max_file_bytes},
        )


def aggregate_page_outcomes(outcomes: list[PageOutcome]) -> AggregateResult:
    """
    Combine page outcomes (ascending page order) into one `AggregateResult`.

    Raises `NoUsableText` when no page produced usable text.
    """

    text = "".join(o.fragment() for o in outcomes)
    scored = [o.confidence for o in outcomes if o.counts_toward_confidence]

    if not scored:
        raise NoUsableText(
            "No page produced usable text",
            partial_text=text,
            detail={
                "total_pages": len(outcomes),
                "failed_pages": [o.page_num for o in outcomes if not o.succeeded],
            },
        )

    return AggregateResult(
        text=text,
        confidence=sum(scored) / len(scored),
        total_pages=len(outcomes),
        succeeded_pages=len(scored),
        pages=list(outcomes),
    )


def _run(*, pdf_bytes: bytes, config: PipelineConfig, on_progress: ProgressSink | None) -> AggregateResult:
    emit_progress(on_progress, ProgressEvent(step=ProgressStep.LOADING, message="Loading PDF document..."))
    _validate_pdf_bytes(pdf_bytes=pdf_bytes, config=config)

    document = open_document(pdf_bytes=bytes(pdf_bytes), engine=config.render.engine)
    with document:
        total_pages = document.page_count
        if total_pages == 0:
            raise EmptyDocument("PDF has no pages")
        if config.max_pages is not None and total_pages > config.max_pages:
            raise TooManyPages(
                f"PDF has {total_pages} pages; the limit is {config.max_pages}",
                detail={"page_count": total_pages, "max_pages": config.max_pages},
            )

        logger.info("Processing %d page(s)", total_pages)
        # Sequential on purpose: one raster alive at a time, monotonic progress.
        outcomes = [
            run_page(
                document=document,
                page_num=page_num,
                total_pages=total_pages,
                config=config,
                on_progress=on_progress,
            )
            for page_num in range(1, total_pages + 1)
        ]

    result = aggregate_page_outcomes(outcomes)
    logger.info(
        "Processed %d/%d page(s) with text, average confidence %.1f",
        result.succeeded_pages,
        result.total_pages,
        result.confidence,
    )
    return AggregateResult(
        text=result.text,
        confidence=result.confidence,
        total_pages=result.total_pages,
        succeeded_pages=result.succeeded_pages,
        pages=result.pages,
        meta={
            "ocr_engine": config.ocr_engine.value,
            "render_engine": config.render.engine.value,
            "scale": config.render.scale,
            "recognition": config.recognition.to_dict(),
        },
    )


def run_document_pipeline(
    *,
    pdf_bytes: bytes,
    config: PipelineConfig | None = None,
    on_progress: ProgressSink | None = None,
) -> AggregateResult:
    """
    Document-mode OCR: PDF bytes -> aggregated text + mean confidence.

    Raises a `DocumentError` subclass only when the document itself is
    unusable or no page produced text; page-level failures stay visible as
    markers in the returned text.
    """

    config = config or PipelineConfig()
    try:
        return _run(pdf_bytes=pdf_bytes, config=config, on_progress=on_progress)
    except DocumentError as e:
        logger.error("Document processing failed [%s]: %s", e.code, e.message)
        emit_progress(
            on_progress,
            ProgressEvent(
                step=ProgressStep.FALLBACK,
                message="PDF processing failed - manual review required",
                error=e.message,
            ),
        )
        raise


def run_document_pipeline_on_file(
    *,
    pdf_file: Path,
    config: PipelineConfig | None = None,
    on_progress: ProgressSink | None = None,
) -> AggregateResult:
    try:
        pdf_bytes = pdf_file.read_bytes()
    except OSError as e:
        raise InvalidDocument(
            f"Could not read PDF file: {e}", detail={"pdf_file": str(pdf_file)}
        ) from e
    return run_document_pipeline(pdf_bytes=pdf_bytes, config=config, on_progress=on_progress)
