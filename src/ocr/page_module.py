from __future__ import annotations

import logging
from dataclasses import replace

from contracts.errors import BlankRaster, ErrorRecord, PageError
from contracts.progress import ProgressEvent, ProgressSink, ProgressStep, emit_progress
from normalize_pdf.contracts import RenderConfig
from normalize_pdf.module import OpenedDocument, is_blank_raster, render_page

from .contracts import RecognitionResult
from .doc_contracts import PageOutcome, PageState, PipelineConfig
from .module import recognize_raster

logger = logging.getLogger(__name__)

_STEP_FOR_STATE = {
    PageState.PENDING: ProgressStep.CONVERTING,
    PageState.RASTERIZING: ProgressStep.CONVERTING,
    PageState.RECOGNIZING: ProgressStep.OCR,
}


class _PageRun:
    def __init__(self, page_num: int) -> None:
        self.page_num = page_num
        self.state = PageState.PENDING
        self.history: list[PageState] = [PageState.PENDING]

    def enter(self, state: PageState) -> None:
        logger.debug("Page %d: %s -> %s", self.page_num, self.state.value, state.value)
        self.state = state
        self.history.append(state)


def run_page(
    *,
    document: OpenedDocument,
    page_num: int,
    total_pages: int,
    config: PipelineConfig,
    on_progress: ProgressSink | None = None,
) -> PageOutcome:
    """
    Rasterize then recognize one page.

    Never raises for page-level problems: any failure ends in a `failed`
    outcome carrying the error record, so the document run can continue.
    """

    run = _PageRun(page_num)
    scales = (config.render.scale, *config.retry_scales)
    result: RecognitionResult | None = None
    used_scale: float | None = None

    def _ocr_percent(percent: int) -> None:
        emit_progress(
            on_progress,
            ProgressEvent(
                step=ProgressStep.OCR,
                page_number=page_num,
                total_pages=total_pages,
                ocr_progress=percent,
                message=f"OCR progress: {percent}%",
            ),
        )

    def _attempt(scale: float, render_config: RenderConfig) -> RecognitionResult:
        run.enter(PageState.RASTERIZING)
        emit_progress(
            on_progress,
            ProgressEvent(
                step=ProgressStep.CONVERTING,
                page_number=page_num,
                total_pages=total_pages,
                message=f"Converting page {page_num} to image...",
            ),
        )
        raster = render_page(document=document, page_num=page_num, config=render_config)
        try:
            if config.reject_blank_rasters and is_blank_raster(
                raster, background=render_config.background
            ):
                raise BlankRaster(
                    f"Rendered page {page_num} is entirely blank",
                    detail={"page_num": page_num, "scale": scale},
                )

            run.enter(PageState.RECOGNIZING)
            emit_progress(
                on_progress,
                ProgressEvent(
                    step=ProgressStep.OCR,
                    page_number=page_num,
                    total_pages=total_pages,
                    message=f"Running OCR on page {page_num}...",
                ),
            )
            return recognize_raster(
                raster=raster,
                config=config.recognition,
                engine=config.ocr_engine,
                timeout_s=config.recognition_timeout_s,
                on_progress=_ocr_percent,
            )
        finally:
            raster.close()

    try:
        for attempt, scale in enumerate(scales):
            render_config = config.render if attempt == 0 else replace(config.render, scale=scale)
            try:
                result = _attempt(scale, render_config)
            except PageError as e:
                # A failed retry keeps the empty result of the earlier pass.
                if result is None:
                    raise
                logger.warning(
                    "Page %d: retry at scale %.2f failed [%s], keeping scale %.2f result",
                    page_num,
                    scale,
                    e.code,
                    used_scale,
                )
                break
            used_scale = scale

            if result.has_usable_text:
                break
            if attempt + 1 < len(scales):
                logger.info(
                    "Page %d: no usable text at scale %.2f, retrying at %.2f",
                    page_num,
                    scale,
                    scales[attempt + 1],
                )
    except PageError as e:
        return _failed(run=run, record=e.to_record(), total_pages=total_pages, on_progress=on_progress)
    except Exception as e:
        logger.exception("Page %d: unexpected failure", page_num)
        record = ErrorRecord(code="PAGE_UNEXPECTED_ERROR", message=str(e) or type(e).__name__)
        return _failed(run=run, record=record, total_pages=total_pages, on_progress=on_progress)

    assert result is not None
    run.enter(PageState.SUCCEEDED)
    if result.has_usable_text:
        logger.info("Page %d/%d: recognized, confidence %.1f", page_num, total_pages, result.confidence)
    else:
        logger.warning("Page %d/%d: no text found", page_num, total_pages)

    return PageOutcome(
        page_num=page_num,
        state=PageState.SUCCEEDED,
        text=result.text,
        confidence=result.confidence if result.has_usable_text else 0.0,
        has_usable_text=result.has_usable_text,
        errors=[],
        history=list(run.history),
        scale=used_scale,
    )


def _failed(
    *,
    run: _PageRun,
    record: ErrorRecord,
    total_pages: int,
    on_progress: ProgressSink | None,
) -> PageOutcome:
    step = _STEP_FOR_STATE.get(run.state, ProgressStep.CONVERTING)
    run.enter(PageState.FAILED)
    logger.warning("Page %d/%d failed [%s]: %s", run.page_num, total_pages, record.code, record.message)
    emit_progress(
        on_progress,
        ProgressEvent(
            step=step,
            page_number=run.page_num,
            total_pages=total_pages,
            message=f"Error processing page {run.page_num}",
            error=record.message,
        ),
    )
    return PageOutcome(
        page_num=run.page_num,
        state=PageState.FAILED,
        text="",
        confidence=0.0,
        has_usable_text=False,
        errors=[record],
        history=list(run.history),
    )
