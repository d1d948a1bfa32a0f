from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

from PIL import Image, ImageChops

from contracts.deadline import run_with_deadline
from contracts.errors import PageNotFound, RenderTimeout

from .contracts import WHITE, ColorMode, RasterEngineName, Raster, RenderConfig
from .engines import PdfRasterEngine, Pypdfium2Engine

logger = logging.getLogger(__name__)


def _get_engine(engine: RasterEngineName) -> PdfRasterEngine:
    if engine == RasterEngineName.PYPDFIUM2:
        return Pypdfium2Engine()
    raise ValueError(f"Unsupported raster engine: {engine}")


@dataclass(slots=True)
class OpenedDocument:
    """
    A PDF opened once for a whole pipeline run.

    `page_count` is read at open time and does not change afterwards.
    """

    engine: PdfRasterEngine
    handle: Any
    page_count: int

    def close(self) -> None:
        self.engine.close_document(handle=self.handle)

    def __enter__(self) -> "OpenedDocument":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def open_document(
    *, pdf_bytes: bytes, engine: RasterEngineName = RasterEngineName.PYPDFIUM2
) -> OpenedDocument:
    """
    Open a PDF byte buffer. Raises `DocumentParseError` if the PDF library
    rejects it.
    """

    backend = _get_engine(engine)
    handle = backend.open_document(pdf_bytes=pdf_bytes)
    page_count = backend.get_page_count(handle=handle)
    logger.debug("Opened PDF with %s: %d page(s)", backend.backend_id(), page_count)
    return OpenedDocument(engine=backend, handle=handle, page_count=page_count)


def _acquire_engine(*, lock: threading.Lock, page_num: int, config: RenderConfig) -> None:
    # A timed-out render keeps running (and holding the lock) until pdfium
    # returns; waiting for it here keeps this page's deadline intact.
    wait_s = -1 if config.engine_wait_s is None else config.engine_wait_s
    if not lock.acquire(timeout=wait_s):
        raise RenderTimeout(
            f"Rendering page {page_num} could not start: engine busy for {config.engine_wait_s}s",
            detail={"page_num": page_num, "engine_wait_s": config.engine_wait_s},
        )


def render_page(*, document: OpenedDocument, page_num: int, config: RenderConfig) -> Raster:
    """
    Render one 1-indexed page to a `Raster` sized to page size * scale.

    Raises `PageNotFound`, `SurfaceUnavailable` or `RenderTimeout`. A raster is
    only returned once fully drawn.
    """

    if page_num < 1 or page_num > document.page_count:
        raise PageNotFound(
            f"Page out of range: {page_num} (1..{document.page_count})",
            detail={"page_num": page_num, "page_count": document.page_count},
        )

    lock = document.engine.exclusive_lock()
    if lock is not None:
        _acquire_engine(lock=lock, page_num=page_num, config=config)

    # Whoever runs first of the worker and the timeout handler decides who
    # releases the engine lock: a worker that never started must not hold it.
    gate = threading.Lock()
    started = False
    abandoned = False

    def _draw() -> Image.Image | None:
        nonlocal started
        with gate:
            if abandoned:
                return None
            started = True
        try:
            return document.engine.render_page(
                handle=document.handle,
                page_num=page_num,
                scale=config.scale,
                background=config.background,
            )
        finally:
            if lock is not None:
                lock.release()

    def _on_timeout() -> RenderTimeout:
        nonlocal abandoned
        with gate:
            abandoned = True
            if not started and lock is not None:
                lock.release()
        return RenderTimeout(
            f"Rendering page {page_num} exceeded {config.timeout_s}s",
            detail={"page_num": page_num, "timeout_s": config.timeout_s},
        )

    image = run_with_deadline(
        _draw,
        timeout_s=config.timeout_s,
        on_timeout=_on_timeout,
        name=f"render-p{page_num}",
    )
    assert image is not None

    if config.color_mode == ColorMode.GRAY:
        image = image.convert("L")

    width_px, height_px = image.size
    return Raster(
        page_num=page_num,
        scale=config.scale,
        width_px=int(width_px),
        height_px=int(height_px),
        image=image,
        meta={"backend": document.engine.backend_id()},
    )


def is_blank_raster(raster: Raster, *, background: tuple[int, int, int] = WHITE) -> bool:
    """
    True when every channel of every pixel equals the background value.

    Used to detect silent rendering failures (pdfium drew nothing).
    """

    rgb = raster.image if raster.image.mode == "RGB" else raster.image.convert("RGB")
    reference = Image.new("RGB", rgb.size, background)
    return ImageChops.difference(rgb, reference).getbbox() is None
