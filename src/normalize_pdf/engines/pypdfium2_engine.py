from __future__ import annotations

import logging
import threading
from typing import Any

import pypdfium2 as pdfium
from PIL import Image

from contracts.errors import DocumentParseError, PageNotFound, SurfaceUnavailable

from .base import PdfRasterEngine

logger = logging.getLogger(__name__)

# Upper bound on how long closing waits for an abandoned render.
CLOSE_WAIT_S = 5.0


class Pypdfium2Engine(PdfRasterEngine):
    """
    pdfium-backed renderer.

    pdfium is not thread safe. Every call goes through one lock; for
    `render_page` the caller takes it (see `exclusive_lock`) so the wait for an
    abandoned render is not charged to the next page's deadline.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def backend_id(self) -> str:
        return "pypdfium2"

    def backend_version(self) -> str | None:
        return getattr(pdfium, "__version__", None)

    def exclusive_lock(self) -> threading.Lock:
        return self._lock

    def open_document(self, *, pdf_bytes: bytes) -> Any:
        with self._lock:
            try:
                return pdfium.PdfDocument(pdf_bytes)
            except pdfium.PdfiumError as e:
                raise DocumentParseError(
                    f"PDF library could not parse the document: {e}",
                    detail={"backend": self.backend_id()},
                ) from e

    def get_page_count(self, *, handle: Any) -> int:
        with self._lock:
            return len(handle)

    def render_page(
        self,
        *,
        handle: Any,
        page_num: int,
        scale: float,
        background: tuple[int, int, int],
    ) -> Image.Image:
        # Caller holds exclusive_lock().
        page_count = len(handle)
        if page_num < 1 or page_num > page_count:
            raise PageNotFound(
                f"Page out of range: {page_num} (1..{page_count})",
                detail={"page_num": page_num, "page_count": page_count},
            )

        page = handle[page_num - 1]
        try:
            bitmap = page.render(scale=scale, fill_color=(*background, 255))
            try:
                # convert() copies out of the pdfium-owned buffer.
                return bitmap.to_pil().convert("RGB")
            finally:
                bitmap.close()
        except (pdfium.PdfiumError, MemoryError, ValueError) as e:
            raise SurfaceUnavailable(
                f"Could not allocate or draw page bitmap: {e}",
                detail={"page_num": page_num, "scale": scale},
            ) from e
        finally:
            page.close()

    def close_document(self, *, handle: Any) -> None:
        if not self._lock.acquire(timeout=CLOSE_WAIT_S):
            # The abandoned render still references the document; pypdfium2
            # releases it once that render drops its page.
            logger.warning("pdfium still busy after %.1fs; leaving document close to GC", CLOSE_WAIT_S)
            return
        try:
            handle.close()
        finally:
            self._lock.release()
