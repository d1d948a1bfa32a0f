from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any

from PIL import Image


class PdfRasterEngine(ABC):
    """
    Page rendering engine abstraction.

    Engines must:
    - Open a PDF from an in-memory byte buffer
    - Render one page to a complete PIL image or raise (no partial output)
    - Perform NO OCR, text extraction, layout inference, or filtering

    Failure contract:
    - `open_document` raises `DocumentParseError` for unparseable input
    - `render_page` raises `PageNotFound` / `SurfaceUnavailable`

    Engines that cannot render concurrently return a lock from
    `exclusive_lock`; callers hold it for the whole `render_page` call.
    """

    @abstractmethod
    def backend_id(self) -> str:
        raise NotImplementedError

    def backend_version(self) -> str | None:
        return None

    @abstractmethod
    def open_document(self, *, pdf_bytes: bytes) -> Any:
        """
        Return an engine-specific document handle.
        """

        raise NotImplementedError

    @abstractmethod
    def get_page_count(self, *, handle: Any) -> int:
        raise NotImplementedError

    @abstractmethod
    def render_page(
        self,
        *,
        handle: Any,
        page_num: int,  # 1-indexed
        scale: float,
        background: tuple[int, int, int],
    ) -> Image.Image:
        raise NotImplementedError

    def exclusive_lock(self) -> threading.Lock | None:
        return None

    def close_document(self, *, handle: Any) -> None:
        return None
