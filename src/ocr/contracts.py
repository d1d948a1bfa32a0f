from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from enum import Enum, IntEnum
from typing import Any


class OcrEngineName(str, Enum):
    """
    OCR backends supported by this module.
    """

    TESSERACT_CLI = "tesseract_cli"


class PageSegMode(IntEnum):
    """
    Tesseract page segmentation modes exposed to callers.
    """

    AUTO = 3
    SINGLE_COLUMN = 4
    SINGLE_BLOCK = 6
    SINGLE_LINE = 7
    SINGLE_WORD = 8
    SPARSE_TEXT = 11


@dataclass(frozen=True, slots=True)
class RecognitionConfig:
    """
    Recognition engine configuration.

    Immutable for a pipeline run; a different config means a full re-run.
    Empty whitelist/blacklist strings are not passed to the engine.
    """

    language: str = "eng"
    page_seg_mode: int = PageSegMode.SINGLE_BLOCK
    ocr_engine_mode: int = 3
    preserve_interword_spaces: bool = False
    char_whitelist: str = ""
    char_blacklist: str = ""

    def __post_init__(self) -> None:
        if not self.language.strip():
            raise ValueError("language must be a non-empty engine language code")
        if not 0 <= int(self.page_seg_mode) <= 13:
            raise ValueError("page_seg_mode must be within [0, 13]")
        if not 0 <= int(self.ocr_engine_mode) <= 3:
            raise ValueError("ocr_engine_mode must be within [0, 3]")

    @staticmethod
    def from_preset(name: str, **overrides: Any) -> "RecognitionConfig":
        try:
            base = RECOGNITION_PRESETS[name]
        except KeyError:
            raise ValueError(
                f"Unknown recognition preset: {name!r} (known: {', '.join(sorted(RECOGNITION_PRESETS))})"
            ) from None
        return replace(base, **overrides) if overrides else base

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["page_seg_mode"] = int(self.page_seg_mode)
        return d


RECOGNITION_PRESETS: dict[str, RecognitionConfig] = {
    # Legal documents: dense uniform blocks, keep column spacing.
    "contract": RecognitionConfig(
        page_seg_mode=PageSegMode.SINGLE_BLOCK, preserve_interword_spaces=True
    ),
    "form": RecognitionConfig(page_seg_mode=PageSegMode.SINGLE_COLUMN),
    "mixed": RecognitionConfig(page_seg_mode=PageSegMode.AUTO),
    "single_line": RecognitionConfig(page_seg_mode=PageSegMode.SINGLE_LINE),
    "sparse_text": RecognitionConfig(page_seg_mode=PageSegMode.SPARSE_TEXT),
}


@dataclass(frozen=True, slots=True)
class RecognitionResult:
    """
    Engine transcription of one raster.

    `confidence` is the engine's 0..100 estimate; 0 signals total failure.
    """

    text: str
    confidence: float
    meta: dict[str, Any] | None = None

    @property
    def has_usable_text(self) -> bool:
        # Text quality gates success, not just the score.
        return self.text.strip() != ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
