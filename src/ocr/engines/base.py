from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from PIL import Image

from ..contracts import RecognitionConfig, RecognitionResult

# (status, fraction 0.0..1.0), mirroring engine logger messages
EngineProgress = Callable[[str, float], None]

RECOGNIZING_TEXT = "recognizing text"


class OcrEngine(ABC):
    """
    Interface for OCR recognition engines.

    IMPORTANT:
    - Engines return the literal transcription and their own confidence.
    - Engines must NOT apply semantic correction/guessing/normalization.
    - Engines should honor `timeout_s` themselves where the backend allows
      killing the in-flight call; the adapter enforces it regardless.
    """

    @abstractmethod
    def recognize(
        self,
        *,
        image: Image.Image,
        config: RecognitionConfig,
        timeout_s: float | None,
        progress: EngineProgress,
    ) -> RecognitionResult:
        raise NotImplementedError
