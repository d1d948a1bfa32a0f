from .base import RECOGNIZING_TEXT, EngineProgress, OcrEngine
from .tesseract_cli import TesseractCliEngine

__all__ = ["RECOGNIZING_TEXT", "EngineProgress", "OcrEngine", "TesseractCliEngine"]
