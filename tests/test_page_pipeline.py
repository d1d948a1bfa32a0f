from __future__ import annotations

import unittest
from unittest.mock import patch

from fakes import FakeRasterEngine, ScriptedOcrEngine

from contracts.errors import RecognitionEngineError
from contracts.progress import ProgressEvent, ProgressStep
from normalize_pdf.module import OpenedDocument
from ocr.contracts import RecognitionResult
from ocr.doc_contracts import PageState, PipelineConfig
from ocr.page_module import run_page


def _document(raster: FakeRasterEngine) -> OpenedDocument:
    return OpenedDocument(engine=raster, handle=None, page_count=raster.page_count)


class TestRunPage(unittest.TestCase):
    def _run(self, *, raster: FakeRasterEngine, ocr: ScriptedOcrEngine, page_num: int = 1, **cfg):
        events: list[ProgressEvent] = []
        with patch("ocr.module._get_engine", return_value=ocr):
            outcome = run_page(
                document=_document(raster),
                page_num=page_num,
                total_pages=raster.page_count,
                config=PipelineConfig(**cfg),
                on_progress=events.append,
            )
        return outcome, events

    def test_success_walks_every_state(self) -> None:
        outcome, events = self._run(raster=FakeRasterEngine(page_count=1), ocr=ScriptedOcrEngine())

        self.assertEqual(outcome.state, PageState.SUCCEEDED)
        self.assertEqual(
            outcome.history,
            [PageState.PENDING, PageState.RASTERIZING, PageState.RECOGNIZING, PageState.SUCCEEDED],
        )
        self.assertEqual(outcome.text, "text of page 1")
        self.assertEqual(outcome.confidence, 90.0)
        self.assertEqual(outcome.scale, 2.0)
        self.assertEqual(outcome.fragment(), "\n--- Page 1 ---\ntext of page 1\n")
        self.assertEqual(events[0].step, ProgressStep.CONVERTING)
        self.assertFalse(any(e.error for e in events))

    def test_blank_raster_fails_without_reaching_recognition(self) -> None:
        ocr = ScriptedOcrEngine()
        outcome, events = self._run(raster=FakeRasterEngine(page_count=1, blank_pages=(1,)), ocr=ocr)

        self.assertEqual(outcome.state, PageState.FAILED)
        self.assertEqual(outcome.errors[0].code, "BLANK_RASTER")
        self.assertEqual(ocr.calls, [])
        self.assertNotIn(PageState.RECOGNIZING, outcome.history)
        self.assertTrue(outcome.fragment().startswith("\n--- Page 1 (Error) ---\n"))
        self.assertEqual(events[-1].error, "Rendered page 1 is entirely blank")

    def test_blank_raster_can_be_sent_to_recognition(self) -> None:
        ocr = ScriptedOcrEngine()
        outcome, _ = self._run(
            raster=FakeRasterEngine(page_count=1, blank_pages=(1,)),
            ocr=ocr,
            reject_blank_rasters=False,
        )
        self.assertEqual(outcome.state, PageState.SUCCEEDED)
        self.assertEqual(len(ocr.calls), 1)

    def test_empty_text_is_success_with_marker_and_zero_weight(self) -> None:
        ocr = ScriptedOcrEngine({1: RecognitionResult(text=" \n\t", confidence=42.0)})
        outcome, _ = self._run(raster=FakeRasterEngine(page_count=1), ocr=ocr)

        self.assertEqual(outcome.state, PageState.SUCCEEDED)
        self.assertFalse(outcome.has_usable_text)
        self.assertFalse(outcome.counts_toward_confidence)
        self.assertEqual(outcome.fragment(), "\n--- Page 1 (No text found) ---\n")

    def test_page_out_of_range_is_contained(self) -> None:
        outcome, _ = self._run(
            raster=FakeRasterEngine(page_count=1), ocr=ScriptedOcrEngine(), page_num=5
        )
        self.assertEqual(outcome.state, PageState.FAILED)
        self.assertEqual(outcome.errors[0].code, "PAGE_NOT_FOUND")

    def test_unexpected_exception_is_contained(self) -> None:
        ocr = ScriptedOcrEngine({1: RuntimeError("segfault-ish")})
        outcome, events = self._run(raster=FakeRasterEngine(page_count=1), ocr=ocr)

        self.assertEqual(outcome.state, PageState.FAILED)
        self.assertEqual(outcome.errors[0].code, "PAGE_UNEXPECTED_ERROR")
        self.assertEqual(events[-1].step, ProgressStep.OCR)
        self.assertIn("[Page processing failed: segfault-ish]", outcome.fragment())

    def test_retry_scales_used_only_until_text_found(self) -> None:
        def by_scale(scale: float) -> RecognitionResult:
            if scale < 3.0:
                return RecognitionResult(text="", confidence=0.0)
            return RecognitionResult(text=f"found at {scale:g}", confidence=77.0)

        raster = FakeRasterEngine(page_count=1)
        ocr = ScriptedOcrEngine({1: by_scale})
        outcome, _ = self._run(raster=raster, ocr=ocr, retry_scales=(3.0, 4.0))

        self.assertEqual(raster.rendered, [(1, 2.0), (1, 3.0)])
        self.assertEqual(outcome.text, "found at 3")
        self.assertEqual(outcome.scale, 3.0)
        self.assertTrue(outcome.counts_toward_confidence)

    def test_failed_retry_keeps_earlier_empty_result(self) -> None:
        def by_scale(scale: float) -> RecognitionResult:
            if scale < 3.0:
                return RecognitionResult(text="", confidence=0.0)
            raise RecognitionEngineError("engine crashed at high resolution")

        outcome, _ = self._run(
            raster=FakeRasterEngine(page_count=1),
            ocr=ScriptedOcrEngine({1: by_scale}),
            retry_scales=(3.0,),
        )

        self.assertEqual(outcome.state, PageState.SUCCEEDED)
        self.assertEqual(outcome.scale, 2.0)
        self.assertEqual(outcome.fragment(), "\n--- Page 1 (No text found) ---\n")


if __name__ == "__main__":
    unittest.main()
