from __future__ import annotations

import re
import time
import unittest
from unittest.mock import patch

import pypdfium2 as pdfium
from fakes import BlockingOcrEngine, FakeRasterEngine, ScriptedOcrEngine, pdf_with_drawn_pages

from contracts.errors import (
    DocumentParseError,
    DocumentTooLarge,
    EmptyDocument,
    InvalidDocument,
    NoUsableText,
    RecognitionEngineError,
    TooManyPages,
)
from contracts.progress import ProgressEvent, ProgressStep
from normalize_pdf.contracts import RenderConfig
from ocr.contracts import RecognitionResult
from ocr.doc_contracts import PageState, PipelineConfig
from ocr.doc_module import run_document_pipeline

PDF = b"%PDF-1.7\n% fake body\n"
HEADER_RE = re.compile(r"^--- Page (\d+)(?: \((?:Error|No text found)\))? ---$", re.MULTILINE)


class _Run:
    def __init__(self, raster: FakeRasterEngine, ocr: ScriptedOcrEngine) -> None:
        self.raster = raster
        self.ocr = ocr
        self.events: list[ProgressEvent] = []

    def __call__(self, config: PipelineConfig | None = None, pdf_bytes: bytes = PDF):
        with patch("normalize_pdf.module._get_engine", return_value=self.raster), patch(
            "ocr.module._get_engine", return_value=self.ocr
        ):
            return run_document_pipeline(
                pdf_bytes=pdf_bytes, config=config, on_progress=self.events.append
            )


class TestDocumentPipelineAggregation(unittest.TestCase):
    def test_all_pages_succeed_headers_in_order_and_mean_confidence(self) -> None:
        ocr = ScriptedOcrEngine(
            {
                1: RecognitionResult(text="alpha", confidence=80.0),
                2: RecognitionResult(text="beta", confidence=90.0),
                3: RecognitionResult(text="gamma", confidence=70.0),
            }
        )
        run = _Run(FakeRasterEngine(page_count=3), ocr)

        result = run()

        self.assertEqual([int(n) for n in HEADER_RE.findall(result.text)], [1, 2, 3])
        self.assertAlmostEqual(result.confidence, 80.0)
        self.assertEqual(result.total_pages, 3)
        self.assertEqual(result.succeeded_pages, 3)
        self.assertEqual(result.failed_pages, [])
        self.assertEqual(ocr.calls, [1, 2, 3])
        self.assertEqual(
            result.text,
            "\n--- Page 1 ---\nalpha\n\n--- Page 2 ---\nbeta\n\n--- Page 3 ---\ngamma\n",
        )
        self.assertTrue(run.raster.closed)

    def test_partial_failures_are_markers_and_excluded_from_mean(self) -> None:
        ocr = ScriptedOcrEngine(
            {
                1: RecognitionResult(text="alpha", confidence=60.0),
                2: RecognitionEngineError("engine crashed"),
                3: RecognitionResult(text="   \n", confidence=55.0),
                4: RecognitionResult(text="delta", confidence=100.0),
            }
        )
        run = _Run(FakeRasterEngine(page_count=4), ocr)

        result = run()

        self.assertEqual([int(n) for n in HEADER_RE.findall(result.text)], [1, 2, 3, 4])
        self.assertIn("--- Page 2 (Error) ---\n[Page processing failed: engine crashed]", result.text)
        self.assertIn("--- Page 3 (No text found) ---", result.text)
        self.assertAlmostEqual(result.confidence, 80.0)
        self.assertEqual(result.succeeded_pages, 2)
        self.assertEqual(result.failed_pages, [2])
        self.assertEqual(result.pages[2].state, PageState.SUCCEEDED)
        self.assertFalse(result.pages[2].has_usable_text)

    def test_surface_failure_on_one_page_does_not_stop_later_pages(self) -> None:
        raster = FakeRasterEngine(page_count=3, surface_fail_pages=(1,))
        ocr = ScriptedOcrEngine()
        run = _Run(raster, ocr)

        result = run()

        self.assertEqual(ocr.calls, [2, 3])
        self.assertEqual(result.pages[0].errors[0].code, "SURFACE_UNAVAILABLE")
        self.assertAlmostEqual(result.confidence, 90.0)

    def test_zero_usable_pages_raises_no_usable_text(self) -> None:
        ocr = ScriptedOcrEngine(
            {
                1: RecognitionResult(text="", confidence=0.0),
                2: RecognitionEngineError("boom"),
            }
        )
        run = _Run(FakeRasterEngine(page_count=2), ocr)

        with self.assertRaises(NoUsableText) as ctx:
            run()

        self.assertIn("--- Page 1 (No text found) ---", ctx.exception.partial_text)
        self.assertIn("--- Page 2 (Error) ---", ctx.exception.partial_text)
        self.assertEqual(run.events[-1].step, ProgressStep.FALLBACK)

    def test_recognition_timeout_is_contained_to_its_page(self) -> None:
        ocr = BlockingOcrEngine(hang_pages=(2,))
        run = _Run(FakeRasterEngine(page_count=3), ocr)
        try:
            result = run(PipelineConfig(recognition_timeout_s=0.2))
        finally:
            ocr.release.set()

        self.assertEqual(result.pages[1].state, PageState.FAILED)
        self.assertEqual(result.pages[1].errors[0].code, "RECOGNITION_TIMEOUT")
        self.assertEqual(result.pages[2].state, PageState.SUCCEEDED)
        self.assertIn("--- Page 3 ---\ntext of page 3", result.text)
        self.assertNotIn("too late", result.text)
        self.assertAlmostEqual(result.confidence, 90.0)


class TestDocumentPipelineValidation(unittest.TestCase):
    def _assert_fails(self, exc: type, *, raster: FakeRasterEngine | None = None, **kwargs) -> _Run:
        run = _Run(raster or FakeRasterEngine(), ScriptedOcrEngine())
        with self.assertRaises(exc):
            run(**kwargs)
        self.assertEqual(run.ocr.calls, [])
        self.assertEqual(run.events[-1].step, ProgressStep.FALLBACK)
        return run

    def test_empty_bytes_rejected(self) -> None:
        self._assert_fails(InvalidDocument, pdf_bytes=b"")

    def test_non_pdf_bytes_rejected(self) -> None:
        self._assert_fails(InvalidDocument, pdf_bytes=b"PK\x03\x04 this is a zip")

    def test_leading_bytes_before_pdf_header_accepted(self) -> None:
        run = _Run(FakeRasterEngine(page_count=1), ScriptedOcrEngine())
        result = run(pdf_bytes=b"\r\n\xef\xbb\xbfjunk\n" + PDF)
        self.assertEqual(result.succeeded_pages, 1)

    def test_pdf_header_past_first_kilobyte_rejected(self) -> None:
        self._assert_fails(InvalidDocument, pdf_bytes=b" " * 1024 + PDF)

    def test_file_size_limit(self) -> None:
        self._assert_fails(
            DocumentTooLarge, config=PipelineConfig(max_file_bytes=8), pdf_bytes=PDF
        )

    def test_size_limit_can_be_disabled(self) -> None:
        run = _Run(FakeRasterEngine(page_count=1), ScriptedOcrEngine())
        result = run(PipelineConfig(max_file_bytes=None), pdf_bytes=PDF + b"x" * 1024)
        self.assertEqual(result.total_pages, 1)

    def test_parse_error_attempts_no_pages(self) -> None:
        raster = FakeRasterEngine(parse_error=True)
        self._assert_fails(DocumentParseError, raster=raster)
        self.assertEqual(raster.rendered, [])

    def test_zero_pages_rejected(self) -> None:
        self._assert_fails(EmptyDocument, raster=FakeRasterEngine(page_count=0))

    def test_page_count_limit(self) -> None:
        raster = FakeRasterEngine(page_count=21)
        self._assert_fails(TooManyPages, raster=raster)
        self.assertEqual(raster.rendered, [])
        self.assertTrue(raster.closed)


class TestDocumentPipelineProgress(unittest.TestCase):
    def test_event_sequence_is_monotonic(self) -> None:
        run = _Run(FakeRasterEngine(page_count=2), ScriptedOcrEngine())
        run()

        self.assertEqual(run.events[0].step, ProgressStep.LOADING)
        pages = [e.page_number for e in run.events if e.page_number is not None]
        self.assertEqual(pages, sorted(pages))
        self.assertTrue(all(e.total_pages == 2 for e in run.events[1:]))

        page1 = [e for e in run.events if e.page_number == 1]
        self.assertEqual(page1[0].step, ProgressStep.CONVERTING)
        self.assertEqual(page1[1].step, ProgressStep.OCR)
        self.assertEqual([e.ocr_progress for e in page1 if e.ocr_progress is not None], [0, 50, 100])

    def test_page_error_emits_event_with_page_and_message(self) -> None:
        raster = FakeRasterEngine(page_count=2, surface_fail_pages=(2,))
        run = _Run(raster, ScriptedOcrEngine())
        run()

        errors = [e for e in run.events if e.error]
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].page_number, 2)
        self.assertEqual(errors[0].step, ProgressStep.CONVERTING)
        self.assertIn("no surface", errors[0].error)

    def test_runs_identically_without_a_sink(self) -> None:
        raster = FakeRasterEngine(page_count=2)
        with patch("normalize_pdf.module._get_engine", return_value=raster), patch(
            "ocr.module._get_engine", return_value=ScriptedOcrEngine()
        ):
            with_sink = run_document_pipeline(pdf_bytes=PDF, on_progress=lambda e: "ignored")
            without_sink = run_document_pipeline(pdf_bytes=PDF)

        self.assertEqual(with_sink.text, without_sink.text)
        self.assertEqual(with_sink.confidence, without_sink.confidence)

    def test_meta_records_run_configuration(self) -> None:
        run = _Run(FakeRasterEngine(page_count=1), ScriptedOcrEngine())
        result = run(PipelineConfig(render=RenderConfig(scale=3.0)))
        self.assertEqual(result.meta["scale"], 3.0)
        self.assertEqual(result.meta["recognition"]["page_seg_mode"], 6)


class TestRenderTimeoutContainment(unittest.TestCase):
    def test_hung_render_does_not_fail_later_pages(self) -> None:
        real_render = pdfium.PdfPage.render
        calls: list[int] = []

        def first_render_hangs(page, *args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                time.sleep(1.0)
            return real_render(page, *args, **kwargs)

        config = PipelineConfig(render=RenderConfig(scale=1.0, timeout_s=0.3))
        started = time.monotonic()
        with patch.object(pdfium.PdfPage, "render", first_render_hangs), patch(
            "ocr.module._get_engine", return_value=ScriptedOcrEngine()
        ):
            result = run_document_pipeline(pdf_bytes=pdf_with_drawn_pages(3), config=config)
        elapsed = time.monotonic() - started

        self.assertEqual(result.pages[0].state, PageState.FAILED)
        self.assertEqual(result.pages[0].errors[0].code, "RENDER_TIMEOUT")
        self.assertEqual([p.state for p in result.pages[1:]], [PageState.SUCCEEDED] * 2)
        self.assertEqual(result.failed_pages, [1])
        self.assertEqual(len(calls), 3)
        self.assertLess(elapsed, 5.0)


if __name__ == "__main__":
    unittest.main()
