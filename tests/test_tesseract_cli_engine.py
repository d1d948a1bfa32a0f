from __future__ import annotations

import subprocess
import unittest
from pathlib import Path
from unittest.mock import patch

from PIL import Image

from contracts.errors import RecognitionEngineError, RecognitionTimeout
from ocr.contracts import RecognitionConfig
from ocr.engines.tesseract_cli import (
    TesseractCliEngine,
    build_tesseract_command,
    mean_word_confidence,
)

TSV = "\n".join(
    [
        "level\tpage_num\tblock_num\tpar_num\tline_num\tword_num\tleft\ttop\twidth\theight\tconf\ttext",
        "1\t1\t0\t0\t0\t0\t0\t0\t200\t100\t-1\t",
        "4\t1\t1\t1\t1\t0\t10\t10\t180\t20\t-1\t",
        "5\t1\t1\t1\t1\t1\t10\t10\t50\t20\t96.5\tBuyer:",
        "5\t1\t1\t1\t1\t2\t70\t10\t40\t20\t83.5\tJohn",
        "5\t1\t1\t1\t1\t3\t120\t10\t40\t20\t-1\t ",
    ]
)


def _fake_tesseract(text: str, tsv: str, returncode: int = 0):
    def _run(cmd, **kwargs):
        out_base = Path(cmd[2])
        if returncode == 0:
            out_base.with_suffix(".txt").write_text(text, encoding="utf-8")
            out_base.with_suffix(".tsv").write_text(tsv, encoding="utf-8")
        return subprocess.CompletedProcess(cmd, returncode, stdout="", stderr="bad traineddata")

    return _run


class TestCommandTranslation(unittest.TestCase):
    def test_each_option_passed_separately(self) -> None:
        cfg = RecognitionConfig(
            language="eng+spa",
            page_seg_mode=4,
            ocr_engine_mode=1,
            preserve_interword_spaces=True,
            char_whitelist="0123456789$,.",
            char_blacklist="|",
        )
        cmd = build_tesseract_command(image_file=Path("in.png"), out_base=Path("out"), config=cfg)

        self.assertEqual(cmd[:3], ["tesseract", "in.png", "out"])
        self.assertEqual(cmd[3:9], ["-l", "eng+spa", "--psm", "4", "--oem", "1"])
        self.assertIn("preserve_interword_spaces=1", cmd)
        self.assertIn("tessedit_char_whitelist=0123456789$,.", cmd)
        self.assertIn("tessedit_char_blacklist=|", cmd)
        self.assertEqual(cmd[-2:], ["txt", "tsv"])

    def test_defaults_omit_optional_variables(self) -> None:
        cmd = build_tesseract_command(
            image_file=Path("in.png"), out_base=Path("out"), config=RecognitionConfig()
        )
        self.assertNotIn("-c", cmd)
        self.assertEqual(cmd[cmd.index("--psm") + 1], "6")


class TestMeanWordConfidence(unittest.TestCase):
    def test_averages_word_rows_only(self) -> None:
        self.assertAlmostEqual(mean_word_confidence(TSV), 90.0)

    def test_no_words_is_zero(self) -> None:
        self.assertEqual(mean_word_confidence(TSV.splitlines()[0]), 0.0)
        self.assertEqual(mean_word_confidence(""), 0.0)


class TestTesseractCliEngine(unittest.TestCase):
    def setUp(self) -> None:
        self.image = Image.new("RGB", (50, 50), (255, 255, 255))
        self.progress: list[tuple[str, float]] = []

    def _recognize(self):
        return TesseractCliEngine().recognize(
            image=self.image,
            config=RecognitionConfig(),
            timeout_s=5.0,
            progress=lambda status, frac: self.progress.append((status, frac)),
        )

    def test_reads_text_and_confidence(self) -> None:
        with patch(
            "ocr.engines.tesseract_cli.subprocess.run",
            side_effect=_fake_tesseract("Buyer: John\n\f", TSV),
        ) as run:
            result = self._recognize()

        self.assertEqual(result.text, "Buyer: John\n")
        self.assertAlmostEqual(result.confidence, 90.0)
        self.assertEqual(run.call_args.kwargs["timeout"], 5.0)
        self.assertEqual(self.progress, [("recognizing text", 0.0), ("recognizing text", 1.0)])
        self.assertNotIn("contract-ocr-", " ".join(result.meta["command_template"]))

    def test_missing_binary(self) -> None:
        with patch("ocr.engines.tesseract_cli.subprocess.run", side_effect=FileNotFoundError()):
            with self.assertRaises(RecognitionEngineError):
                self._recognize()

    def test_subprocess_timeout(self) -> None:
        with patch(
            "ocr.engines.tesseract_cli.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="tesseract", timeout=5.0),
        ):
            with self.assertRaises(RecognitionTimeout):
                self._recognize()

    def test_non_zero_exit(self) -> None:
        with patch(
            "ocr.engines.tesseract_cli.subprocess.run",
            side_effect=_fake_tesseract("", "", returncode=1),
        ):
            with self.assertRaises(RecognitionEngineError) as ctx:
                self._recognize()
        self.assertEqual(ctx.exception.detail["returncode"], 1)
        self.assertIn("bad traineddata", ctx.exception.detail["stderr"])


if __name__ == "__main__":
    unittest.main()
