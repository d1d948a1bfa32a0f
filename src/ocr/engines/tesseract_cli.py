from __future__ import annotations

import csv
import subprocess
import tempfile
from pathlib import Path

from PIL import Image

from contracts.errors import RecognitionEngineError, RecognitionTimeout

from ..contracts import RecognitionConfig, RecognitionResult
from .base import RECOGNIZING_TEXT, EngineProgress, OcrEngine


def build_tesseract_command(
    *, image_file: Path, out_base: Path, config: RecognitionConfig
) -> list[str]:
    """
    Translate a `RecognitionConfig` into a tesseract argv.

    Each option is passed as its own engine variable; nothing is merged.
    Output is requested as both plain text and TSV (for word confidences).
    """

    cmd = [
        "tesseract",
        str(image_file),
        str(out_base),
        "-l",
        config.language,
        "--psm",
        str(int(config.page_seg_mode)),
        "--oem",
        str(int(config.ocr_engine_mode)),
    ]
    if config.preserve_interword_spaces:
        cmd.extend(["-c", "preserve_interword_spaces=1"])
    if config.char_whitelist:
        cmd.extend(["-c", f"tessedit_char_whitelist={config.char_whitelist}"])
    if config.char_blacklist:
        cmd.extend(["-c", f"tessedit_char_blacklist={config.char_blacklist}"])
    cmd.extend(["txt", "tsv"])
    return cmd


def mean_word_confidence(tsv: str) -> float:
    """
    Mean of word-level confidences (0..100) from tesseract TSV output.

    Non-word rows and rows with conf < 0 are ignored. Returns 0.0 when no
    words were recognized.
    """

    confs: list[float] = []
    reader = csv.DictReader(tsv.splitlines(), delimiter="\t", quoting=csv.QUOTE_NONE)
    for row in reader:
        # level meanings: 1=page,2=block,3=para,4=line,5=word
        try:
            level = int(row.get("level", "") or "0")
        except ValueError:
            continue
        if level != 5:
            continue
        if (row.get("text") or "").strip() == "":
            continue
        try:
            conf = float(row.get("conf", "") or "-1")
        except ValueError:
            continue
        if conf < 0:
            continue
        confs.append(min(conf, 100.0))

    if not confs:
        return 0.0
    return sum(confs) / len(confs)


class TesseractCliEngine(OcrEngine):
    """
    Tesseract OCR via the `tesseract` CLI.

    The raster is written to a private temp dir as PNG. The child process is
    killed when `timeout_s` elapses. Progress is coarse: the CLI only tells us
    when recognition starts and finishes.
    """

    def recognize(
        self,
        *,
        image: Image.Image,
        config: RecognitionConfig,
        timeout_s: float | None,
        progress: EngineProgress,
    ) -> RecognitionResult:
        with tempfile.TemporaryDirectory(prefix="contract-ocr-") as tmp:
            tmp_dir = Path(tmp)
            image_file = tmp_dir / "page.png"
            out_base = tmp_dir / "out"
            image.save(image_file, format="PNG")

            cmd = build_tesseract_command(image_file=image_file, out_base=out_base, config=config)
            meta = {
                "backend": "tesseract",
                "backend_mode": "cli",
                # Keep artifacts portable: do not embed temp paths.
                "command_template": ["tesseract", "<IMAGE_FILE>", "<OUT_BASE>", *cmd[3:]],
            }

            progress(RECOGNIZING_TEXT, 0.0)
            try:
                proc = subprocess.run(
                    cmd,
                    check=False,
                    capture_output=True,
                    text=True,
                    timeout=timeout_s,
                )
            except FileNotFoundError as e:
                raise RecognitionEngineError(
                    "tesseract binary not found on PATH",
                    detail={"expected_command": "tesseract"},
                ) from e
            except subprocess.TimeoutExpired as e:
                raise RecognitionTimeout(
                    f"OCR backend timed out after {timeout_s}s",
                    detail={"timeout_s": timeout_s},
                ) from e

            if proc.returncode != 0:
                raise RecognitionEngineError(
                    "OCR backend returned a non-zero exit code",
                    detail={
                        "returncode": proc.returncode,
                        "stderr": (proc.stderr or "")[-4000:],
                    },
                )

            txt_file = out_base.with_suffix(".txt")
            tsv_file = out_base.with_suffix(".tsv")
            if not txt_file.exists():
                raise RecognitionEngineError(
                    "OCR backend produced no text output",
                    detail={"stderr": (proc.stderr or "")[-4000:]},
                )

            # tesseract terminates each page with a form feed
            text = txt_file.read_text(encoding="utf-8").replace("\f", "")
            tsv = tsv_file.read_text(encoding="utf-8") if tsv_file.exists() else ""
            confidence = mean_word_confidence(tsv)
            progress(RECOGNIZING_TEXT, 1.0)

        return RecognitionResult(text=text, confidence=confidence, meta=meta)
