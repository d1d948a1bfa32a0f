from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from contracts.errors import DocumentError, NoUsableText
from contracts.progress import ProgressEvent
from normalize_pdf.contracts import RenderConfig

from .artifacts import write_review_json, write_text_output
from .contracts import RECOGNITION_PRESETS, PageSegMode, RecognitionConfig
from .doc_contracts import DEFAULT_MAX_FILE_BYTES, DEFAULT_MAX_PAGES, PipelineConfig
from .doc_module import run_document_pipeline_on_file

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="contract-ocr-doc",
        description=(
            "OCR (document mode): render every PDF page, recognize text per page and "
            "emit the aggregated text with its mean confidence."
        ),
    )
    p.add_argument("--pdf", required=True, type=Path, help="Input PDF file.")
    p.add_argument("--out", type=Path, default=None, help="Optional JSON artifact output file.")
    p.add_argument("--text-out", type=Path, default=None, help="Optional plain-text output file.")
    p.add_argument(
        "--preset",
        choices=sorted(RECOGNITION_PRESETS),
        default=None,
        help="Recognition preset; explicit flags below override it.",
    )
    p.add_argument("--language", default=None, help="Tesseract language code (default: eng).")
    p.add_argument(
        "--psm",
        type=int,
        default=None,
        help=f"Page segmentation mode (default: {int(PageSegMode.SINGLE_BLOCK)}).",
    )
    p.add_argument("--oem", type=int, default=None, help="OCR engine mode (default: 3).")
    p.add_argument(
        "--preserve-interword-spaces",
        action="store_true",
        default=None,
        help="Keep runs of spaces between words.",
    )
    p.add_argument("--whitelist", default=None, help="Only recognize these characters.")
    p.add_argument("--blacklist", default=None, help="Never recognize these characters.")
    p.add_argument("--scale", type=float, default=2.0, help="Render scale (default: 2.0).")
    p.add_argument(
        "--retry-scale",
        type=float,
        action="append",
        default=[],
        help="Extra render scale to try when a page yields no text (repeatable).",
    )
    p.add_argument("--render-timeout-s", type=float, default=30.0, help="Per-page render deadline.")
    p.add_argument("--ocr-timeout-s", type=float, default=90.0, help="Per-page OCR deadline.")
    p.add_argument(
        "--max-pages", type=int, default=DEFAULT_MAX_PAGES, help="Reject PDFs with more pages."
    )
    p.add_argument(
        "--max-file-mb",
        type=float,
        default=DEFAULT_MAX_FILE_BYTES / (1024 * 1024),
        help="Reject PDFs larger than this many MB.",
    )
    p.add_argument(
        "--allow-blank-pages",
        action="store_true",
        help="Send blank renders to OCR instead of failing the page.",
    )
    p.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    return p


def build_recognition_config(args: argparse.Namespace) -> RecognitionConfig:
    base = RecognitionConfig.from_preset(args.preset) if args.preset else RecognitionConfig()
    overrides = {
        "language": args.language,
        "page_seg_mode": args.psm,
        "ocr_engine_mode": args.oem,
        "preserve_interword_spaces": args.preserve_interword_spaces,
        "char_whitelist": args.whitelist,
        "char_blacklist": args.blacklist,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return replace(base, **overrides) if overrides else base


def build_pipeline_config(args: argparse.Namespace) -> PipelineConfig:
    return PipelineConfig(
        recognition=build_recognition_config(args),
        render=RenderConfig(scale=args.scale, timeout_s=args.render_timeout_s),
        recognition_timeout_s=args.ocr_timeout_s,
        reject_blank_rasters=not args.allow_blank_pages,
        retry_scales=tuple(args.retry_scale),
        max_file_bytes=int(args.max_file_mb * 1024 * 1024),
        max_pages=args.max_pages,
    )


def _log_progress(event: ProgressEvent) -> None:
    if event.error:
        logger.warning("[%s] page %s: %s", event.step.value, event.page_number, event.error)
    elif event.ocr_progress is None and event.message:
        logger.info("[%s] %s", event.step.value, event.message)


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    config = build_pipeline_config(args)

    try:
        result = run_document_pipeline_on_file(
            pdf_file=args.pdf, config=config, on_progress=_log_progress
        )
    except NoUsableText as e:
        print(f"failed={e.code} message={e.message}", file=sys.stderr)
        if args.text_out is not None and e.partial_text:
            write_text_output(text=e.partial_text, out_file=args.text_out)
        return 2
    except DocumentError as e:
        print(f"failed={e.code} message={e.message}", file=sys.stderr)
        return 2

    if args.out is not None:
        write_review_json(result=result, out_file=args.out)
    if args.text_out is not None:
        write_text_output(text=result.text, out_file=args.text_out)

    print(
        f"pages={result.total_pages} with_text={result.succeeded_pages} "
        f"failed={len(result.failed_pages)} confidence={result.confidence:.1f}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
