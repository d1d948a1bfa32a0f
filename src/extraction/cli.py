from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from contracts.errors import DocumentError
from ocr.cli_doc import LOG_FORMAT
from ocr.contracts import RECOGNITION_PRESETS, RecognitionConfig
from ocr.doc_contracts import PipelineConfig
from ocr.doc_module import run_document_pipeline_on_file

from .csv_export import render_csv, write_csv
from .module import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    UnknownField,
    apply_manual_edit,
    extract_fields,
    low_confidence_fields,
)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="contract-extract",
        description="Extract contract fields from OCR text (or a PDF) and export a CSV row.",
    )
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--text", type=Path, help="Plain-text file with OCR (or corrected) text.")
    src.add_argument("--pdf", type=Path, help="PDF to OCR first with default pipeline settings.")
    p.add_argument(
        "--preset",
        choices=sorted(RECOGNITION_PRESETS),
        default=None,
        help="Recognition preset when --pdf is used.",
    )
    p.add_argument("--filename", default=None, help="Identifier for the Filename column.")
    p.add_argument("--notes", default="", help="Free-text notes for the Notes column.")
    p.add_argument(
        "--edit",
        action="append",
        default=[],
        metavar="FIELD=VALUE",
        help='Manual correction, e.g. --edit "Buyer Name=Jane Roe" (repeatable).',
    )
    p.add_argument("--out-csv", type=Path, default=None, help="CSV output file (default: stdout).")
    p.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_CONFIDENCE_THRESHOLD,
        help="Flag fields below this confidence for review.",
    )
    p.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING).")
    return p


def _parse_edit(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"--edit expects FIELD=VALUE, got {raw!r}")
    return name.strip(), value


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    if args.text is not None:
        try:
            text = args.text.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            print(f"failed=UNREADABLE_TEXT message=Could not read {args.text}: {e}", file=sys.stderr)
            return 2
        source = args.text
    else:
        recognition = (
            RecognitionConfig.from_preset(args.preset) if args.preset else RecognitionConfig()
        )
        try:
            result = run_document_pipeline_on_file(
                pdf_file=args.pdf, config=PipelineConfig(recognition=recognition)
            )
        except DocumentError as e:
            print(f"failed={e.code} message={e.message}", file=sys.stderr)
            return 2
        text = result.text
        source = args.pdf

    fields = extract_fields(text)
    for raw in args.edit:
        try:
            name, value = _parse_edit(raw)
            fields = apply_manual_edit(fields, field_name=name, value=value)
        except (argparse.ArgumentTypeError, UnknownField) as e:
            parser.error(f"invalid --edit {raw!r}: {e}")

    for f in low_confidence_fields(fields, threshold=args.threshold):
        print(f"review: {f.field} (confidence {f.confidence:g})", file=sys.stderr)

    filename = args.filename or source.name
    if args.out_csv is not None:
        write_csv(out_file=args.out_csv, filename=filename, fields=fields, notes=args.notes)
    else:
        sys.stdout.write(render_csv(filename=filename, fields=fields, notes=args.notes))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
