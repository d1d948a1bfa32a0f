from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .doc_contracts import AggregateResult, PageOutcome


def _page_entry(page: PageOutcome) -> dict[str, Any]:
    return {
        "page_num": page.page_num,
        "state": page.state.value,
        "has_usable_text": page.has_usable_text,
        "confidence": round(page.confidence, 2),
        "scale": page.scale,
        "errors": [e.to_dict() for e in page.errors],
        "history": [s.value for s in page.history],
    }


def build_review_payload(result: AggregateResult) -> dict[str, Any]:
    """
    Audit record for one document run.

    The summary answers "does this need a human?" at a glance: pages without
    text and failed pages (with their error codes) are listed explicitly.
    Page text lives once, in `text`, exactly as handed to field extraction.
    """

    return {
        "summary": {
            "total_pages": result.total_pages,
            "pages_with_text": result.succeeded_pages,
            "failed_pages": result.failed_pages,
            "empty_pages": [
                p.page_num for p in result.pages if p.succeeded and not p.has_usable_text
            ],
            "error_codes": sorted({e.code for p in result.pages for e in p.errors}),
            "confidence": round(result.confidence, 2),
        },
        "pages": [_page_entry(p) for p in result.pages],
        "text": result.text,
        "meta": result.meta,
    }


def write_review_json(*, result: AggregateResult, out_file: Path) -> None:
    out_file.parent.mkdir(parents=True, exist_ok=True)
    payload = build_review_payload(result)
    out_file.write_text(
        json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2) + "\n", encoding="utf-8"
    )


def write_text_output(*, text: str, out_file: Path) -> None:
    """
    Write aggregated (or partial, on `NoUsableText`) page text for review.
    """

    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(text, encoding="utf-8")
