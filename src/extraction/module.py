from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable

from contracts.fields import MANUAL_CONFIDENCE, REQUIRED_FIELDS, ExtractedField

from .rules import DEFAULT_RULE_GROUPS, RuleGroup

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 85


class UnknownField(KeyError):
    pass


def _missing(field_name: str) -> ExtractedField:
    return ExtractedField(field=field_name, value="", confidence=0)


def extract_fields(
    text: str, *, rule_groups: Iterable[RuleGroup] = DEFAULT_RULE_GROUPS
) -> list[ExtractedField]:
    """
    Apply the ordered rule groups to OCR (or user-corrected) text.

    Always returns exactly one entry per required field, in `REQUIRED_FIELDS`
    order. Fields with no matching rule come back empty with confidence 0.
    Pure: the same text always yields the same list. Re-running on edited
    text replaces the previous list; nothing is merged.
    """

    found: dict[str, ExtractedField] = {}
    for group in rule_groups:
        if group.field in found:
            continue
        for rule in group.rules:
            hit = rule.apply(text)
            if hit is None:
                continue
            value, matched = hit
            found[group.field] = ExtractedField(
                field=group.field,
                value=value,
                confidence=rule.confidence,
                original_text=matched,
            )
            logger.debug("%s matched by %s: %r", group.field, rule.rule_id, value)
            break

    logger.info("Extracted %d/%d field(s)", len(found), len(REQUIRED_FIELDS))
    return [found.get(name) or _missing(name) for name in REQUIRED_FIELDS]


def apply_manual_edit(
    fields: list[ExtractedField], *, field_name: str, value: str
) -> list[ExtractedField]:
    """
    Return a new field list with `field_name` overwritten by a reviewer.

    Manual values are fully trusted: confidence is forced to 100.
    """

    if not any(f.field == field_name for f in fields):
        raise UnknownField(field_name)
    return [
        replace(f, value=value, confidence=MANUAL_CONFIDENCE) if f.field == field_name else f
        for f in fields
    ]


def low_confidence_fields(
    fields: list[ExtractedField], *, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
) -> list[ExtractedField]:
    return [f for f in fields if f.confidence < threshold]
