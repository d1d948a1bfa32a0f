"""
Field extraction from aggregated contract text.

Regex rules only (no layout understanding); see `rules.DEFAULT_RULE_GROUPS`
for the auditable rule precedence.
"""

from contracts.fields import REQUIRED_FIELDS, ExtractedField

from .csv_export import CSV_HEADER, build_csv_row, render_csv, write_csv
from .module import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    UnknownField,
    apply_manual_edit,
    extract_fields,
    low_confidence_fields,
)
from .rules import DEFAULT_RULE_GROUPS, FieldRule, RuleGroup

__all__ = [
    "CSV_HEADER",
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "DEFAULT_RULE_GROUPS",
    "REQUIRED_FIELDS",
    "ExtractedField",
    "FieldRule",
    "RuleGroup",
    "UnknownField",
    "apply_manual_edit",
    "build_csv_row",
    "extract_fields",
    "low_confidence_fields",
    "render_csv",
    "write_csv",
]
