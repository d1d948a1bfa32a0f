"""
Ordered regex rules for contract fields.

Each required field owns one `RuleGroup`: an ordered tuple of alternatives.
The first alternative that matches wins; there is no ranking across
alternatives. Confidence weights encode pattern specificity, so a labeled
match ("Purchase Price: $X") scores above a bare one ("$X").
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from contracts.fields import (
    BUYER_NAME,
    CLOSING_DATE,
    EARNEST_MONEY,
    EXECUTION_DATE,
    LEGAL_DESCRIPTION,
    PROPERTY_ADDRESS,
    PURCHASE_PRICE,
    SELLER_NAME,
)


@dataclass(frozen=True, slots=True)
class FieldRule:
    rule_id: str
    pattern: re.Pattern[str]
    confidence: float
    group: int = 1
    prefix: str = ""  # prepended to the captured value, e.g. "$"

    def apply(self, text: str) -> tuple[str, str] | None:
        """
        Return (value, matched_text) or None when the rule does not match.
        """

        m = self.pattern.search(text)
        if m is None:
            return None
        value = m.group(self.group).strip()
        if value == "":
            return None
        return f"{self.prefix}{value}", m.group(0).strip()


@dataclass(frozen=True, slots=True)
class RuleGroup:
    field: str
    rules: tuple[FieldRule, ...]


def _rx(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


_STREET_SUFFIX = r"\b(?:street|st|avenue|ave|road|rd|drive|dr|lane|ln|blvd|boulevard)\b"
_AMOUNT = r"(\d+(?:,\d{3})*(?:\.\d{2})?)"
_NUMERIC_DATE = r"(\d{1,2}/\d{1,2}/\d{4})"
_MONTH_DATE = (
    r"((?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?\s+\d{1,2},?\s+\d{4})"
)
_PARTY_SUFFIX = r"(?:\(s\)|s)?"

_EXECUTION_LABEL = r"\b(?:execution date|date of execution|signed(?: on)?)[:\s]*"
_CLOSING_LABEL = r"\b(?:closing date|settlement date|date of closing)[:\s]*"


DEFAULT_RULE_GROUPS: tuple[RuleGroup, ...] = (
    RuleGroup(
        field=PROPERTY_ADDRESS,
        rules=(
            FieldRule(
                rule_id="address_labeled",
                # Longer labels first so "Property Address:" is not read as "Property".
                pattern=_rx(
                    r"\b(?:property address|subject property|premises|located at|address|property)"
                    r"[:\s]+([^\n\r]+?" + _STREET_SUFFIX + r"[^\n\r]*)"
                ),
                confidence=85,
            ),
            FieldRule(
                rule_id="address_street_number",
                pattern=_rx(r"\b(\d+\s+[^\n\r]*?" + _STREET_SUFFIX + r"[^\n\r]*)"),
                confidence=75,
            ),
        ),
    ),
    RuleGroup(
        field=LEGAL_DESCRIPTION,
        rules=(
            FieldRule(
                rule_id="legal_labeled",
                pattern=_rx(r"\blegal description[:\s]+([^\n\r]{20,})"),
                confidence=70,
            ),
            FieldRule(
                rule_id="legal_lot_block",
                pattern=_rx(r"\b((?:lot|block)[:\s]+[^\n\r]{20,})"),
                confidence=60,
            ),
        ),
    ),
    RuleGroup(
        field=BUYER_NAME,
        rules=(
            FieldRule(
                rule_id="buyer_labeled",
                pattern=_rx(r"\b(?:buyer|purchaser)" + _PARTY_SUFFIX + r"[ \t]*:[ \t]*([^\n\r]+)"),
                confidence=80,
            ),
            FieldRule(
                rule_id="buyer_mention",
                pattern=_rx(r"\b(?:buyer|purchaser)" + _PARTY_SUFFIX + r"[: \t]+([^\n\r]+)"),
                confidence=65,
            ),
        ),
    ),
    RuleGroup(
        field=SELLER_NAME,
        rules=(
            FieldRule(
                rule_id="seller_labeled",
                pattern=_rx(r"\b(?:seller|vendor)" + _PARTY_SUFFIX + r"[ \t]*:[ \t]*([^\n\r]+)"),
                confidence=80,
            ),
            FieldRule(
                rule_id="seller_mention",
                pattern=_rx(r"\b(?:seller|vendor)" + _PARTY_SUFFIX + r"[: \t]+([^\n\r]+)"),
                confidence=65,
            ),
        ),
    ),
    RuleGroup(
        field=PURCHASE_PRICE,
        rules=(
            FieldRule(
                rule_id="price_labeled",
                pattern=_rx(r"\b(?:purchase price|sales? price|total price)[:\s]*\$?\s*" + _AMOUNT),
                confidence=90,
                prefix="$",
            ),
            FieldRule(
                rule_id="price_bare_dollar",
                pattern=_rx(r"\$\s*" + _AMOUNT),
                confidence=70,
                prefix="$",
            ),
        ),
    ),
    RuleGroup(
        field=EARNEST_MONEY,
        rules=(
            FieldRule(
                rule_id="earnest_labeled",
                pattern=_rx(r"\b(?:earnest money(?: deposit)?|deposit)[:\s]*\$?\s*" + _AMOUNT),
                confidence=85,
                prefix="$",
            ),
        ),
    ),
    RuleGroup(
        field=EXECUTION_DATE,
        rules=(
            FieldRule(
                rule_id="execution_numeric",
                pattern=_rx(_EXECUTION_LABEL + _NUMERIC_DATE),
                confidence=75,
            ),
            FieldRule(
                rule_id="execution_month_name",
                pattern=_rx(_EXECUTION_LABEL + _MONTH_DATE),
                confidence=70,
            ),
        ),
    ),
    RuleGroup(
        field=CLOSING_DATE,
        rules=(
            FieldRule(
                rule_id="closing_numeric",
                pattern=_rx(_CLOSING_LABEL + _NUMERIC_DATE),
                confidence=75,
            ),
            FieldRule(
                rule_id="closing_month_name",
                pattern=_rx(_CLOSING_LABEL + _MONTH_DATE),
                confidence=70,
            ),
        ),
    ),
)
