from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

PROPERTY_ADDRESS = "Property Address"
LEGAL_DESCRIPTION = "Legal Description"
BUYER_NAME = "Buyer Name"
SELLER_NAME = "Seller Name"
PURCHASE_PRICE = "Purchase Price"
EARNEST_MONEY = "Earnest Money"
EXECUTION_DATE = "Execution Date"
CLOSING_DATE = "Closing Date"

# Fixed output order; one row per field is always emitted.
REQUIRED_FIELDS: tuple[str, ...] = (
    PROPERTY_ADDRESS,
    LEGAL_DESCRIPTION,
    BUYER_NAME,
    SELLER_NAME,
    PURCHASE_PRICE,
    EARNEST_MONEY,
    EXECUTION_DATE,
    CLOSING_DATE,
)

MANUAL_CONFIDENCE = 100


@dataclass(frozen=True, slots=True)
class ExtractedField:
    """
    One contract field as found by the extractor (or entered by a reviewer).

    An empty `value` with confidence 0 means the field was not found.
    """

    field: str
    value: str
    confidence: float
    original_text: str | None = None

    @property
    def found(self) -> bool:
        return self.value != ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
