from __future__ import annotations

import csv
import io
from pathlib import Path

from contracts.fields import (
    BUYER_NAME,
    CLOSING_DATE,
    EARNEST_MONEY,
    EXECUTION_DATE,
    LEGAL_DESCRIPTION,
    PROPERTY_ADDRESS,
    PURCHASE_PRICE,
    SELLER_NAME,
    ExtractedField,
)

CSV_HEADER: tuple[str, ...] = (
    "Filename",
    "Property Address",
    "Legal Description",
    "Buyer",
    "Seller",
    "Purchase Price",
    "Earnest Money",
    "Execution Date",
    "Closing Date",
    "Notes",
)

# CSV column -> extracted field name (Filename/Notes come from the caller).
_COLUMN_FIELDS: dict[str, str] = {
    "Property Address": PROPERTY_ADDRESS,
    "Legal Description": LEGAL_DESCRIPTION,
    "Buyer": BUYER_NAME,
    "Seller": SELLER_NAME,
    "Purchase Price": PURCHASE_PRICE,
    "Earnest Money": EARNEST_MONEY,
    "Execution Date": EXECUTION_DATE,
    "Closing Date": CLOSING_DATE,
}


def build_csv_row(*, filename: str, fields: list[ExtractedField], notes: str = "") -> list[str]:
    """
    Flatten one reviewed document into a row matching `CSV_HEADER`.

    Values are looked up by field name, so the order of `fields` is irrelevant.
    """

    by_name = {f.field: f.value for f in fields}
    row = [filename]
    row.extend(by_name.get(_COLUMN_FIELDS[col], "") for col in CSV_HEADER[1:-1])
    row.append(notes)
    return row


def render_csv(*, filename: str, fields: list[ExtractedField], notes: str = "") -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerow(build_csv_row(filename=filename, fields=fields, notes=notes))
    return buf.getvalue()


def write_csv(
    *, out_file: Path, filename: str, fields: list[ExtractedField], notes: str = ""
) -> None:
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(render_csv(filename=filename, fields=fields, notes=notes), encoding="utf-8")
