# Overview: Pure parser for uploaded POS sales sheets (CSV); no database access.

"""
Sales CSV Parser

FORMAT:
- First non-empty physical line is the header. Header tokens are split on
  commas, trimmed and lower-cased; the first alias found for a column wins.
- Data lines are split on commas (quoted fields are not supported).
- Blank lines are skipped. Line numbers in errors are physical, 1-based.

A failure anywhere rejects the whole file with ValidationFailedError.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import ValidationFailedError
from .recipe_service import MATCH_BY_CODE, MATCH_BY_NAME
from ..validation import MAX_QUANTITY
from app.time_utils import parse_business_datetime, utcnow


HEADER_ALIASES = {
    "menu_code": ("menu_code", "kode_menu"),
    "menu_name": ("menu_dipesan", "menu", "menu_name", "nama_menu"),
    "quantity": ("quantity", "jumlah", "qty"),
    "transaction_date": ("transaction_date", "tanggal", "tanggal_transaksi"),
    "note": ("note", "catatan"),
    "invoice": ("id_transaksi", "kode_transaksi", "invoice"),
    "customer": ("nama_pelanggan", "pelanggan"),
    "payment": ("metode_pembayaran", "payment_method"),
}

# Prefixes for the extra columns folded into the row note
NOTE_PREFIXES = (
    ("invoice", "ID:"),
    ("customer", "Cust:"),
    ("payment", "Pay:"),
)


@dataclass(frozen=True)
class SalesCsvRow:
    menu_reference: str
    match_by: str
    quantity: int
    transaction_date: datetime
    note: str | None
    line: int


def round_half_away(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(value.to_integral_value(rounding=ROUND_HALF_UP))


def _find_column(headers: list[str], aliases) -> int:
    for alias in aliases:
        if alias in headers:
            return headers.index(alias)
    return -1


def _cell(cells: list[str], index: int) -> str:
    if index < 0 or index >= len(cells):
        return ""
    return cells[index]


def _parse_quantity(raw: str, line: int) -> int:
    try:
        value = Decimal(raw)
    except (InvalidOperation, ValueError):
        raise ValidationFailedError(f"Invalid sales quantity on line {line}")
    if not value.is_finite():
        raise ValidationFailedError(f"Invalid sales quantity on line {line}")
    if value > MAX_QUANTITY:
        raise ValidationFailedError(f"Sales quantity on line {line} cannot exceed {MAX_QUANTITY}")
    quantity = round_half_away(value)
    if quantity <= 0:
        raise ValidationFailedError(f"Invalid sales quantity on line {line}")
    return quantity


def parse_sales_csv(raw: str, now: datetime | None = None) -> list[SalesCsvRow]:
    """
    Parse a sales sheet into rows, preserving input order.

    Args:
        raw: Decoded CSV text (a leading BOM is ignored)
        now: Date used for rows without a date cell (default: utcnow())

    Returns:
        List of SalesCsvRow

    Raises:
        ValidationFailedError: Empty input, missing required header columns,
            or a bad cell (message names the line)
    """
    if now is None:
        now = utcnow()

    text = (raw or "").lstrip("\ufeff")
    if not text.strip():
        raise ValidationFailedError("CSV file is empty")

    physical = text.splitlines()
    numbered = [(i, line) for i, line in enumerate(physical, start=1) if line.strip()]

    _, header_line = numbered[0]
    headers = [h.strip().lower() for h in header_line.split(",")]
    columns = {key: _find_column(headers, aliases) for key, aliases in HEADER_ALIASES.items()}

    if columns["menu_code"] < 0 and columns["menu_name"] < 0:
        raise ValidationFailedError('CSV header must contain a "menu_code" or "menu_dipesan" column')
    if columns["quantity"] < 0:
        raise ValidationFailedError('CSV header must contain a "jumlah" or "quantity" column')

    rows: list[SalesCsvRow] = []
    for line_number, raw_line in numbered[1:]:
        cells = [c.strip() for c in raw_line.split(",")]

        code_value = _cell(cells, columns["menu_code"])
        name_value = _cell(cells, columns["menu_name"])
        if code_value:
            reference, match_by = code_value, MATCH_BY_CODE
        else:
            reference, match_by = name_value, MATCH_BY_NAME
        if not reference:
            raise ValidationFailedError(f"Menu on line {line_number} must not be empty")

        quantity = _parse_quantity(_cell(cells, columns["quantity"]), line_number)

        transaction_date = now
        date_value = _cell(cells, columns["transaction_date"])
        if date_value:
            parsed = parse_business_datetime(date_value)
            if parsed is None:
                raise ValidationFailedError(f"Invalid date on line {line_number}")
            transaction_date = parsed

        note_parts = []
        note_value = _cell(cells, columns["note"])
        if note_value:
            note_parts.append(note_value)
        for key, prefix in NOTE_PREFIXES:
            value = _cell(cells, columns[key])
            if value:
                note_parts.append(f"{prefix}{value}")

        rows.append(SalesCsvRow(
            menu_reference=reference,
            match_by=match_by,
            quantity=quantity,
            transaction_date=transaction_date,
            note=" | ".join(note_parts) if note_parts else None,
            line=line_number,
        ))

    if not rows:
        raise ValidationFailedError("CSV contains no sales rows")

    return rows
