"""
Bank statement CSV parsing.

Turns the text of a statement export into BankTransactionRow
objects using a caller-supplied column mapping. Rows that cannot
be parsed are reported by line number instead of aborting the
whole file.
"""

import csv
import io
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from finance_ledger.errors import ValidationError
from finance_ledger.schemas.banking import BankTransactionRow, CsvColumnMapping

DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%Y/%m/%d", "%d-%b-%Y")

NON_NUMERIC = re.compile(r"[^0-9.\-]")
CENT = Decimal("0.01")


def parse_amount(raw: str | None) -> Decimal:
    """
    Parse a money cell such as "$1,234.50" or "-12.00".

    Empty cells count as zero. Parenthesized values are negative.
    """
    text = (raw or "").strip()
    negative = text.startswith("(") and text.endswith(")")
    cleaned = NON_NUMERIC.sub("", text)
    if not cleaned:
        return Decimal("0.00")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"invalid amount '{raw}'")
    if negative:
        value = -abs(value)
    return value.quantize(CENT)


def parse_date(raw: str | None) -> date:
    text = (raw or "").strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"invalid date '{raw}'")


def parse_statement_csv(
    text: str, mapping: CsvColumnMapping
) -> tuple[list[BankTransactionRow], list[str]]:
    """
    Parse statement text into rows.

    Returns (rows, errors). Raises ValidationError when the mapping
    itself is unusable: no amount columns, or a mapped column that
    the header does not have.
    """
    single_amount = bool(mapping.amount_column)
    if not single_amount and not (mapping.debit_column and mapping.credit_column):
        raise ValidationError(
            "Map either an amount column or both debit and credit columns"
        )

    reader = csv.DictReader(io.StringIO(text.strip()))
    headers = [h.strip() for h in (reader.fieldnames or [])]
    reader.fieldnames = headers

    required = [mapping.date_column, mapping.description_column]
    if single_amount:
        required.append(mapping.amount_column)
    else:
        required.extend([mapping.debit_column, mapping.credit_column])
    missing = [column for column in required if column not in headers]
    if missing:
        raise ValidationError(f"CSV is missing columns: {', '.join(missing)}")

    rows = []
    errors = []
    # line 1 is the header
    for line_number, record in enumerate(reader, start=2):
        if not any((value or "").strip() for value in record.values() if isinstance(value, str)):
            continue
        try:
            transaction_date = parse_date(record.get(mapping.date_column))
            if single_amount:
                amount = parse_amount(record.get(mapping.amount_column))
            else:
                amount = (
                    parse_amount(record.get(mapping.credit_column))
                    - parse_amount(record.get(mapping.debit_column))
                )
            description = (record.get(mapping.description_column) or "").strip()
            if not description:
                raise ValueError("missing description")
        except ValueError as exc:
            errors.append(f"Line {line_number}: {exc}")
            continue

        rows.append(BankTransactionRow(
            transaction_date=transaction_date,
            description=description[:500],
            amount=amount,
        ))

    return rows, errors
