"""Extractor for American Express card statements (issuer A)."""

import re
from datetime import datetime
from decimal import Decimal

from finledger.models import DocumentKind
from finledger.parsers.document_types import DraftTransaction, StatementExtraction
from finledger.parsers.validation import (
    ParseResult,
    build_date,
    is_likely_payment,
    log_parse_result,
    month_number,
    normalize_description,
    parse_amount_safe,
    strip_page_furniture,
    validate_date,
)

SECTION_MARKER = "New Transactions for:"
PAYMENTS_SECTION_START = "Payments Section"
PAYMENTS_SECTION_END = "New Transactions"

# "April 17" and "April17" both appear depending on the PDF text layer
DATE_LINE_PATTERN = re.compile(
    r"^(January|February|March|April|May|June|July|August|September|October|November|December)\s*(\d{1,2})$"
)
AMOUNT_LINE_PATTERN = re.compile(r"^(-?\d{1,3}(?:,\d{3})*(?:\.\d{2})?)$")
CARDHOLDER_PATTERN = re.compile(r"New Transactions for:([A-Z\s]+)")
STATEMENT_PERIOD_PATTERN = re.compile(
    r"From\s+([A-Za-z]+)\s+\d{1,2}\s+to\s+([A-Za-z]+)\s+\d{1,2},\s+(\d{4})", re.IGNORECASE
)
BALANCE_PATTERN = re.compile(r"Closing Balance.*?\$?([\d,]+\.?\d{0,2})", re.IGNORECASE)
PAYMENT_PATTERN = re.compile(r"Amount Payable.*?([\d,]+\.?\d{0,2})", re.IGNORECASE)

# Lines between a date and its amount that are not part of the description
NOISE_MARKERS = (
    "Card Number",
    "Page ",
    "American Express",
    "Statement of Account",
    "Prepared for",
    "Please check all transactions",
    "PAYMENT RECEIVED",
    "PayID Payment",
    "THANKYOU",
)
NOISE_PREFIXES = ("Total of New", "Total of Other")

# How far past a date line to look for its amount
LOOKAHEAD_LINES = 10


def extract_amex_statement(text: str, default_year: int | None = None) -> StatementExtraction:
    """
    Extract line items from an American Express statement.

    Transactions are listed per cardholder under "New Transactions for:<NAME>".
    Each transaction is laid out over several lines:
    - Date line (e.g. "April 17")
    - One or more description lines
    - Amount line, optionally followed by a "CR" line for credits

    Statement charges are printed positive; they are returned negative.
    """
    result = ParseResult(transactions=[])

    cleaned = _remove_payments_section(text)
    year, start_month, end_month = _extract_statement_period(text, default_year)

    for cardholder, section in _split_cardholder_sections(cleaned):
        for month_name, day, description, amount in _parse_section(section, result):
            month = month_number(month_name)
            txn_year = year
            # Statement spans December → January: December items belong to the prior year
            if start_month and end_month and start_month > end_month and month > end_month:
                txn_year = year - 1

            txn_date = build_date(txn_year, month, day)
            if not validate_date(txn_date):
                result.rows_skipped += 1
                result.warnings.append(f"Invalid date: {month_name} {day}")
                continue

            result.transactions.append(
                DraftTransaction(
                    date=txn_date,
                    description=description,
                    amount=amount,
                    cardholder=cardholder,
                )
            )

    log_parse_result(result, "Amex PDF")

    return StatementExtraction(
        source=DocumentKind.AMEX,
        transactions=result.transactions,
        balance=_extract_figure(BALANCE_PATTERN, text),
        payment=_extract_figure(PAYMENT_PATTERN, text),
    )


def _remove_payments_section(text: str) -> str:
    """Cut the repayments block so card repayments are not read as spending."""
    start = text.find(PAYMENTS_SECTION_START)
    end = text.find(PAYMENTS_SECTION_END)
    if start != -1 and end != -1 and start < end:
        return text[:start] + text[end:]
    return text


def _extract_statement_period(text: str, default_year: int | None) -> tuple[int, int | None, int | None]:
    """Return (statement year, start month, end month)."""
    match = STATEMENT_PERIOD_PATTERN.search(text)
    if match:
        return int(match.group(3)), month_number(match.group(1)), month_number(match.group(2))
    return default_year or datetime.now().year, None, None


def _split_cardholder_sections(text: str) -> list[tuple[str, str]]:
    """Split text into (cardholder, section text) pairs, one per supplementary card."""
    sections: list[tuple[str, str]] = []
    pos = text.find(SECTION_MARKER)

    while pos != -1:
        next_pos = text.find(SECTION_MARKER, pos + 1)
        section = text[pos:] if next_pos == -1 else text[pos:next_pos]

        name_match = CARDHOLDER_PATTERN.search(section)
        cardholder = name_match.group(1).strip() if name_match else "Unknown"
        # The name regex also swallows the next line when it is upper case
        cardholder = cardholder.split("\n")[0].strip() or "Unknown"
        sections.append((cardholder, section))

        pos = next_pos

    return sections


def _parse_section(section: str, result: ParseResult) -> list[tuple[str, int, str, Decimal]]:
    """Walk one cardholder section and return (month, day, description, signed amount)."""
    items: list[tuple[str, int, str, Decimal]] = []

    section = strip_page_furniture(section, [r"American Express.*?Card"])
    lines = [line.strip() for line in section.split("\n")]

    for i, line in enumerate(lines):
        date_match = DATE_LINE_PATTERN.match(line)
        if not date_match:
            continue

        result.total_rows_processed += 1
        month_name, day = date_match.group(1), int(date_match.group(2))

        description_lines: list[str] = []
        amount: Decimal | None = None
        is_credit = False
        j = i + 1

        while j < len(lines) and j < i + LOOKAHEAD_LINES:
            next_line = lines[j]

            if not next_line:
                j += 1
                continue

            # Start of the next transaction
            if DATE_LINE_PATTERN.match(next_line):
                break

            amount_match = AMOUNT_LINE_PATTERN.match(next_line)
            if amount_match:
                followed_by_cr = j + 1 < len(lines) and lines[j + 1] == "CR"
                parsed, ok = parse_amount_safe(amount_match.group(1))
                if ok:
                    amount = parsed
                    is_credit = followed_by_cr and parsed >= 0
                break

            if _is_noise_line(next_line):
                j += 1
                continue

            description_lines.append(next_line)
            j += 1

        description = normalize_description(" ".join(description_lines))

        if amount is None or not description:
            result.rows_skipped += 1
            continue

        if is_likely_payment(description):
            result.payments_filtered += 1
            continue

        # Charges are printed positive; credits carry CR or a leading minus
        signed = amount if is_credit else -amount
        items.append((month_name, day, description, signed))

    return items


def _is_noise_line(line: str) -> bool:
    """Check if a line is page furniture rather than description text."""
    if line == "CR" or len(line) < 3:
        return True
    if line.startswith(NOISE_PREFIXES):
        return True
    return any(marker in line for marker in NOISE_MARKERS)


def _extract_figure(pattern: re.Pattern, text: str) -> Decimal | None:
    match = pattern.search(text)
    if not match:
        return None
    amount, ok = parse_amount_safe(match.group(1))
    return amount if ok else None
