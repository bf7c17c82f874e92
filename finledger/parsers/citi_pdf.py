"""Extractor for Citibank card statements (issuer B)."""

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
    parse_day_month_year,
    strip_page_furniture,
    validate_date,
)

MONTH_ABBR = r"(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)"
AMOUNT = r"-?(?:\d{1,3}(?:,\d{3})+|\d+)"

STATEMENT_BEGINS_PATTERN = re.compile(r"Statement Begins[:\s]*(\d{2}/\d{2}/\d{2,4})", re.IGNORECASE)
BALANCE_PATTERN = re.compile(r"Closing Balance.*?\$?([\d,]+\.?\d{0,2})", re.IGNORECASE)
PAYMENT_PATTERN = re.compile(r"Bpay Payments\s*-([\d,]+\.?\d{0,2})", re.IGNORECASE)

LINE_START_PATTERN = re.compile(rf"^{MONTH_ABBR}\s*(\d{{1,2}})")
DESCRIPTION_ONLY_PATTERN = re.compile(rf"^{MONTH_ABBR}\s*(\d{{1,2}})(.+)$")
NEXT_LINE_AMOUNT_PATTERN = re.compile(r"^(-?\d{1,4}(?:,\d{3})*(?:\.\d{2})?)(?:\s|$)")

# Line layouts seen in Citi text layers, tried in order.
# Groups: month, day, description, amount
LINE_PATTERNS = [
    # "Apr 02 Origin Energy Barangaroo Au 333.31"
    re.compile(rf"^{MONTH_ABBR}\s+(\d{{1,2}})\s+(.+?)\s+({AMOUNT}(?:\.\d{{2}})?)$"),
    # "Apr 02Origin Energy Barangaroo Au40.5955160005092353121499280" (reference glued on)
    re.compile(rf"^{MONTH_ABBR}\s*(\d{{1,2}})(.+?)(\d{{1,4}}(?:,\d{{3}})*\.\d{{2}})(\d{{15,}})$"),
    # "Apr 02 Origin Energy Barangaroo Au333.31"
    re.compile(rf"^{MONTH_ABBR}\s+(\d{{1,2}})\s+(.+?)({AMOUNT}\.\d{{2}})$"),
    # "Apr 02 Description 333"
    re.compile(rf"^{MONTH_ABBR}\s+(\d{{1,2}})\s+(.+?)\s+(-?\d{{1,4}})$"),
    # Anything else ending in a number
    re.compile(rf"^{MONTH_ABBR}\s+(\d{{1,2}})\s+(.+?)[-\s]+(\d+\.?\d*)$"),
]

SKIPPED_DESCRIPTIONS = {"Bpay Payments"}


def extract_citi_statement(text: str, default_year: int | None = None) -> StatementExtraction:
    """
    Extract line items from a Citibank statement.

    Citi statements list one transaction per line (MMM DD, description, amount),
    sometimes with the amount wrapped onto the following line. Offsets and
    refunds are printed negative; they are returned positive.
    """
    result = ParseResult(transactions=[])
    year = _extract_year(text, default_year)

    cleaned = strip_page_furniture(text, [r"Citibank.*?Card"])
    lines = [line.strip() for line in cleaned.split("\n")]

    i = 0
    while i < len(lines):
        line = lines[i]
        i += 1

        if not line or not LINE_START_PATTERN.match(line):
            continue

        result.total_rows_processed += 1
        parsed = _match_line(line)

        # Amount wrapped onto the next line
        if parsed is None and i < len(lines):
            desc_match = DESCRIPTION_ONLY_PATTERN.match(line)
            amount_match = NEXT_LINE_AMOUNT_PATTERN.match(lines[i])
            if desc_match and amount_match:
                parsed = (desc_match.group(1), desc_match.group(2), desc_match.group(3), amount_match.group(1))
                i += 1

        if parsed is None:
            result.rows_skipped += 1
            continue

        month_abbr, day_str, description, amount_str = parsed
        description = normalize_description(description)

        if not description or description in SKIPPED_DESCRIPTIONS or is_likely_payment(description):
            result.payments_filtered += 1
            continue

        amount, ok = parse_amount_safe(amount_str)
        if not ok:
            result.rows_skipped += 1
            result.warnings.append(f"Invalid amount: {amount_str}")
            continue

        txn_date = build_date(year, month_number(month_abbr), int(day_str))
        if not validate_date(txn_date):
            result.rows_skipped += 1
            result.warnings.append(f"Invalid date: {month_abbr} {day_str}")
            continue

        result.transactions.append(
            DraftTransaction(
                date=txn_date,
                description=description,
                amount=-amount,
            )
        )

    log_parse_result(result, "Citi PDF")

    return StatementExtraction(
        source=DocumentKind.CITI,
        transactions=result.transactions,
        balance=_extract_figure(BALANCE_PATTERN, text),
        payment=_extract_figure(PAYMENT_PATTERN, text),
    )


def _extract_year(text: str, default_year: int | None) -> int:
    """Extract the statement year from "Statement Begins DD/MM/YY"."""
    match = STATEMENT_BEGINS_PATTERN.search(text)
    if match:
        begins = parse_day_month_year(match.group(1))
        if begins:
            return begins.year
    return default_year or datetime.now().year


def _match_line(line: str) -> tuple[str, str, str, str] | None:
    """Try each known layout; return (month, day, description, amount)."""
    for index, pattern in enumerate(LINE_PATTERNS):
        match = pattern.match(line)
        if not match:
            continue
        month_abbr, day_str, description, amount_str = match.group(1, 2, 3, 4)
        if index == len(LINE_PATTERNS) - 1:
            description = re.sub(r"[-\s]+$", "", description)
        return month_abbr, day_str, description, amount_str
    return None


def _extract_figure(pattern: re.Pattern, text: str) -> Decimal | None:
    match = pattern.search(text)
    if not match:
        return None
    amount, ok = parse_amount_safe(match.group(1))
    return amount if ok else None
