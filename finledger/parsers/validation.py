"""Shared validation utilities for statement and payslip extractors."""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from finledger.errors import OversizedOrEmptyFileError

# Configure logging for parsers
logger = logging.getLogger("finledger.parsers")

CENTS = Decimal("0.01")

MONTHS = {
    "january": 1, "february": 2, "march": 3, "april": 4,
    "may": 5, "june": 6, "july": 7, "august": 8,
    "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7,
    "aug": 8, "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

PAGE_FURNITURE_PATTERNS = [
    r"Page\s+\d+\s+of\s+\d+",
    r"Statement of Account",
]


@dataclass
class ParseResult:
    """Result of parsing a financial statement."""

    transactions: list[Any]
    total_rows_processed: int = 0
    rows_skipped: int = 0
    payments_filtered: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        """Calculate the parsing success rate."""
        if self.total_rows_processed == 0:
            return 0.0
        parsed = len(self.transactions)
        return (parsed / self.total_rows_processed) * 100


def validate_file_size(byte_size: int, max_size: int) -> None:
    """
    Validate a file's size before extraction.

    Raises:
        OversizedOrEmptyFileError: If the file is empty or above ``max_size``
    """
    if byte_size <= 0:
        raise OversizedOrEmptyFileError("File is empty")

    if byte_size > max_size:
        raise OversizedOrEmptyFileError(
            f"File too large ({byte_size} bytes), maximum {max_size} bytes allowed"
        )


def validate_amount(
    amount: Decimal | None, min_val: Decimal = Decimal("-1000000"), max_val: Decimal = Decimal("1000000")
) -> bool:
    """
    Validate that an amount is within reasonable bounds.

    Args:
        amount: The amount to validate
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        True if valid, False otherwise
    """
    if amount is None:
        return False

    if not amount.is_finite():
        return False

    return min_val <= amount <= max_val


def validate_date(txn_date: date | None, min_year: int = 2000, max_year: int = 2100) -> bool:
    """Validate that a date is within reasonable bounds."""
    if txn_date is None:
        return False

    return min_year <= txn_date.year <= max_year


def build_date(year: int, month: int, day: int) -> date | None:
    """Build a date, returning None for impossible calendar days."""
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_day_month_year(date_str: str) -> date | None:
    """Parse ``DD.MM.YYYY`` or ``DD/MM/YYYY`` (two-digit years < 50 are 20xx)."""
    if not date_str:
        return None

    parts = re.split(r"[./]", date_str.strip())
    if len(parts) != 3:
        return None

    try:
        day, month, year = (int(p) for p in parts)
    except ValueError:
        return None

    if year < 100:
        year += 2000 if year < 50 else 1900

    return build_date(year, month, day)


def month_number(name: str) -> int | None:
    """Map an English month name or abbreviation to its number."""
    return MONTHS.get(name.strip().lower())


def clean_amount_string(amount_str: str) -> str:
    """
    Clean an amount string for parsing.

    Args:
        amount_str: Raw amount string

    Returns:
        Cleaned amount string ready for Decimal conversion
    """
    if not amount_str:
        return "0"

    # Remove currency symbols and whitespace
    cleaned = amount_str.replace("$", "").replace(" ", "").strip()

    # Remove thousand separators
    cleaned = cleaned.replace(",", "")

    # Handle parentheses for negative numbers
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = "-" + cleaned[1:-1]

    # Handle trailing minus sign ("2,184.00-")
    if cleaned.endswith("-"):
        cleaned = "-" + cleaned[:-1]

    return cleaned


def parse_amount_safe(amount_str: str, default: Decimal = Decimal("0")) -> tuple[Decimal, bool]:
    """
    Safely parse an amount string.

    Returns:
        Tuple of (parsed amount rounded to cents, success flag)
    """
    try:
        cleaned = clean_amount_string(amount_str)
        if not cleaned or cleaned == "-":
            return default, False

        amount = Decimal(cleaned)

        if not validate_amount(amount):
            return default, False

        return amount.quantize(CENTS), True
    except (InvalidOperation, TypeError):
        return default, False


def normalize_description(description: str) -> str:
    """Collapse whitespace and strip trailing reference noise from a description."""
    if not description:
        return ""

    # Remove extra whitespace
    description = " ".join(description.split())

    noise_patterns = [
        r"\s+\d{15,}$",  # Long trailing reference numbers
        r"\s+XX+\d+$",  # Masked card numbers
    ]

    for pattern in noise_patterns:
        description = re.sub(pattern, "", description)

    return description.strip()


def strip_page_furniture(text: str, extra_patterns: list[str] | None = None) -> str:
    """Remove page headers and footers that break line-item layouts."""
    for pattern in PAGE_FURNITURE_PATTERNS + (extra_patterns or []):
        text = re.sub(pattern, "", text)
    return text


def is_likely_payment(description: str) -> bool:
    """
    Check if a line is a repayment of the card rather than spending.

    These are filtered out because they represent transfers, not spending.
    """
    description_lower = description.lower()

    payment_indicators = [
        "payment received",
        "payid payment",
        "thankyou",
        "thank you",
        "bpay payments",
    ]

    return any(indicator in description_lower for indicator in payment_indicators)


def log_parse_result(result: ParseResult, parser_name: str) -> None:
    """
    Log parsing results for debugging.

    Args:
        result: The parse result
        parser_name: Name of the parser
    """
    logger.info(
        f"{parser_name}: Parsed {len(result.transactions)} transactions "
        f"(processed {result.total_rows_processed}, "
        f"skipped {result.rows_skipped}, "
        f"payments {result.payments_filtered})"
    )

    if result.warnings:
        for warning in result.warnings[:5]:  # Log first 5 warnings
            logger.debug(f"{parser_name}: {warning}")
