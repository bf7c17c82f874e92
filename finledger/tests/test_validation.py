"""Tests for the parser validation module."""

from datetime import date
from decimal import Decimal

import pytest

from finledger.errors import OversizedOrEmptyFileError
from finledger.parsers.validation import (
    ParseResult,
    build_date,
    clean_amount_string,
    is_likely_payment,
    log_parse_result,
    month_number,
    normalize_description,
    parse_amount_safe,
    parse_day_month_year,
    strip_page_furniture,
    validate_amount,
    validate_date,
    validate_file_size,
)


class TestValidateFileSize:
    """Test the size gate applied before extraction."""

    def test_rejects_empty_file(self):
        """Should reject a zero-byte file."""
        with pytest.raises(OversizedOrEmptyFileError, match="empty"):
            validate_file_size(0, 1000)

    def test_rejects_oversized_file(self):
        """Should reject files above the maximum."""
        with pytest.raises(OversizedOrEmptyFileError, match="too large"):
            validate_file_size(1001, 1000)

    def test_accepts_file_at_limit(self):
        """A file exactly at the limit is accepted."""
        validate_file_size(1000, 1000)


class TestValidateAmount:
    """Test amount validation."""

    def test_accepts_normal_amounts(self):
        assert validate_amount(Decimal("100.00")) is True
        assert validate_amount(Decimal("-50.25")) is True
        assert validate_amount(Decimal("0")) is True

    def test_rejects_extreme_amounts(self):
        assert validate_amount(Decimal("2000000")) is False
        assert validate_amount(Decimal("-2000000")) is False

    def test_rejects_none_and_nan(self):
        assert validate_amount(None) is False
        assert validate_amount(Decimal("NaN")) is False


class TestDates:
    """Test date helpers."""

    def test_validate_date_bounds(self):
        assert validate_date(date(2025, 4, 1)) is True
        assert validate_date(date(1999, 12, 31)) is False
        assert validate_date(None) is False

    def test_build_date_rejects_impossible_day(self):
        """February 30th is not a date."""
        assert build_date(2025, 2, 30) is None
        assert build_date(2024, 2, 29) == date(2024, 2, 29)

    def test_parse_dotted_date(self):
        assert parse_day_month_year("01.06.2025") == date(2025, 6, 1)

    def test_parse_two_digit_year(self):
        """Two-digit years below 50 belong to this century."""
        assert parse_day_month_year("18/03/25") == date(2025, 3, 18)
        assert parse_day_month_year("18/03/99") == date(1999, 3, 18)

    def test_parse_garbage(self):
        assert parse_day_month_year("") is None
        assert parse_day_month_year("not a date") is None

    def test_month_number(self):
        assert month_number("April") == 4
        assert month_number("sep") == 9
        assert month_number("Foo") is None


class TestCleanAmountString:
    """Test amount string cleaning."""

    def test_removes_currency_and_commas(self):
        assert clean_amount_string("$1,234.56") == "1234.56"

    def test_handles_parentheses(self):
        assert clean_amount_string("(100.00)") == "-100.00"

    def test_handles_trailing_minus(self):
        """Payslips print deductions with a trailing minus."""
        assert clean_amount_string("2,184.00-") == "-2184.00"

    def test_empty_string(self):
        assert clean_amount_string("") == "0"


class TestParseAmountSafe:
    """Test safe amount parsing."""

    def test_parses_and_rounds_to_cents(self):
        assert parse_amount_safe("12.5") == (Decimal("12.50"), True)
        amount, ok = parse_amount_safe("1,068.76")
        assert ok is True
        assert amount == Decimal("1068.76")

    def test_returns_default_on_failure(self):
        assert parse_amount_safe("abc") == (Decimal("0"), False)
        assert parse_amount_safe("-") == (Decimal("0"), False)

    def test_rejects_out_of_bounds(self):
        _, ok = parse_amount_safe("5000000")
        assert ok is False


class TestDescriptions:
    """Test description helpers."""

    def test_collapses_whitespace(self):
        assert normalize_description("  SHELL   FUEL  ") == "SHELL FUEL"

    def test_strips_reference_numbers(self):
        assert normalize_description("UBER TRIP 5516000509235312149") == "UBER TRIP"

    def test_strip_page_furniture(self):
        text = "line one\nPage 2 of 3\nStatement of Account\nline two"
        cleaned = strip_page_furniture(text)
        assert "Page 2 of 3" not in cleaned
        assert "Statement of Account" not in cleaned
        assert "line two" in cleaned

    @pytest.mark.parametrize(
        "description",
        ["PAYMENT RECEIVED - THANK YOU", "PayID Payment", "Bpay Payments", "THANKYOU"],
    )
    def test_detects_payments(self, description):
        assert is_likely_payment(description) is True

    def test_spending_is_not_payment(self):
        assert is_likely_payment("WOOLWORTHS 1234") is False


class TestParseResult:
    """Test ParseResult bookkeeping."""

    def test_success_rate(self):
        result = ParseResult(transactions=[1, 2, 3], total_rows_processed=4)
        assert result.success_rate == 75.0

    def test_success_rate_without_rows(self):
        assert ParseResult(transactions=[]).success_rate == 0.0

    def test_log_reports_the_counters_extractors_fill(self, caplog):
        result = ParseResult(transactions=[1], total_rows_processed=3, rows_skipped=1, payments_filtered=1)

        with caplog.at_level("INFO", logger="finledger.parsers"):
            log_parse_result(result, "Citi PDF")

        assert "Citi PDF: Parsed 1 transactions (processed 3, skipped 1, payments 1)" in caplog.text
        assert "duplicates" not in caplog.text
