"""Tests for the American Express statement extractor."""

from datetime import date
from decimal import Decimal

from finledger.models import DocumentKind
from finledger.parsers.amex_pdf import extract_amex_statement
from finledger.tests.sample_documents import AMEX_SIMPLE, AMEX_STATEMENT, AMEX_YEAR_BOUNDARY


class TestAmexExtraction:
    """Test line item extraction from Amex text layers."""

    def test_extracts_all_line_items(self):
        extraction = extract_amex_statement(AMEX_STATEMENT)

        assert extraction.source == DocumentKind.AMEX
        assert [t.description for t in extraction.transactions] == [
            "SHELL COLES EXPRESS NEWTOWN",
            "WOOLWORTHS 1234 SYDNEY",
            "REFUND DAVID JONES",
            "NETFLIX.COM",
        ]

    def test_charges_are_negative(self):
        """Amex prints charges positive; they become expenses."""
        extraction = extract_amex_statement(AMEX_STATEMENT)
        amounts = [t.amount for t in extraction.transactions]

        assert amounts[0] == Decimal("-62.10")
        assert amounts[1] == Decimal("-120.00")
        assert amounts[3] == Decimal("-22.99")

    def test_credit_marker_yields_positive_amount(self):
        extraction = extract_amex_statement(AMEX_STATEMENT)
        refund = extraction.transactions[2]

        assert refund.amount == Decimal("30.00")

    def test_payments_section_is_ignored(self):
        """Card repayments are transfers, not spending."""
        extraction = extract_amex_statement(AMEX_STATEMENT)
        descriptions = " ".join(t.description for t in extraction.transactions)

        assert "PAYMENT RECEIVED" not in descriptions
        assert all(t.amount != Decimal("1000.00") for t in extraction.transactions)
        assert all(t.amount != Decimal("-500.00") for t in extraction.transactions)

    def test_assigns_cardholders(self):
        extraction = extract_amex_statement(AMEX_STATEMENT)

        assert extraction.transactions[0].cardholder == "JANE DOE"
        assert extraction.transactions[3].cardholder == "JOHN DOE"

    def test_dates_use_statement_year(self):
        extraction = extract_amex_statement(AMEX_STATEMENT)

        assert extraction.transactions[0].date == date(2025, 3, 20)
        assert extraction.transactions[1].date == date(2025, 4, 3)

    def test_extracts_closing_balance(self):
        extraction = extract_amex_statement(AMEX_STATEMENT)

        assert extraction.balance == Decimal("1234.56")
        assert extraction.payment is None

    def test_confidence_counts_transactions(self):
        assert extract_amex_statement(AMEX_SIMPLE).confidence == 2


class TestAmexYearBoundary:
    """Test statements spanning December to January."""

    def test_december_items_belong_to_prior_year(self):
        extraction = extract_amex_statement(AMEX_YEAR_BOUNDARY)

        assert [t.date for t in extraction.transactions] == [date(2024, 12, 20), date(2025, 1, 5)]
        assert extraction.transactions[1].amount == Decimal("-42.35")


class TestAmexEdgeCases:
    """Test text the extractor should not choke on."""

    def test_empty_text(self):
        extraction = extract_amex_statement("")

        assert extraction.transactions == []
        assert extraction.balance is None

    def test_missing_period_uses_default_year(self):
        text = "New Transactions for:JANE DOE\nApril 3\nWOOLWORTHS\n120.00\n"
        extraction = extract_amex_statement(text, default_year=2023)

        assert extraction.transactions[0].date == date(2023, 4, 3)

    def test_date_without_amount_is_skipped(self):
        text = "From March 18 to April 17, 2025\nNew Transactions for:JANE DOE\nApril 3\nWOOLWORTHS\n"
        assert extract_amex_statement(text).transactions == []
