"""Tests for the payslip extractor."""

from datetime import date
from decimal import Decimal

from finledger.parsers.document_types import PayslipExtraction
from finledger.parsers.payslip_pdf import extract_payslip, validate_payslip
from finledger.tests.sample_documents import PAYSLIP, PAYSLIP_WITHOUT_GROSS


class TestPayslipExtraction:
    """Test payslip field extraction."""

    def test_pay_figures(self):
        payslip = extract_payslip(PAYSLIP)

        assert payslip.gross_pay == Decimal("9715.99")
        assert payslip.net_pay == Decimal("7031.99")
        assert payslip.tax == Decimal("2184.00")
        assert payslip.superannuation == Decimal("1068.76")

    def test_earnings_breakdown(self):
        payslip = extract_payslip(PAYSLIP)

        assert payslip.base_pay == Decimal("9000.00")
        assert payslip.overtime == Decimal("500.00")
        assert payslip.allowances == Decimal("215.99")
        assert payslip.total_earnings == Decimal("9715.99")
        assert payslip.total_deductions == Decimal("500.00")
        assert payslip.total_tax == Decimal("3752.76")

    def test_dates(self):
        payslip = extract_payslip(PAYSLIP)

        assert payslip.pay_date == date(2025, 6, 30)
        assert payslip.pay_period_start == date(2025, 6, 1)
        assert payslip.pay_period_end == date(2025, 6, 30)
        assert payslip.effective_pay_date == date(2025, 6, 30)

    def test_employee_details(self):
        payslip = extract_payslip(PAYSLIP)

        assert payslip.employee_name == "Jane Doe"
        assert payslip.employee_id == "12345"

    def test_sound_payslip_has_no_issues(self):
        assert validate_payslip(extract_payslip(PAYSLIP)) == []


class TestIncompletePayslip:
    """Test payslips with missing figures."""

    def test_missing_gross_defaults_to_zero(self):
        payslip = extract_payslip(PAYSLIP_WITHOUT_GROSS)

        assert payslip.gross_pay == Decimal("0")
        assert payslip.has_gross_pay is False
        assert payslip.net_pay == Decimal("7031.99")

    def test_validation_reports_problems(self):
        issues = validate_payslip(extract_payslip(PAYSLIP_WITHOUT_GROSS))

        assert "Pay period not found" in issues
        assert "Invalid gross pay amount" in issues
        assert "Net pay cannot be greater than gross pay" in issues

    def test_effective_date_falls_back_to_pay_date(self):
        payslip = PayslipExtraction(gross_pay=Decimal("100"), pay_date=date(2025, 5, 15))

        assert payslip.effective_pay_date == date(2025, 5, 15)
