"""Extractor for payslips."""

import logging
import re
from decimal import Decimal

from finledger.parsers.document_types import PayslipExtraction
from finledger.parsers.validation import parse_amount_safe, parse_day_month_year

logger = logging.getLogger("finledger.parsers")

AMOUNT = r"([\d,]+\.?\d{0,2})"

PATTERNS = {
    # "01.06.2025 to 30.06.2025"
    "pay_period": re.compile(r"(\d{1,2}\.\d{1,2}\.\d{4})\s+to\s+(\d{1,2}\.\d{1,2}\.\d{4})", re.IGNORECASE),
    # "Total Gross   9,715.99"
    "gross_pay": re.compile(rf"Total\s+Gross\s+{AMOUNT}", re.IGNORECASE),
    # "Net Pay   7,031.99"
    "net_pay": re.compile(rf"Net\s+Pay\s+{AMOUNT}", re.IGNORECASE),
    # "Tax   2,184.00-" or "Full Income tax   2,184.00-"
    "tax": re.compile(rf"(?<![.\w])(?:Full\s+Income\s+tax|Tax)\s+{AMOUNT}", re.IGNORECASE),
    # First super fund line is the employer contribution
    "superannuation": re.compile(rf"AustralianSuperMember\s+No:\s+\d+\s+{AMOUNT}", re.IGNORECASE),
    "employee_name": re.compile(r"Name:\s*([A-Za-z ]+)", re.IGNORECASE),
    "employee_id": re.compile(r"Personnel\s+Number:\s*(\d+)", re.IGNORECASE),
    "pay_date": re.compile(r"Pay\s+Date:\s*(\d{1,2}\.\d{1,2}\.\d{4})", re.IGNORECASE),
    "base_pay": re.compile(rf"Base\s+Salary\s+{AMOUNT}", re.IGNORECASE),
    "overtime": re.compile(rf"Overtime.*?{AMOUNT}", re.IGNORECASE),
    "allowances": re.compile(rf"Allowance.*?{AMOUNT}", re.IGNORECASE),
    "total_deductions": re.compile(rf"Deductions?\s+Bef\.Tax\s+{AMOUNT}", re.IGNORECASE),
}

AMOUNT_FIELDS = (
    "gross_pay",
    "net_pay",
    "base_pay",
    "overtime",
    "allowances",
    "tax",
    "superannuation",
    "total_deductions",
)


def extract_payslip(text: str) -> PayslipExtraction:
    """
    Extract pay figures from a payslip.

    Missing figures default to zero; a payslip without a gross pay figure is
    still returned and left for the dispatcher to reject.
    """
    values: dict = {}

    for name in AMOUNT_FIELDS:
        values[name] = _amount(PATTERNS[name].search(text))

    period = PATTERNS["pay_period"].search(text)
    if period:
        values["pay_period_start"] = parse_day_month_year(period.group(1))
        values["pay_period_end"] = parse_day_month_year(period.group(2))

    pay_date = PATTERNS["pay_date"].search(text)
    if pay_date:
        values["pay_date"] = parse_day_month_year(pay_date.group(1))

    name = PATTERNS["employee_name"].search(text)
    if name:
        values["employee_name"] = name.group(1).strip()

    employee_id = PATTERNS["employee_id"].search(text)
    if employee_id:
        values["employee_id"] = employee_id.group(1).strip()

    payslip = PayslipExtraction(**values)

    period_text = (
        f"{payslip.pay_period_start} to {payslip.pay_period_end}" if payslip.pay_period_start else "Unknown"
    )
    logger.info(
        f"Payslip: employee {payslip.employee_name or 'Unknown'}, period {period_text}, "
        f"gross ${payslip.gross_pay:.2f}, net ${payslip.net_pay:.2f}, "
        f"tax ${payslip.tax:.2f}, super ${payslip.superannuation:.2f}"
    )
    for issue in validate_payslip(payslip):
        logger.warning(f"Payslip: {issue}")

    return payslip


def validate_payslip(payslip: PayslipExtraction) -> list[str]:
    """Return a list of consistency problems; empty when the payslip looks sound."""
    issues = []

    if not payslip.pay_period_start or not payslip.pay_period_end:
        issues.append("Pay period not found")

    if payslip.gross_pay <= 0:
        issues.append("Invalid gross pay amount")

    if payslip.net_pay <= 0:
        issues.append("Invalid net pay amount")

    if payslip.gross_pay < payslip.net_pay:
        issues.append("Net pay cannot be greater than gross pay")

    return issues


def _amount(match: re.Match | None) -> Decimal:
    if not match:
        return Decimal("0")
    amount, ok = parse_amount_safe(match.group(1))
    return amount if ok else Decimal("0")
