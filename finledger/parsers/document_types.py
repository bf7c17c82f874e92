"""Pydantic models for extractor output and the ingestion result envelope."""

from datetime import date
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from finledger.models import DocumentKind, IngestionErrorKind


class DraftTransaction(BaseModel):
    """An extracted, not-yet-persisted transaction candidate."""

    date: date
    description: str = Field(min_length=1)
    amount: Decimal  # Negative for expenses, positive for credits
    raw_category_hint: str | None = None
    cardholder: str | None = None


class StatementExtraction(BaseModel):
    """Line items pulled from a card statement."""

    kind: Literal["statement"] = "statement"
    source: DocumentKind
    transactions: list[DraftTransaction] = Field(default_factory=list)
    balance: Decimal | None = None
    payment: Decimal | None = None

    @property
    def confidence(self) -> int:
        """Comparable score used by the generic fallback."""
        return len(self.transactions)

    @property
    def total_expenses(self) -> Decimal:
        return -sum((t.amount for t in self.transactions), Decimal("0"))


class PayslipExtraction(BaseModel):
    """Figures pulled from a payslip."""

    kind: Literal["payslip"] = "payslip"
    source: DocumentKind = DocumentKind.PAYSLIP
    employee_name: str | None = None
    employee_id: str | None = None
    pay_date: date | None = None
    pay_period_start: date | None = None
    pay_period_end: date | None = None
    gross_pay: Decimal = Decimal("0")
    net_pay: Decimal = Decimal("0")
    base_pay: Decimal = Decimal("0")
    overtime: Decimal = Decimal("0")
    allowances: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    superannuation: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")

    @property
    def total_earnings(self) -> Decimal:
        return self.base_pay + self.overtime + self.allowances

    @property
    def total_tax(self) -> Decimal:
        return self.tax + self.superannuation + self.total_deductions

    @property
    def has_gross_pay(self) -> bool:
        return self.gross_pay > 0

    @property
    def effective_pay_date(self) -> date | None:
        """Date the income is booked against: end of the pay period, else the printed pay date."""
        return self.pay_period_end or self.pay_date


Extraction = Annotated[Union[StatementExtraction, PayslipExtraction], Field(discriminator="kind")]


class IngestionSuccess(BaseModel):
    """A file whose text yielded recognizable records."""

    status: Literal["success"] = "success"
    file_name: str
    kind: DocumentKind
    extraction: Extraction
    attempts: int = 1

    @property
    def draft_records(self) -> list[DraftTransaction] | PayslipExtraction:
        if isinstance(self.extraction, StatementExtraction):
            return self.extraction.transactions
        return self.extraction


class IngestionFailure(BaseModel):
    """A file that could not be ingested; never raised, always returned."""

    status: Literal["failure"] = "failure"
    file_name: str
    kind: DocumentKind
    error_kind: IngestionErrorKind
    message: str
    attempts: int = 0


IngestionResult = Annotated[Union[IngestionSuccess, IngestionFailure], Field(discriminator="status")]
