"""Data models for finledger."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class DocumentKind(str, Enum):
    """Supported document families."""

    AMEX = "amex"
    CITI = "citi"
    PAYSLIP = "payslip"
    UNKNOWN = "unknown"


class IngestionErrorKind(str, Enum):
    """Why a single file could not be ingested."""

    TRANSIENT_IO = "transient_io"
    IO_ERROR = "io_error"
    MALFORMED_DOCUMENT = "malformed_document"
    OVERSIZED_OR_EMPTY_FILE = "oversized_or_empty_file"
    PERSISTENCE_ERROR = "persistence_error"


class RawDocument(BaseModel):
    """A document read from disk, before extraction."""

    file_path: Path
    file_name: str
    byte_size: int
    extracted_text: str = ""


class Transaction(BaseModel):
    """A persisted card transaction."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    date: date
    description: str
    amount: Decimal  # Negative for expenses, positive for credits/refunds
    category: str
    account_type: DocumentKind
    source_file_name: str
    content_hash: str  # SHA256(date + description + amount)


class IncomeRecord(BaseModel):
    """A persisted payslip."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    pay_date: date
    pay_period_start: date | None = None
    pay_period_end: date | None = None
    gross_pay: Decimal
    net_pay: Decimal
    tax: Decimal = Decimal("0")
    superannuation: Decimal = Decimal("0")
    source_file_name: str
    income_hash: str


class CategoryRule(BaseModel):
    """A user-defined categorization rule."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int | None = None
    pattern: str  # Case-insensitive substring
    category: str
    priority: int = 0  # Higher is evaluated first
    enabled: bool = True

    @property
    def sort_key(self) -> tuple[int, int]:
        """Total order: priority descending, then id ascending."""
        return (-self.priority, self.id if self.id is not None else 0)


class CategoryOverride(BaseModel):
    """A manual recategorization anchored to a transaction's content hash."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    content_hash: str
    original_category: str
    override_category: str


class ProcessedFileRecord(BaseModel):
    """Record of a file absorbed into the ledger."""

    file_name: str
    file_type: DocumentKind
    processed_at: datetime


class MonthlySummary(BaseModel):
    """Derived per-month totals. Never edited by hand."""

    month: str  # YYYY-MM
    total_income: Decimal = Decimal("0.00")
    total_expenses: Decimal = Decimal("0.00")
    net_savings: Decimal = Decimal("0.00")
    savings_rate: Decimal = Decimal("0.00")
    transaction_count: int = 0
    category_breakdown: dict[str, Decimal] = Field(default_factory=dict)


class FileError(BaseModel):
    """A per-file failure reported by a batch run."""

    file_name: str
    folder: str
    error_kind: IngestionErrorKind
    message: str


class FolderIngestionReport(BaseModel):
    """Per-file breakdown of a batch ingestion run."""

    parsed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    errors: list[FileError] = Field(default_factory=list)
    transactions_added: int = 0
    transactions_skipped: int = 0  # Duplicates
    income_added: int = 0
    summaries: list[MonthlySummary] = Field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            f"{len(self.parsed)} new files parsed, {len(self.skipped)} files skipped "
            f"(already processed), {len(self.errors)} errors"
        )
