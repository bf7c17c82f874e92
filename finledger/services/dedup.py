"""Deduplication logic for finledger."""

import hashlib
from datetime import date
from decimal import Decimal


def compute_transaction_hash(txn_date: date, description: str, amount: Decimal) -> str:
    """
    Compute the content hash of a transaction.

    The hash covers (date, description, amount) only, so the same line item
    is recognised when a statement is re-ingested under a different file name.
    Manual category overrides are anchored to this value.
    """
    normalized = f"{txn_date.isoformat()}|{description.strip().lower()}|{amount:.2f}"
    return hashlib.sha256(normalized.encode()).hexdigest()


def compute_income_hash(
    period_start: date | None,
    period_end: date | None,
    gross_pay: Decimal,
    pay_date: date | None = None,
) -> str:
    """
    Compute the dedup key of a payslip: pay period plus gross pay.

    A payslip without a pay period is keyed by its pay date instead.
    """
    if period_start is None and period_end is None:
        period = f"paid|{pay_date.isoformat() if pay_date else ''}"
    else:
        start = period_start.isoformat() if period_start else ""
        end = period_end.isoformat() if period_end else ""
        period = f"{start}|{end}"
    normalized = f"{period}|{gross_pay:.2f}"
    return hashlib.sha256(normalized.encode()).hexdigest()
