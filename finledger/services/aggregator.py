"""Monthly aggregation of the transaction and income ledger."""

import logging
from collections import defaultdict
from decimal import Decimal

from finledger.db.sqlite import Database
from finledger.models import IncomeRecord, MonthlySummary, Transaction
from finledger.parsers.validation import CENTS

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def month_key(value) -> str:
    return value.strftime("%Y-%m")


def aggregate(transactions: list[Transaction], income: list[IncomeRecord]) -> list[MonthlySummary]:
    """
    Fold the ledger into one summary per calendar month, sorted by month.

    Expenses are the negated sum of transaction amounts, so refunds offset
    spend within their month. Income is net pay, booked against the end of
    the pay period (or the pay date when no period was printed).

    Pure: the output depends only on the inputs.
    """
    expenses: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)
    breakdown: dict[str, dict[str, Decimal]] = defaultdict(lambda: defaultdict(lambda: ZERO))
    income_by_month: dict[str, Decimal] = defaultdict(lambda: ZERO)

    for txn in transactions:
        month = month_key(txn.date)
        expenses[month] -= txn.amount
        counts[month] += 1
        breakdown[month][txn.category] -= txn.amount

    for record in income:
        month = month_key(record.pay_period_end or record.pay_date)
        income_by_month[month] += record.net_pay

    summaries = []
    for month in sorted(set(expenses) | set(income_by_month)):
        total_income = income_by_month[month].quantize(CENTS)
        total_expenses = expenses[month].quantize(CENTS)
        net_savings = total_income - total_expenses
        savings_rate = (net_savings / total_income * 100).quantize(CENTS) if total_income > 0 else ZERO

        summaries.append(
            MonthlySummary(
                month=month,
                total_income=total_income,
                total_expenses=total_expenses,
                net_savings=net_savings,
                savings_rate=savings_rate,
                transaction_count=counts[month],
                category_breakdown={
                    code: amount.quantize(CENTS) for code, amount in sorted(breakdown[month].items())
                },
            )
        )

    return summaries


def regenerate_monthly_summaries(db: Database) -> list[MonthlySummary]:
    """Recompute every summary from the ledger, replacing the stored ones atomically."""
    summaries = aggregate(db.get_all_transactions(), db.get_all_income())
    db.replace_monthly_summaries(summaries)
    logger.info(f"Regenerated {len(summaries)} monthly summaries")
    return summaries
