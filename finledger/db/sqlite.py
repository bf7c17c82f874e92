"""SQLite database operations for finledger."""

import json
import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from finledger.config import settings
from finledger.models import (
    CategoryOverride,
    CategoryRule,
    DocumentKind,
    IncomeRecord,
    MonthlySummary,
    ProcessedFileRecord,
    Transaction,
)

logger = logging.getLogger(__name__)

# Money is stored as TEXT so Decimal values round-trip exactly
SCHEMA = """
CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL,
    description TEXT NOT NULL,
    amount TEXT NOT NULL,
    category TEXT NOT NULL,
    account_type TEXT NOT NULL,
    source_file_name TEXT NOT NULL,
    content_hash TEXT NOT NULL UNIQUE,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(date);
CREATE INDEX IF NOT EXISTS idx_transactions_category ON transactions(category);

CREATE TABLE IF NOT EXISTS income (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    pay_date TEXT NOT NULL,
    pay_period_start TEXT,
    pay_period_end TEXT,
    gross_pay TEXT NOT NULL,
    net_pay TEXT NOT NULL,
    tax TEXT NOT NULL,
    superannuation TEXT NOT NULL,
    source_file_name TEXT NOT NULL,
    income_hash TEXT NOT NULL UNIQUE,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS monthly_summaries (
    month TEXT PRIMARY KEY,
    total_income TEXT NOT NULL,
    total_expenses TEXT NOT NULL,
    net_savings TEXT NOT NULL,
    savings_rate TEXT NOT NULL,
    transaction_count INTEGER NOT NULL,
    category_breakdown TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS parsed_files (
    file_name TEXT PRIMARY KEY,
    file_type TEXT NOT NULL,
    processed_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS category_rules (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    pattern TEXT NOT NULL,
    category TEXT NOT NULL,
    priority INTEGER NOT NULL DEFAULT 0,
    enabled INTEGER NOT NULL DEFAULT 1,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS category_overrides (
    content_hash TEXT PRIMARY KEY,
    original_category TEXT NOT NULL,
    override_category TEXT NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""

TRANSACTION_COLUMNS = "id, date, description, amount, category, account_type, source_file_name, content_hash"
INCOME_COLUMNS = (
    "id, pay_date, pay_period_start, pay_period_end, gross_pay, net_pay, "
    "tax, superannuation, source_file_name, income_hash"
)


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or settings.db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._active: sqlite3.Connection | None = None
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.executescript(SCHEMA)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection, joining the open transaction if there is one."""
        if self._active is not None:
            yield self._active
            return

        conn = self._connect()
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Group several repository calls into one atomic unit.

        Every repository method called inside the block shares the same
        connection; the block commits on exit and rolls back if it raises.
        Nested blocks join the outer transaction.
        """
        if self._active is not None:
            yield self._active
            return

        conn = self._connect()
        self._active = conn
        try:
            yield conn
            conn.commit()
        except BaseException:
            logger.debug("Rolling back database transaction")
            conn.rollback()
            raise
        finally:
            self._active = None
            conn.close()

    # Transactions

    def add_transaction(self, transaction: Transaction) -> bool:
        """Add a transaction. Returns True if added, False if duplicate."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO transactions (date, description, amount,
                category, account_type, source_file_name, content_hash)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    transaction.date.isoformat(),
                    transaction.description,
                    str(transaction.amount),
                    transaction.category,
                    transaction.account_type.value,
                    transaction.source_file_name,
                    transaction.content_hash,
                ),
            )
            return cursor.rowcount == 1

    def add_transactions_batch(self, transactions: list[Transaction]) -> tuple[int, int]:
        """Add multiple transactions. Returns (added_count, skipped_count)."""
        added = 0
        skipped = 0
        with self.transaction():
            for txn in transactions:
                if self.add_transaction(txn):
                    added += 1
                else:
                    skipped += 1
        return added, skipped

    def get_all_transactions(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        category: str | None = None,
    ) -> list[Transaction]:
        """Get transactions with optional filters, oldest first."""
        query = f"SELECT {TRANSACTION_COLUMNS} FROM transactions WHERE 1=1"
        params: list = []

        if start_date:
            query += " AND date >= ?"
            params.append(start_date.isoformat())
        if end_date:
            query += " AND date <= ?"
            params.append(end_date.isoformat())
        if category:
            query += " AND category = ?"
            params.append(category)

        query += " ORDER BY date, id"

        with self._get_connection() as conn:
            cursor = conn.execute(query, params)
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def get_transaction_by_id(self, transaction_id: int) -> Transaction | None:
        """Get a single transaction by ID."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT {TRANSACTION_COLUMNS} FROM transactions WHERE id = ?",
                (transaction_id,),
            )
            row = cursor.fetchone()
            return self._row_to_transaction(row) if row else None

    def update_transaction_category(self, transaction_id: int, category: str) -> None:
        """Update a transaction's category."""
        with self._get_connection() as conn:
            conn.execute("UPDATE transactions SET category = ? WHERE id = ?", (category, transaction_id))

    def update_transaction_categories(self, updates: list[tuple[int, str]]) -> None:
        """Apply (id, category) updates in one statement batch."""
        with self._get_connection() as conn:
            conn.executemany(
                "UPDATE transactions SET category = ? WHERE id = ?",
                [(category, transaction_id) for transaction_id, category in updates],
            )

    def update_category_by_hash(self, content_hash: str, category: str) -> int:
        """Set the category of every row with a content hash. Returns rows changed."""
        with self._get_connection() as conn:
            return conn.execute(
                "UPDATE transactions SET category = ? WHERE content_hash = ?",
                (category, content_hash),
            ).rowcount

    def get_transaction_count(self) -> int:
        """Get total number of transactions."""
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT COUNT(*) as count FROM transactions")
            return cursor.fetchone()["count"]

    def get_category_counts(self) -> dict[str, int]:
        """Get the number of transactions per category code."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT category, COUNT(*) as count FROM transactions GROUP BY category ORDER BY category"
            )
            return {row["category"]: row["count"] for row in cursor.fetchall()}

    def delete_all_transactions(self) -> int:
        """Delete every transaction. Returns the number of rows removed."""
        with self._get_connection() as conn:
            return conn.execute("DELETE FROM transactions").rowcount

    def restore_transactions(self, transactions: list[Transaction]) -> None:
        """Replace the ledger with the given rows, keeping their ids."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM transactions")
            conn.executemany(
                f"INSERT INTO transactions ({TRANSACTION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        txn.id,
                        txn.date.isoformat(),
                        txn.description,
                        str(txn.amount),
                        txn.category,
                        txn.account_type.value,
                        txn.source_file_name,
                        txn.content_hash,
                    )
                    for txn in transactions
                ],
            )

    # Income

    def add_income(self, record: IncomeRecord) -> bool:
        """Add an income record. Returns True if added, False if duplicate."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO income (pay_date, pay_period_start, pay_period_end,
                gross_pay, net_pay, tax, superannuation, source_file_name, income_hash)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.pay_date.isoformat(),
                    record.pay_period_start.isoformat() if record.pay_period_start else None,
                    record.pay_period_end.isoformat() if record.pay_period_end else None,
                    str(record.gross_pay),
                    str(record.net_pay),
                    str(record.tax),
                    str(record.superannuation),
                    record.source_file_name,
                    record.income_hash,
                ),
            )
            return cursor.rowcount == 1

    def get_all_income(self) -> list[IncomeRecord]:
        """Get all income records, oldest first."""
        with self._get_connection() as conn:
            cursor = conn.execute(f"SELECT {INCOME_COLUMNS} FROM income ORDER BY pay_date, id")
            return [self._row_to_income(row) for row in cursor.fetchall()]

    def delete_all_income(self) -> int:
        with self._get_connection() as conn:
            return conn.execute("DELETE FROM income").rowcount

    # Processed files

    def is_file_processed(self, file_name: str) -> bool:
        """Check if a file has already been absorbed into the ledger."""
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT 1 FROM parsed_files WHERE file_name = ?", (file_name,))
            return cursor.fetchone() is not None

    def mark_file_processed(self, file_name: str, file_type: DocumentKind, processed_at: datetime) -> None:
        """Record a processed file, replacing any earlier record with the same name."""
        with self._get_connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO parsed_files (file_name, file_type, processed_at) VALUES (?, ?, ?)",
                (file_name, file_type.value, processed_at.isoformat()),
            )

    def remove_processed_file(self, file_name: str) -> bool:
        with self._get_connection() as conn:
            return conn.execute("DELETE FROM parsed_files WHERE file_name = ?", (file_name,)).rowcount > 0

    def clear_processed_files(self) -> int:
        with self._get_connection() as conn:
            return conn.execute("DELETE FROM parsed_files").rowcount

    def get_processed_files(self) -> list[ProcessedFileRecord]:
        """Get all processed file records, most recent first."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT file_name, file_type, processed_at FROM parsed_files ORDER BY processed_at DESC, file_name"
            )
            return [
                ProcessedFileRecord(
                    file_name=row["file_name"],
                    file_type=DocumentKind(row["file_type"]),
                    processed_at=datetime.fromisoformat(row["processed_at"]),
                )
                for row in cursor.fetchall()
            ]

    # Category rules

    def add_rule(self, pattern: str, category: str, priority: int = 0, enabled: bool = True) -> CategoryRule:
        """Add a categorization rule and return it with its assigned id."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO category_rules (pattern, category, priority, enabled) VALUES (?, ?, ?, ?)",
                (pattern, category, priority, int(enabled)),
            )
            return CategoryRule(
                id=cursor.lastrowid, pattern=pattern, category=category, priority=priority, enabled=enabled
            )

    def get_rules(self, enabled_only: bool = False) -> list[CategoryRule]:
        """Get rules in evaluation order (priority desc, id asc)."""
        query = "SELECT id, pattern, category, priority, enabled FROM category_rules"
        if enabled_only:
            query += " WHERE enabled = 1"
        query += " ORDER BY priority DESC, id ASC"

        with self._get_connection() as conn:
            cursor = conn.execute(query)
            return [
                CategoryRule(
                    id=row["id"],
                    pattern=row["pattern"],
                    category=row["category"],
                    priority=row["priority"],
                    enabled=bool(row["enabled"]),
                )
                for row in cursor.fetchall()
            ]

    def update_rule_category(self, rule_id: int, category: str) -> None:
        with self._get_connection() as conn:
            conn.execute("UPDATE category_rules SET category = ? WHERE id = ?", (category, rule_id))

    def update_rule(self, rule_id: int, category: str, priority: int, enabled: bool) -> None:
        with self._get_connection() as conn:
            conn.execute(
                "UPDATE category_rules SET category = ?, priority = ?, enabled = ? WHERE id = ?",
                (category, priority, int(enabled), rule_id),
            )

    def delete_rule(self, rule_id: int) -> bool:
        with self._get_connection() as conn:
            return conn.execute("DELETE FROM category_rules WHERE id = ?", (rule_id,)).rowcount > 0

    def restore_rules(self, rules: list[CategoryRule]) -> None:
        """Replace the rule store with the given rules, keeping their ids."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM category_rules")
            conn.executemany(
                "INSERT INTO category_rules (id, pattern, category, priority, enabled) VALUES (?, ?, ?, ?, ?)",
                [(rule.id, rule.pattern, rule.category, rule.priority, int(rule.enabled)) for rule in rules],
            )

    # Category overrides

    def set_override(self, override: CategoryOverride) -> None:
        """Create or replace the override for a content hash."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO category_overrides (content_hash, original_category, override_category)
                VALUES (?, ?, ?)
                """,
                (override.content_hash, override.original_category, override.override_category),
            )

    def get_overrides(self) -> list[CategoryOverride]:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT content_hash, original_category, override_category FROM category_overrides "
                "ORDER BY content_hash"
            )
            return [
                CategoryOverride(
                    content_hash=row["content_hash"],
                    original_category=row["original_category"],
                    override_category=row["override_category"],
                )
                for row in cursor.fetchall()
            ]

    def update_override_categories(self, content_hash: str, original_category: str, override_category: str) -> None:
        with self._get_connection() as conn:
            conn.execute(
                "UPDATE category_overrides SET original_category = ?, override_category = ? WHERE content_hash = ?",
                (original_category, override_category, content_hash),
            )

    def delete_override(self, content_hash: str) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM category_overrides WHERE content_hash = ?", (content_hash,))
            return cursor.rowcount > 0

    def restore_overrides(self, overrides: list[CategoryOverride]) -> None:
        """Replace all overrides with the given ones."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM category_overrides")
            conn.executemany(
                "INSERT INTO category_overrides (content_hash, original_category, override_category) VALUES (?, ?, ?)",
                [(o.content_hash, o.original_category, o.override_category) for o in overrides],
            )

    # Monthly summaries

    def get_monthly_summaries(self) -> list[MonthlySummary]:
        """Get all monthly summaries ordered by month."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT month, total_income, total_expenses, net_savings, savings_rate,
                       transaction_count, category_breakdown
                FROM monthly_summaries ORDER BY month
                """
            )
            return [
                MonthlySummary(
                    month=row["month"],
                    total_income=Decimal(row["total_income"]),
                    total_expenses=Decimal(row["total_expenses"]),
                    net_savings=Decimal(row["net_savings"]),
                    savings_rate=Decimal(row["savings_rate"]),
                    transaction_count=row["transaction_count"],
                    category_breakdown={
                        code: Decimal(amount) for code, amount in json.loads(row["category_breakdown"]).items()
                    },
                )
                for row in cursor.fetchall()
            ]

    def delete_monthly_summaries(self) -> int:
        with self._get_connection() as conn:
            return conn.execute("DELETE FROM monthly_summaries").rowcount

    def replace_monthly_summaries(self, summaries: list[MonthlySummary]) -> None:
        """Delete every summary and insert the given ones in a single transaction."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM monthly_summaries")
            conn.executemany(
                """
                INSERT INTO monthly_summaries (month, total_income, total_expenses, net_savings,
                savings_rate, transaction_count, category_breakdown) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        summary.month,
                        str(summary.total_income),
                        str(summary.total_expenses),
                        str(summary.net_savings),
                        str(summary.savings_rate),
                        summary.transaction_count,
                        json.dumps(
                            {code: str(amount) for code, amount in summary.category_breakdown.items()},
                            sort_keys=True,
                        ),
                    )
                    for summary in summaries
                ],
            )

    def _row_to_transaction(self, row: sqlite3.Row) -> Transaction:
        """Convert a database row to a Transaction model."""
        return Transaction(
            id=row["id"],
            date=date.fromisoformat(row["date"]),
            description=row["description"],
            amount=Decimal(row["amount"]),
            category=row["category"],
            account_type=DocumentKind(row["account_type"]),
            source_file_name=row["source_file_name"],
            content_hash=row["content_hash"],
        )

    def _row_to_income(self, row: sqlite3.Row) -> IncomeRecord:
        """Convert a database row to an IncomeRecord model."""
        return IncomeRecord(
            id=row["id"],
            pay_date=date.fromisoformat(row["pay_date"]),
            pay_period_start=date.fromisoformat(row["pay_period_start"]) if row["pay_period_start"] else None,
            pay_period_end=date.fromisoformat(row["pay_period_end"]) if row["pay_period_end"] else None,
            gross_pay=Decimal(row["gross_pay"]),
            net_pay=Decimal(row["net_pay"]),
            tax=Decimal(row["tax"]),
            superannuation=Decimal(row["superannuation"]),
            source_file_name=row["source_file_name"],
            income_hash=row["income_hash"],
        )
