"""Batch ingestion of statement folders into the ledger."""

import logging
import sqlite3
import time
from collections.abc import Callable
from pathlib import Path

from finledger.config import settings
from finledger.db.sqlite import Database
from finledger.models import FileError, FolderIngestionReport, IncomeRecord, IngestionErrorKind, Transaction
from finledger.parsers import pdf_text
from finledger.parsers.document_types import IngestionFailure, IngestionSuccess, StatementExtraction
from finledger.services.aggregator import regenerate_monthly_summaries
from finledger.services.categorizer import Categorizer, RuleSet, categorize
from finledger.services.dedup import compute_income_hash, compute_transaction_hash
from finledger.services.dispatcher import TextExtractor, ingest
from finledger.services.tracker import IngestionTracker

logger = logging.getLogger(__name__)


def list_statement_files(uploads_path: Path) -> list[tuple[str, Path]]:
    """Return (folder, path) for every PDF in the statement folders, sorted by name."""
    files = []
    for folder in settings.statement_folders:
        folder_path = uploads_path / folder
        if not folder_path.is_dir():
            logger.debug(f"Statement folder missing: {folder_path}")
            continue
        pdfs = sorted(p for p in folder_path.iterdir() if p.is_file() and p.suffix.lower() == ".pdf")
        files.extend((folder, p) for p in pdfs)
    return files


def ingest_folder(
    db: Database,
    uploads_path: Path | None = None,
    force_refresh: bool = False,
    extract_text: TextExtractor = pdf_text.extract_text,
    sleep: Callable[[float], None] = time.sleep,
    default_year: int | None = None,
) -> FolderIngestionReport:
    """
    Ingest every statement under the uploads folder.

    Files are processed one at a time. Each file's rows and its processed
    record are committed together, so a failure leaves earlier files intact
    and contributes nothing from the failing file. Failures are collected in
    the report instead of aborting the batch.
    """
    uploads_path = uploads_path or settings.uploads_path
    tracker = IngestionTracker(db)
    categorizer = Categorizer(db)
    report = FolderIngestionReport()

    files = list_statement_files(uploads_path)
    logger.info(f"Found {len(files)} statement files under {uploads_path} (force_refresh={force_refresh})")

    _forget_deleted_files(tracker, {path.name for _, path in files})

    for folder, path in files:
        if not force_refresh and tracker.is_processed(path.name):
            report.skipped.append(path.name)
            continue

        result = ingest(path, extract_text=extract_text, sleep=sleep, default_year=default_year)
        if isinstance(result, IngestionFailure):
            report.errors.append(
                FileError(file_name=path.name, folder=folder, error_kind=result.error_kind, message=result.message)
            )
            continue

        try:
            # One snapshot per file: rule edits never apply halfway through a document
            rule_set = categorizer.reload()
            with db.transaction():
                added, skipped, income_added = _persist(db, result, rule_set)
                tracker.mark_processed(path.name, result.extraction.source)
        except (sqlite3.Error, ValueError) as e:
            logger.error(f"{path.name}: rolled back: {e}")
            report.errors.append(
                FileError(
                    file_name=path.name,
                    folder=folder,
                    error_kind=IngestionErrorKind.PERSISTENCE_ERROR,
                    message=str(e),
                )
            )
            continue

        report.parsed.append(path.name)
        report.transactions_added += added
        report.transactions_skipped += skipped
        report.income_added += income_added
        logger.info(f"{path.name}: {added} transactions added, {skipped} duplicates, {income_added} income records")

    if report.parsed:
        report.summaries = regenerate_monthly_summaries(db)

    logger.info(report.message)
    return report


def hard_refresh(
    db: Database,
    uploads_path: Path | None = None,
    extract_text: TextExtractor = pdf_text.extract_text,
    sleep: Callable[[float], None] = time.sleep,
    default_year: int | None = None,
) -> FolderIngestionReport:
    """
    Wipe derived ledger data and re-ingest everything from scratch.

    Transactions, income, summaries and processed records are cleared in one
    database transaction. Rules and overrides are kept, so manual
    recategorizations come back with the re-ingested rows.
    """
    with db.transaction():
        txn_count = db.delete_all_transactions()
        income_count = db.delete_all_income()
        db.delete_monthly_summaries()
        IngestionTracker(db).clear_all()
    logger.info(f"Hard refresh: cleared {txn_count} transactions and {income_count} income records")

    report = ingest_folder(
        db,
        uploads_path,
        force_refresh=True,
        extract_text=extract_text,
        sleep=sleep,
        default_year=default_year,
    )
    if not report.parsed:
        # Nothing re-ingested; keep summaries consistent with the now empty ledger
        report.summaries = regenerate_monthly_summaries(db)
    return report


def _persist(db: Database, result: IngestionSuccess, rule_set: RuleSet) -> tuple[int, int, int]:
    """Write one file's records. Returns (transactions added, duplicates skipped, income added)."""
    extraction = result.extraction

    if isinstance(extraction, StatementExtraction):
        transactions = []
        for draft in extraction.transactions:
            content_hash = compute_transaction_hash(draft.date, draft.description, draft.amount)
            transactions.append(
                Transaction(
                    date=draft.date,
                    description=draft.description,
                    amount=draft.amount,
                    category=categorize(draft.description, rule_set, content_hash),
                    account_type=extraction.source,
                    source_file_name=result.file_name,
                    content_hash=content_hash,
                )
            )
        added, skipped = db.add_transactions_batch(transactions)
        return added, skipped, 0

    pay_date = extraction.pay_date or extraction.effective_pay_date
    record = IncomeRecord(
        pay_date=pay_date,
        pay_period_start=extraction.pay_period_start,
        pay_period_end=extraction.pay_period_end,
        gross_pay=extraction.gross_pay,
        net_pay=extraction.net_pay,
        tax=extraction.tax,
        superannuation=extraction.superannuation,
        source_file_name=result.file_name,
        income_hash=compute_income_hash(
            extraction.pay_period_start, extraction.pay_period_end, extraction.gross_pay, pay_date
        ),
    )
    if db.add_income(record):
        return 0, 0, 1
    logger.info(f"{result.file_name}: payslip already recorded for this period")
    return 0, 0, 0


def _forget_deleted_files(tracker: IngestionTracker, present: set[str]) -> None:
    for record in tracker.list_processed():
        if record.file_name not in present:
            tracker.remove(record.file_name)
