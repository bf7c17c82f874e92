"""Processed-file bookkeeping for idempotent re-runs."""

import logging
from datetime import datetime

from finledger.db.sqlite import Database
from finledger.models import DocumentKind, ProcessedFileRecord

logger = logging.getLogger(__name__)


class IngestionTracker:
    """Tracks which files have already been absorbed into the ledger."""

    def __init__(self, db: Database):
        self.db = db

    def is_processed(self, file_name: str) -> bool:
        return self.db.is_file_processed(file_name)

    def mark_processed(self, file_name: str, kind: DocumentKind, processed_at: datetime | None = None) -> None:
        """Record a file as processed. Joins the caller's database transaction if one is open."""
        self.db.mark_file_processed(file_name, kind, processed_at or datetime.now())

    def remove(self, file_name: str) -> bool:
        """Forget a file, e.g. after it was deleted from the uploads folder."""
        removed = self.db.remove_processed_file(file_name)
        if removed:
            logger.info(f"Removed processed record for {file_name}")
        return removed

    def clear_all(self) -> int:
        count = self.db.clear_processed_files()
        logger.info(f"Cleared {count} processed file records")
        return count

    def list_processed(self) -> list[ProcessedFileRecord]:
        return self.db.get_processed_files()
