"""Tests for processed-file tracking."""

from datetime import datetime

from finledger.models import DocumentKind
from finledger.services.tracker import IngestionTracker


class TestIngestionTracker:
    """Test the processed-file ledger."""

    def test_mark_and_check(self, db):
        tracker = IngestionTracker(db)

        assert tracker.is_processed("amex_april.pdf") is False
        tracker.mark_processed("amex_april.pdf", DocumentKind.AMEX)
        assert tracker.is_processed("amex_april.pdf") is True

    def test_marking_twice_keeps_one_record(self, db):
        tracker = IngestionTracker(db)
        tracker.mark_processed("amex_april.pdf", DocumentKind.AMEX, datetime(2025, 5, 1, 9, 0))
        tracker.mark_processed("amex_april.pdf", DocumentKind.AMEX, datetime(2025, 5, 2, 9, 0))

        records = tracker.list_processed()

        assert len(records) == 1
        assert records[0].processed_at == datetime(2025, 5, 2, 9, 0)

    def test_list_is_most_recent_first(self, db):
        tracker = IngestionTracker(db)
        tracker.mark_processed("citi_march.pdf", DocumentKind.CITI, datetime(2025, 4, 1))
        tracker.mark_processed("payslip_june.pdf", DocumentKind.PAYSLIP, datetime(2025, 7, 1))

        records = tracker.list_processed()

        assert [r.file_name for r in records] == ["payslip_june.pdf", "citi_march.pdf"]
        assert records[0].file_type == DocumentKind.PAYSLIP

    def test_remove(self, db):
        tracker = IngestionTracker(db)
        tracker.mark_processed("amex_april.pdf", DocumentKind.AMEX)

        assert tracker.remove("amex_april.pdf") is True
        assert tracker.remove("amex_april.pdf") is False
        assert tracker.is_processed("amex_april.pdf") is False

    def test_clear_all(self, db):
        tracker = IngestionTracker(db)
        tracker.mark_processed("a_amex.pdf", DocumentKind.AMEX)
        tracker.mark_processed("b_citi.pdf", DocumentKind.CITI)

        assert tracker.clear_all() == 2
        assert tracker.list_processed() == []

    def test_marking_joins_open_transaction(self, db):
        tracker = IngestionTracker(db)

        try:
            with db.transaction():
                tracker.mark_processed("amex_april.pdf", DocumentKind.AMEX)
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        assert tracker.is_processed("amex_april.pdf") is False
