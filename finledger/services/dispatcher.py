"""Document classification and extraction dispatch."""

import errno
import logging
import time
from collections.abc import Callable
from pathlib import Path

from finledger.config import settings
from finledger.errors import MalformedDocumentError, OversizedOrEmptyFileError, TransientIOError
from finledger.models import DocumentKind, IngestionErrorKind, RawDocument
from finledger.parsers import pdf_text
from finledger.parsers.amex_pdf import extract_amex_statement
from finledger.parsers.citi_pdf import extract_citi_statement
from finledger.parsers.document_types import (
    IngestionFailure,
    IngestionResult,
    IngestionSuccess,
    PayslipExtraction,
    StatementExtraction,
)
from finledger.parsers.payslip_pdf import extract_payslip
from finledger.parsers.validation import validate_file_size

logger = logging.getLogger(__name__)

TextExtractor = Callable[[Path], str]

# Checked in order against the lower-cased file name
KIND_MARKERS: list[tuple[str, DocumentKind]] = [
    ("amex", DocumentKind.AMEX),
    ("citi", DocumentKind.CITI),
    ("payslip", DocumentKind.PAYSLIP),
]

TRANSIENT_ERRNOS = {errno.EBUSY, errno.EMFILE, errno.ENFILE, errno.EAGAIN}
TRANSIENT_MARKERS = ("EBUSY", "EMFILE", "ENFILE", "EAGAIN")


def classify(file_name: str) -> DocumentKind:
    """Determine the document family from its file name."""
    name = file_name.lower()
    for marker, kind in KIND_MARKERS:
        if marker in name:
            return kind
    return DocumentKind.UNKNOWN


def is_retryable_error(error: BaseException) -> bool:
    """Busy, locked and too-many-handles failures are worth another attempt."""
    if isinstance(error, TransientIOError):
        return True
    if isinstance(error, OSError) and error.errno in TRANSIENT_ERRNOS:
        return True
    message = str(error)
    return any(marker in message for marker in TRANSIENT_MARKERS)


def ingest(
    file_path: Path,
    extract_text: TextExtractor = pdf_text.extract_text,
    sleep: Callable[[float], None] = time.sleep,
    default_year: int | None = None,
) -> IngestionResult:
    """
    Classify, read and extract one document.

    Never raises: every outcome is reported in the returned envelope.
    Extraction is retried on transient I/O errors with a linear backoff
    (attempt index x retry_backoff_ms) bounded by max_attempts and the
    per-file retry budget.
    """
    file_path = Path(file_path)
    file_name = file_path.name
    kind = classify(file_name)

    def failure(error_kind: IngestionErrorKind, message: str, attempts: int = 0) -> IngestionFailure:
        logger.warning(f"{file_name}: {error_kind.value}: {message}")
        return IngestionFailure(
            file_name=file_name, kind=kind, error_kind=error_kind, message=message, attempts=attempts
        )

    try:
        document = RawDocument(file_path=file_path, file_name=file_name, byte_size=file_path.stat().st_size)
        validate_file_size(document.byte_size, settings.max_file_size_bytes)
    except FileNotFoundError:
        return failure(IngestionErrorKind.IO_ERROR, "File not found")
    except OversizedOrEmptyFileError as e:
        return failure(IngestionErrorKind.OVERSIZED_OR_EMPTY_FILE, str(e))
    except OSError as e:
        return failure(IngestionErrorKind.IO_ERROR, str(e))

    attempts = 0
    waited_ms = 0
    while True:
        attempts += 1
        try:
            document.extracted_text = extract_text(file_path) or ""
            break
        except Exception as e:
            if not is_retryable_error(e):
                if isinstance(e, OSError):
                    return failure(IngestionErrorKind.IO_ERROR, str(e), attempts)
                return failure(IngestionErrorKind.MALFORMED_DOCUMENT, f"Unreadable PDF: {e}", attempts)

            delay_ms = attempts * settings.retry_backoff_ms
            if attempts >= settings.max_attempts or waited_ms + delay_ms > settings.retry_budget_ms:
                return failure(
                    IngestionErrorKind.TRANSIENT_IO, f"Gave up after {attempts} attempts: {e}", attempts
                )

            logger.info(f"{file_name}: transient error on attempt {attempts} ({e}), retrying in {delay_ms}ms")
            sleep(delay_ms / 1000)
            waited_ms += delay_ms

    if not document.extracted_text.strip():
        return failure(IngestionErrorKind.MALFORMED_DOCUMENT, "No text could be extracted", attempts)

    try:
        extraction = _extract(kind, document.extracted_text, default_year)
        _check_extraction(extraction)
    except MalformedDocumentError as e:
        return failure(IngestionErrorKind.MALFORMED_DOCUMENT, str(e), attempts)
    except Exception as e:
        logger.exception(f"{file_name}: extractor crashed")
        return failure(IngestionErrorKind.MALFORMED_DOCUMENT, f"Extraction failed: {e}", attempts)

    logger.info(f"{file_name}: extracted as {extraction.source.value} after {attempts} attempt(s)")
    return IngestionSuccess(file_name=file_name, kind=kind, extraction=extraction, attempts=attempts)


def _extract(kind: DocumentKind, text: str, default_year: int | None) -> StatementExtraction | PayslipExtraction:
    if kind == DocumentKind.AMEX:
        return extract_amex_statement(text, default_year)
    if kind == DocumentKind.CITI:
        return extract_citi_statement(text, default_year)
    if kind == DocumentKind.PAYSLIP:
        return extract_payslip(text)

    # Unknown: run each card extractor on its own and keep the strongest result.
    # Ties keep the first one tried.
    best: StatementExtraction | None = None
    for extractor in (extract_amex_statement, extract_citi_statement):
        candidate = extractor(text, default_year)
        logger.debug(f"Generic fallback: {candidate.source.value} found {candidate.confidence} transactions")
        if best is None or candidate.confidence > best.confidence:
            best = candidate
    return best


def _check_extraction(extraction: StatementExtraction | PayslipExtraction) -> None:
    if isinstance(extraction, StatementExtraction):
        if not extraction.transactions:
            raise MalformedDocumentError("No transactions found in statement")
    elif not extraction.has_gross_pay:
        raise MalformedDocumentError("No gross pay found in payslip")
    elif extraction.effective_pay_date is None:
        raise MalformedDocumentError("No pay date or pay period found in payslip")
