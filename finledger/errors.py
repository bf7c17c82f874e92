"""Exception types raised across the ingestion pipeline."""


class FinledgerError(Exception):
    """Base class for finledger errors."""

    pass


class TransientIOError(FinledgerError, OSError):
    """Raised when a file is temporarily unavailable (busy, locked, too many handles)."""

    pass


class OversizedOrEmptyFileError(FinledgerError):
    """Raised when a file is rejected before extraction because of its size."""

    pass


class MalformedDocumentError(FinledgerError):
    """Raised when a document contains no recognizable line items."""

    pass


class CategorizationFault(FinledgerError):
    """Raised when a rule cannot be evaluated against a description."""

    pass


class MigrationError(FinledgerError):
    """Raised when the category migration fails and has been rolled back."""

    pass


class RuleBackupError(FinledgerError):
    """Raised when a rule backup file cannot be written or read."""

    pass
