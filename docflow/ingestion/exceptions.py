class IngestionError(Exception):
    """Base exception for failures of the ingestion-and-split stage."""


class SourceDownloadError(IngestionError):
    """Raised when the triggering object cannot be copied to the working directory."""


class LedgerError(IngestionError):
    """Raised when a ledger read or write fails before a record can carry the error."""
