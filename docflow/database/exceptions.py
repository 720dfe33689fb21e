class LedgerStoreError(Exception):
    """Base exception for document ledger errors."""


class DocumentNotFoundError(LedgerStoreError):
    """Raised when a ledger record cannot be found."""


class InvalidStatusTransitionError(LedgerStoreError):
    """Raised when an update would move a record's status backwards or out of FAILED."""
