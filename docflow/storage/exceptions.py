class StorageError(Exception):
    """Base exception for object storage errors."""


class ArtifactWriteError(StorageError):
    """Raised when a single-artifact write fails for a reason other than 'already exists'."""


class UploadError(StorageError):
    """Raised when a page upload exhausts its retry attempts."""


class UploadCancelledError(StorageError):
    """Raised when an upload task stops because its run was cancelled."""
