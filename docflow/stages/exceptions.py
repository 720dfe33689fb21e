class StageError(Exception):
    """Raised when a downstream stage cannot produce its artifact."""
