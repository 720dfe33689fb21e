class PdfProcessingError(Exception):
    """Raised when a PDF cannot be normalized, counted, or split."""
