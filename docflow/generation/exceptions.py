class GenerationError(Exception):
    """Raised when a generation call fails or returns unusable output."""


class GenerationValidationError(GenerationError):
    """Raised when the generated result does not match the expected shape."""


class GenerationNetworkError(GenerationError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
