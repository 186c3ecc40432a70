class ExtractionError(Exception):
    """Raised when an extraction backend fails."""


class ExtractionNetworkError(ExtractionError):
    """Raised when the backend call fails due to network/infrastructure issues."""


class ExtractionValidationError(ExtractionError):
    """Raised when the backend payload does not fit the bill of lading shape."""


class ExtractorNotConfiguredError(ExtractionError):
    """Raised when a live backend is used without endpoint or credentials."""
