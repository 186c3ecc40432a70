class TriageError(Exception):
    """Base exception for all document triage errors."""


class DocumentNotFoundError(TriageError):
    """Raised when a document cannot be found in the store."""


class InvalidTransitionError(TriageError):
    """Raised when a status change is not allowed from the document's current status."""


class StaleGenerationError(TriageError):
    """Raised when a conditional update targets a superseded processing attempt."""


class MalformedOutcomeError(TriageError):
    """Raised when an extraction outcome does not have the required shape."""
