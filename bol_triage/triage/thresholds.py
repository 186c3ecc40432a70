from dataclasses import dataclass

from bol_triage.config.settings import Settings


@dataclass(frozen=True)
class TriageThresholds:
    """Confidence bars used to route an extraction into a status bucket."""

    processed_min_confidence: float = 0.90
    review_min_confidence: float = 0.60
    field_warning_confidence: float = 0.80
    field_error_confidence: float = 0.60
    max_review_errors: int = 1

    def __post_init__(self) -> None:
        if self.review_min_confidence > self.processed_min_confidence:
            raise ValueError("review_min_confidence must not exceed processed_min_confidence")
        if self.field_error_confidence > self.field_warning_confidence:
            raise ValueError("field_error_confidence must not exceed field_warning_confidence")

    @classmethod
    def from_settings(cls, settings: Settings) -> "TriageThresholds":
        return cls(
            processed_min_confidence=settings.processed_min_confidence,
            review_min_confidence=settings.review_min_confidence,
            field_warning_confidence=settings.field_warning_confidence,
            field_error_confidence=settings.field_error_confidence,
            max_review_errors=settings.max_review_errors,
        )
