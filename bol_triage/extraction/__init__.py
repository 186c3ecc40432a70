from bol_triage.extraction.factory import ExtractorFactory
from bol_triage.extraction.gateway import ExtractorGateway
from bol_triage.extraction.mock_extractor import MockExtractor
from bol_triage.extraction.models import ExtractionOutcome, FieldScore

__all__ = [
    "ExtractionOutcome",
    "ExtractorFactory",
    "ExtractorGateway",
    "FieldScore",
    "MockExtractor",
]
