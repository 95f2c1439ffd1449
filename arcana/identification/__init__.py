"""
Book Identification Module

Recognizes books on shelf photos and validates them against Google Books.
"""

from arcana.identification.models import (
    DetectedStub,
    ShelfReading,
    MetadataCandidate,
    EnrichmentResult,
)
from arcana.identification.google_books import (
    GoogleBooksClient,
    LookupResult,
    QueryStrategy,
    RELAXATION_STRATEGIES,
)
from arcana.identification.scorer import (
    MatchScorer,
    MetadataValidator,
)
from arcana.identification.recognizer import (
    ShelfRecognizer,
    create_recognizer,
    parse_stubs,
)

__all__ = [
    # Models
    "DetectedStub",
    "ShelfReading",
    "MetadataCandidate",
    "EnrichmentResult",
    # Lookup
    "GoogleBooksClient",
    "LookupResult",
    "QueryStrategy",
    "RELAXATION_STRATEGIES",
    # Scoring
    "MatchScorer",
    "MetadataValidator",
    # Recognition
    "ShelfRecognizer",
    "create_recognizer",
    "parse_stubs",
]
