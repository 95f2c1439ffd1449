"""
Identification data types.

Typed records passed between the recognizer, the lookup client and the
scorer. External payloads are validated here so malformed service output
never travels further than the client that received it.
"""

from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DetectedStub(BaseModel):
    """A book the recognition service believes is visible in the photo."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)
    publisher: Optional[str] = None
    collection: Optional[str] = None
    isbn: Optional[str] = None

    @field_validator("publisher", "collection", "isbn", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        # Models often answer "" or "unknown" for hints they could not read
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or stripped.lower() in {"unknown", "n/a", "none", "null"}:
                return None
            return stripped
        return value


@dataclass
class ShelfReading:
    """Everything the recognition service listed for one photo."""

    stubs: list[DetectedStub] = field(default_factory=list)

    # Listed items that could not be used as books, one reason each
    rejected: list[str] = field(default_factory=list)

    @property
    def detected(self) -> int:
        return len(self.stubs) + len(self.rejected)


@dataclass
class MetadataCandidate:
    """A volume returned by the metadata service, not yet confirmed."""

    external_id: str
    title: str
    authors: list[str] = field(default_factory=list)
    subtitle: Optional[str] = None
    publisher: Optional[str] = None
    published_date: Optional[str] = None
    description: Optional[str] = None
    page_count: Optional[int] = None
    categories: list[str] = field(default_factory=list)
    isbn: Optional[str] = None
    cover_url: Optional[str] = None

    @property
    def author_line(self) -> str:
        """All authors joined by spaces."""
        return " ".join(self.authors)


@dataclass(frozen=True)
class EnrichmentResult:
    """Outcome of validating one stub against the metadata service."""

    valid: bool
    confidence: float
    best_candidate: Optional[MetadataCandidate] = None

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    @classmethod
    def empty(cls) -> "EnrichmentResult":
        """Result for a stub with no usable candidates."""
        return cls(valid=False, confidence=0.0)
