"""
API Schemas for Arcana

Pydantic models for request validation and response serialization.
Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from arcana.intelligence.reading_card import ReadingCard
from arcana.scanning.pipeline import ReportedBook, ScanProgress, ScanReport
from arcana.storage.book_repository import StoredBook
from arcana.storage.models import BookStatus, Owner


class CamelModel(BaseModel):
    """Base model serialized with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Scan Schemas
# =============================================================================

class ScanStatsSchema(CamelModel):
    """Counters of one scan."""

    detected: int
    added: int
    duplicates: int
    skipped: int


class ReportedBookSchema(CamelModel):
    """A book found on the shelf."""

    id: str
    title: str
    author: str
    cover_url: Optional[str] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    is_new_book: bool
    copy_number: Optional[int] = None

    @classmethod
    def from_reported(cls, book: ReportedBook) -> "ReportedBookSchema":
        return cls(
            id=book.id,
            title=book.title,
            author=book.author,
            cover_url=book.cover_url,
            confidence=book.confidence,
            is_new_book=book.is_new_book,
            copy_number=book.copy_number,
        )


class ScanResponse(CamelModel):
    """Result of a shelf scan."""

    success: bool
    message: str
    books: list[ReportedBookSchema]
    stats: ScanStatsSchema

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "message": "1 new book(s) added, 1 duplicate copy(ies) detected",
                "books": [
                    {
                        "id": "2f4c1f9e-3c8a-4a55-9a0e-1b7d2f0c9b11",
                        "title": "Dune",
                        "author": "Frank Herbert",
                        "coverUrl": "https://books.google.com/books/content?id=B1hSG45JCX4C&zoom=0",
                        "confidence": 0.91,
                        "isNewBook": True,
                        "copyNumber": 1,
                    }
                ],
                "stats": {"detected": 3, "added": 1, "duplicates": 1, "skipped": 1},
            }
        }
    )

    @classmethod
    def from_report(cls, report: ScanReport) -> "ScanResponse":
        return cls(
            success=report.success,
            message=report.message,
            books=[ReportedBookSchema.from_reported(b) for b in report.books],
            stats=ScanStatsSchema(
                detected=report.stats.detected,
                added=report.stats.added,
                duplicates=report.stats.duplicates,
                skipped=report.stats.skipped,
            ),
        )


class ScanProgressSchema(CamelModel):
    """Streamed progress event."""

    type: str = "progress"
    step: str
    message: str
    progress: int = Field(..., ge=0, le=100)
    books_found: Optional[int] = None

    @classmethod
    def from_progress(cls, event: ScanProgress) -> "ScanProgressSchema":
        return cls(
            step=event.step,
            message=event.message,
            progress=event.progress,
            books_found=event.books_found,
        )


# =============================================================================
# Book Schemas
# =============================================================================

class BookCreate(CamelModel):
    """Manual book creation request (e.g. wishlist entries)."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=500)

    isbn: Optional[str] = Field(None, max_length=20)
    publisher: Optional[str] = Field(None, max_length=200)
    published_date: Optional[str] = Field(None, max_length=50)
    page_count: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None
    categories: list[str] = Field(default_factory=list)
    cover_url: Optional[str] = None
    google_books_id: Optional[str] = None

    status: BookStatus = BookStatus.TO_READ
    owner: Owner = Owner.FAMILY
    copy_number: int = Field(1, ge=1)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Dune",
                "author": "Frank Herbert",
                "isbn": "9780441172719",
                "status": "WISHLIST",
                "owner": "SACHA",
            }
        }
    )


class StatusUpdate(CamelModel):
    """Status change request."""

    status: BookStatus


class LoanUpdate(CamelModel):
    """Loan change request. A null or blank `loanedTo` marks the book returned."""

    loaned_to: Optional[str] = Field(None, max_length=100)
    loan_date: Optional[datetime] = None

    @field_validator("loaned_to", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return value


class BookResponse(CamelModel):
    """Catalog entry."""

    id: str
    title: str
    author: str
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    published_date: Optional[str] = None
    page_count: Optional[int] = None
    description: Optional[str] = None
    categories: list[str] = Field(default_factory=list)
    cover_url: Optional[str] = None
    google_books_id: Optional[str] = None
    status: BookStatus
    owner: Owner
    copy_number: int
    loaned_to: Optional[str] = None
    loan_date: Optional[datetime] = None
    confidence_score: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_stored(cls, book: StoredBook) -> "BookResponse":
        return cls(
            id=book.id,
            title=book.title,
            author=book.author,
            isbn=book.isbn,
            publisher=book.publisher,
            published_date=book.published_date,
            page_count=book.page_count,
            description=book.description,
            categories=book.categories,
            cover_url=book.cover_url,
            google_books_id=book.google_books_id,
            status=book.status,
            owner=book.owner,
            copy_number=book.copy_number,
            loaned_to=book.loaned_to,
            loan_date=book.loan_date,
            confidence_score=book.confidence_score,
            created_at=book.created_at,
            updated_at=book.updated_at,
        )


class BookEnvelope(CamelModel):
    """Single book response."""

    success: bool = True
    data: BookResponse


class Pagination(CamelModel):
    """Pagination block of list responses."""

    total: int
    page: int
    limit: int
    total_pages: int


class BookListResponse(CamelModel):
    """Paginated book list response."""

    success: bool = True
    data: list[BookResponse]
    pagination: Pagination


class FilterOptions(CamelModel):
    """Values available to the inventory filters."""

    categories: list[str]
    authors: list[str]
    statuses: list[BookStatus]
    owners: list[Owner]


class FilterOptionsResponse(CamelModel):
    success: bool = True
    data: FilterOptions


class DeleteResponse(CamelModel):
    success: bool = True
    message: str


class ReadingCardResponse(CamelModel):
    """Reading card of a read book."""

    success: bool = True
    data: ReadingCard


# =============================================================================
# System Schemas
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    error: str
    code: str
    detail: Optional[str] = None
    timestamp: datetime

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "error": "Recognition timed out",
                "code": "RECOGNITION_FAILED",
                "detail": "No answer within 60.0s",
                "timestamp": "2024-01-15T10:30:00Z",
            }
        }
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
