"""
Database models for Arcana.
"""

import unicodedata
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, String, Integer, Float, Text, DateTime, JSON, CheckConstraint, Index
from sqlalchemy.orm import declarative_base, validates

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def catalog_key(text: str) -> str:
    """
    Comparison form of a title or author.

    SQLite's lower() only folds ASCII; duplicate lookup and search compare
    these keys instead, so "L'Écume" and "l'écume" match.
    """
    return unicodedata.normalize("NFC", text).strip().casefold()


class BookStatus(str, Enum):
    """Household reading status of a book."""
    TO_READ = "TO_READ"
    READING = "READING"
    READ = "READ"
    WISHLIST = "WISHLIST"


class Owner(str, Enum):
    """Family member a copy belongs to."""
    ALIOU = "ALIOU"
    SYLVIA = "SYLVIA"
    SACHA = "SACHA"
    LISA = "LISA"
    FAMILY = "FAMILY"


class BookModel(Base):
    """SQLAlchemy model for catalog entries."""

    __tablename__ = "books"

    id = Column(String(36), primary_key=True)  # UUID

    # Core fields
    title = Column(String(500), nullable=False, index=True)
    author = Column(String(500), nullable=False, index=True)

    # Casefolded copies used for duplicate lookup and search
    title_key = Column(String(500), nullable=False, index=True)
    author_key = Column(String(500), nullable=False, index=True)

    # Publication
    isbn = Column(String(20), index=True)
    publisher = Column(String(200))
    published_date = Column(String(50))
    page_count = Column(Integer)
    description = Column(Text)
    categories = Column(JSON, default=list, nullable=False)
    cover_url = Column(String(1000))

    # External IDs
    google_books_id = Column(String(50))

    # Inventory
    status = Column(String(20), default=BookStatus.TO_READ.value, nullable=False)
    owner = Column(String(20), default=Owner.FAMILY.value, nullable=False)
    copy_number = Column(Integer, default=1, nullable=False)

    # Loan
    loaned_to = Column(String(100))
    loan_date = Column(DateTime)

    # Cached reading card (summary, themes, questions)
    reading_card = Column(JSON)

    # Scan metadata
    confidence_score = Column(Float)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("copy_number >= 1", name="ck_books_copy_number_positive"),
        CheckConstraint(
            "confidence_score IS NULL OR (confidence_score >= 0 AND confidence_score <= 1)",
            name="ck_books_confidence_range",
        ),
        Index("idx_books_title_author", "title_key", "author_key"),
        Index("idx_books_created", "created_at"),
    )

    @validates("title", "author")
    def _sync_key(self, key, value):
        setattr(self, f"{key}_key", catalog_key(value) if value is not None else None)
        return value
