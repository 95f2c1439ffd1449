"""
Storage Module for Arcana

Persistent catalog of the family's books:
- SQLAlchemy models for catalog entries
- Async repository with duplicate lookup, filtering and pagination
"""

from arcana.storage.models import (
    Base,
    BookModel,
    BookStatus,
    Owner,
)
from arcana.storage.book_repository import (
    BookRepository,
    StoredBook,
)

__all__ = [
    # Models
    "Base",
    "BookModel",
    "BookStatus",
    "Owner",
    # Book Repository
    "BookRepository",
    "StoredBook",
]
