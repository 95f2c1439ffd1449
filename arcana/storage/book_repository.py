"""
Book Repository for Arcana

Catalog storage using async SQLAlchemy:
- SQLite (aiosqlite) for development/testing
- PostgreSQL (asyncpg) for production
- Duplicate lookup by casefolded title/author containment
- Filtering and pagination for the inventory views
"""

import asyncio
import json
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Optional

from loguru import logger
from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from arcana.exceptions import PersistenceError
from arcana.storage.models import Base, BookModel, BookStatus, Owner, catalog_key, utcnow


@dataclass
class StoredBook:
    """Data class for catalog entry transfer."""

    id: str
    title: str
    author: str

    # Optional fields
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    published_date: Optional[str] = None
    page_count: Optional[int] = None
    description: Optional[str] = None
    categories: list[str] = field(default_factory=list)
    cover_url: Optional[str] = None
    google_books_id: Optional[str] = None

    # Inventory
    status: BookStatus = BookStatus.TO_READ
    owner: Owner = Owner.FAMILY
    copy_number: int = 1
    confidence_score: Optional[float] = None

    # Loan
    loaned_to: Optional[str] = None
    loan_date: Optional[datetime] = None

    reading_card: Optional[dict[str, Any]] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: BookModel) -> "StoredBook":
        """Create from SQLAlchemy model."""
        return cls(
            id=model.id,
            title=model.title,
            author=model.author,
            isbn=model.isbn,
            publisher=model.publisher,
            published_date=model.published_date,
            page_count=model.page_count,
            description=model.description,
            categories=list(model.categories or []),
            cover_url=model.cover_url,
            google_books_id=model.google_books_id,
            status=BookStatus(model.status),
            owner=Owner(model.owner),
            copy_number=model.copy_number,
            confidence_score=model.confidence_score,
            loaned_to=model.loaned_to,
            loan_date=model.loan_date,
            reading_card=model.reading_card,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class BookRepository:
    """
    Repository for catalog CRUD operations.

    Usage:
        repo = BookRepository("sqlite+aiosqlite:///./arcana.db")
        await repo.init()

        book = await repo.create(title="Dune", author="Frank Herbert")
        existing = await repo.find_duplicate("dune", "herbert")
    """

    def __init__(
        self,
        database_url: str = "sqlite+aiosqlite:///:memory:",
        echo: bool = False,
    ):
        """
        Initialize repository.

        Args:
            database_url: SQLAlchemy async database URL
            echo: Log emitted SQL
        """
        self.database_url = database_url
        self.engine = create_async_engine(
            database_url,
            echo=echo,
            json_serializer=lambda obj: json.dumps(obj, ensure_ascii=False),
        )
        self.SessionLocal = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        # Serializes duplicate-check + insert for scans running in this process
        self._scan_write_lock = asyncio.Lock()

        logger.info(f"BookRepository initialized: {database_url[:50]}...")

    async def init(self) -> None:
        """Create tables if they do not exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose of the connection pool."""
        await self.engine.dispose()

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Session scope translating database failures into PersistenceError."""
        async with self.SessionLocal() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Catalog {operation} failed: {e}")
                raise PersistenceError(operation, detail=str(e)) from e

    @staticmethod
    def _new_model(title: str, author: str, **fields) -> BookModel:
        for key in ("status", "owner"):
            if isinstance(fields.get(key), (BookStatus, Owner)):
                fields[key] = fields[key].value
        return BookModel(id=str(uuid.uuid4()), title=title, author=author, **fields)

    @staticmethod
    def _duplicate_query(title: str, author: str):
        title_pattern = f"%{_escape_like(catalog_key(title))}%"
        author_pattern = f"%{_escape_like(catalog_key(author))}%"
        return (
            select(BookModel)
            .where(
                BookModel.title_key.like(title_pattern, escape="\\"),
                BookModel.author_key.like(author_pattern, escape="\\"),
            )
            .order_by(BookModel.created_at.asc())
            .limit(1)
        )

    async def create(self, title: str, author: str, **fields) -> StoredBook:
        """
        Create a new catalog entry.

        Args:
            title: Book title
            author: Primary author
            **fields: Additional BookModel columns

        Returns:
            Created StoredBook
        """
        async with self._session("create") as session:
            book = self._new_model(title, author, **fields)
            session.add(book)
            await session.commit()
            await session.refresh(book)
            return StoredBook.from_model(book)

    async def get(self, book_id: str) -> Optional[StoredBook]:
        """Get a catalog entry by ID."""
        async with self._session("read") as session:
            book = await session.get(BookModel, book_id)
            return StoredBook.from_model(book) if book else None

    async def find_duplicate(self, title: str, author: str) -> Optional[StoredBook]:
        """
        Find an entry whose title contains `title` and whose author
        contains `author`, compared on their casefolded keys.
        """
        async with self._session("duplicate lookup") as session:
            result = await session.execute(self._duplicate_query(title, author))
            book = result.scalars().first()
            return StoredBook.from_model(book) if book else None

    async def add_scanned_book(
        self,
        title: str,
        author: str,
        **fields,
    ) -> tuple[StoredBook, bool]:
        """
        Insert a scanned book unless a duplicate already exists.

        The duplicate check and the insert share one transaction and the
        repository-wide scan lock. Existing entries are returned untouched.

        Returns:
            (book, created) where created is False for a duplicate
        """
        async with self._scan_write_lock:
            async with self._session("scan insert") as session:
                result = await session.execute(self._duplicate_query(title, author))
                existing = result.scalars().first()
                if existing is not None:
                    return StoredBook.from_model(existing), False

                book = self._new_model(title, author, **fields)
                session.add(book)
                await session.commit()
                await session.refresh(book)
                return StoredBook.from_model(book), True

    async def list_books(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[BookStatus] = None,
        owner: Optional[Owner] = None,
        category: Optional[str] = None,
        author: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[StoredBook], int]:
        """
        List entries with filtering and pagination, newest first.

        Args:
            page: Page number (1-based)
            limit: Items per page
            status: Exact status filter
            owner: Exact owner filter
            category: Category the entry must carry
            author: Case-insensitive author substring
            search: Case-insensitive substring of title, author or ISBN

        Returns:
            (List of StoredBooks, total_count)
        """
        conditions = []
        if status:
            conditions.append(BookModel.status == BookStatus(status).value)
        if owner:
            conditions.append(BookModel.owner == Owner(owner).value)
        if category:
            # JSON arrays are stored as text; match the quoted element
            encoded = json.dumps(category, ensure_ascii=False)
            conditions.append(cast(BookModel.categories, String).contains(encoded, autoescape=True))
        if author:
            conditions.append(
                BookModel.author_key.like(f"%{_escape_like(catalog_key(author))}%", escape="\\")
            )
        if search:
            pattern = f"%{_escape_like(search)}%"
            key_pattern = f"%{_escape_like(catalog_key(search))}%"
            conditions.append(or_(
                BookModel.title_key.like(key_pattern, escape="\\"),
                BookModel.author_key.like(key_pattern, escape="\\"),
                BookModel.isbn.ilike(pattern, escape="\\"),
            ))

        offset = (page - 1) * limit

        async with self._session("list") as session:
            total = await session.scalar(
                select(func.count(BookModel.id)).where(*conditions)
            )
            result = await session.execute(
                select(BookModel)
                .where(*conditions)
                .order_by(BookModel.created_at.desc(), BookModel.id)
                .offset(offset)
                .limit(limit)
            )
            books = [StoredBook.from_model(b) for b in result.scalars().all()]
            return books, total or 0

    async def distinct_categories(self) -> list[str]:
        """All categories used in the catalog, sorted."""
        async with self._session("read") as session:
            result = await session.execute(select(BookModel.categories))
            categories = set()
            for (values,) in result.all():
                categories.update(values or [])
            return sorted(categories)

    async def distinct_authors(self) -> list[str]:
        """All authors in the catalog, sorted."""
        async with self._session("read") as session:
            result = await session.execute(
                select(BookModel.author).distinct().order_by(BookModel.author.asc())
            )
            return [author for (author,) in result.all()]

    async def update_status(self, book_id: str, status: BookStatus) -> Optional[StoredBook]:
        """
        Update the household status of an entry.

        Returns:
            Updated StoredBook or None if it does not exist
        """
        async with self._session("update") as session:
            book = await session.get(BookModel, book_id)
            if not book:
                return None

            book.status = BookStatus(status).value
            await session.commit()
            await session.refresh(book)
            return StoredBook.from_model(book)

    async def update_loan(
        self,
        book_id: str,
        loaned_to: Optional[str],
        loan_date: Optional[datetime] = None,
    ) -> Optional[StoredBook]:
        """
        Record who borrowed an entry, or mark it returned.

        An empty `loaned_to` clears both loan fields. A loan without a date
        is dated now.

        Returns:
            Updated StoredBook or None if it does not exist
        """
        async with self._session("update") as session:
            book = await session.get(BookModel, book_id)
            if not book:
                return None

            if loaned_to:
                book.loaned_to = loaned_to
                book.loan_date = loan_date or utcnow()
            else:
                book.loaned_to = None
                book.loan_date = None

            await session.commit()
            await session.refresh(book)
            logger.info(f"Loan of '{book.title}' set to {book.loaned_to or 'returned'}")
            return StoredBook.from_model(book)

    async def save_reading_card(self, book_id: str, card: dict[str, Any]) -> Optional[StoredBook]:
        """Cache a generated reading card on an entry."""
        async with self._session("update") as session:
            book = await session.get(BookModel, book_id)
            if not book:
                return None

            book.reading_card = card
            await session.commit()
            await session.refresh(book)
            return StoredBook.from_model(book)

    async def delete(self, book_id: str) -> bool:
        """
        Delete an entry.

        Returns:
            True if deleted
        """
        async with self._session("delete") as session:
            book = await session.get(BookModel, book_id)
            if not book:
                return False

            await session.delete(book)
            await session.commit()
            return True

    async def count(self) -> int:
        """Number of catalog entries."""
        async with self._session("read") as session:
            return await session.scalar(select(func.count(BookModel.id))) or 0
