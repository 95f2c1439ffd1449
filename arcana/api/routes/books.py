"""
Book API Routes

Catalog operations: list with filters, filter options, read, manual
create, status change, loans, reading cards and delete.
"""

import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from arcana.api.dependencies import get_book_repository, get_reading_card_writer
from arcana.api.schemas import (
    BookCreate,
    BookEnvelope,
    BookListResponse,
    BookResponse,
    DeleteResponse,
    ErrorResponse,
    FilterOptions,
    FilterOptionsResponse,
    LoanUpdate,
    Pagination,
    ReadingCardResponse,
    StatusUpdate,
)
from arcana.exceptions import NotFoundError, ReadingCardUnavailableError
from arcana.intelligence.reading_card import ReadingCard, ReadingCardWriter
from arcana.storage.book_repository import BookRepository
from arcana.storage.models import BookStatus, Owner


router = APIRouter(prefix="/books", tags=["books"])


@router.get("", response_model=BookListResponse)
async def list_books(
    status_filter: Optional[BookStatus] = Query(None, alias="status"),
    owner: Optional[Owner] = Query(None),
    category: Optional[str] = Query(None),
    author: Optional[str] = Query(None),
    q: Optional[str] = Query(None, description="Search title, author or ISBN"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    repo: BookRepository = Depends(get_book_repository),
) -> BookListResponse:
    """List catalog entries, newest first."""
    books, total = await repo.list_books(
        page=page,
        limit=limit,
        status=status_filter,
        owner=owner,
        category=category,
        author=author,
        search=q,
    )

    return BookListResponse(
        data=[BookResponse.from_stored(b) for b in books],
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )


@router.get("/filters", response_model=FilterOptionsResponse)
async def get_filter_options(
    repo: BookRepository = Depends(get_book_repository),
) -> FilterOptionsResponse:
    """Distinct values for the inventory filters."""
    return FilterOptionsResponse(
        data=FilterOptions(
            categories=await repo.distinct_categories(),
            authors=await repo.distinct_authors(),
            statuses=list(BookStatus),
            owners=list(Owner),
        )
    )


@router.post(
    "",
    response_model=BookEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid book data"},
    },
)
async def create_book(
    book: BookCreate,
    repo: BookRepository = Depends(get_book_repository),
) -> BookEnvelope:
    """Add a book by hand."""
    fields = book.model_dump(exclude={"title", "author"})
    stored = await repo.create(title=book.title, author=book.author, **fields)

    logger.info(f"Created book '{stored.title}' by {stored.author} ({stored.id})")
    return BookEnvelope(data=BookResponse.from_stored(stored))


@router.get(
    "/{book_id}",
    response_model=BookEnvelope,
    responses={404: {"model": ErrorResponse, "description": "Book not found"}},
)
async def get_book(
    book_id: str,
    repo: BookRepository = Depends(get_book_repository),
) -> BookEnvelope:
    """Get a single catalog entry."""
    book = await repo.get(book_id)
    if book is None:
        raise NotFoundError("Book", book_id)
    return BookEnvelope(data=BookResponse.from_stored(book))


@router.patch(
    "/{book_id}/status",
    response_model=BookEnvelope,
    responses={404: {"model": ErrorResponse, "description": "Book not found"}},
)
async def update_book_status(
    book_id: str,
    update: StatusUpdate,
    repo: BookRepository = Depends(get_book_repository),
) -> BookEnvelope:
    """Change the household status of a book."""
    book = await repo.update_status(book_id, update.status)
    if book is None:
        raise NotFoundError("Book", book_id)
    return BookEnvelope(data=BookResponse.from_stored(book))


@router.patch(
    "/{book_id}/loan",
    response_model=BookEnvelope,
    responses={404: {"model": ErrorResponse, "description": "Book not found"}},
)
async def update_book_loan(
    book_id: str,
    update: LoanUpdate,
    repo: BookRepository = Depends(get_book_repository),
) -> BookEnvelope:
    """Lend a book to someone, or mark it returned with a null `loanedTo`."""
    book = await repo.update_loan(book_id, update.loaned_to, update.loan_date)
    if book is None:
        raise NotFoundError("Book", book_id)
    return BookEnvelope(data=BookResponse.from_stored(book))


@router.get(
    "/{book_id}/reading-card",
    response_model=ReadingCardResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Book is not marked as read"},
        404: {"model": ErrorResponse, "description": "Book not found"},
        502: {"model": ErrorResponse, "description": "Reading card generation failed"},
    },
)
async def get_reading_card(
    book_id: str,
    repo: BookRepository = Depends(get_book_repository),
    writer: ReadingCardWriter = Depends(get_reading_card_writer),
) -> ReadingCardResponse:
    """
    Summary, themes and discussion questions of a read book.

    Written on first request, then served from the catalog entry.
    """
    book = await repo.get(book_id)
    if book is None:
        raise NotFoundError("Book", book_id)
    if book.status is not BookStatus.READ:
        raise ReadingCardUnavailableError(book.status.value)

    if book.reading_card:
        return ReadingCardResponse(data=ReadingCard.model_validate(book.reading_card))

    card = await writer.write(book.title, book.author)
    await repo.save_reading_card(book_id, card.model_dump(by_alias=True))

    logger.info(f"Reading card cached for '{book.title}' ({book_id})")
    return ReadingCardResponse(data=card)


@router.delete(
    "/{book_id}",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorResponse, "description": "Book not found"}},
)
async def delete_book(
    book_id: str,
    repo: BookRepository = Depends(get_book_repository),
) -> DeleteResponse:
    """Remove a book from the catalog."""
    if not await repo.delete(book_id):
        raise NotFoundError("Book", book_id)

    logger.info(f"Deleted book {book_id}")
    return DeleteResponse(message="Book deleted")
