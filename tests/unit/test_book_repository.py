"""
Unit tests for the catalog repository.
"""

from datetime import datetime

import pytest
import pytest_asyncio

from arcana.exceptions import PersistenceError
from arcana.storage.book_repository import BookRepository
from arcana.storage.models import BookStatus, Owner

pytestmark = pytest.mark.asyncio


class TestCreateAndGet:
    """Tests for basic CRUD."""

    async def test_create_defaults(self, catalog):
        book = await catalog.create(title="Dune", author="Frank Herbert")

        assert book.id
        assert book.status == BookStatus.TO_READ
        assert book.owner == Owner.FAMILY
        assert book.copy_number == 1
        assert book.categories == []
        assert book.created_at is not None

    async def test_get(self, catalog):
        created = await catalog.create(
            title="Dune",
            author="Frank Herbert",
            status=BookStatus.WISHLIST,
            owner=Owner.SACHA,
            categories=["Science Fiction"],
        )

        fetched = await catalog.get(created.id)

        assert fetched.title == "Dune"
        assert fetched.status == BookStatus.WISHLIST
        assert fetched.owner == Owner.SACHA
        assert fetched.categories == ["Science Fiction"]

    async def test_get_missing(self, catalog):
        assert await catalog.get("missing-id") is None

    async def test_update_status(self, catalog):
        created = await catalog.create(title="Dune", author="Frank Herbert")

        updated = await catalog.update_status(created.id, BookStatus.READING)

        assert updated.status == BookStatus.READING
        assert (await catalog.get(created.id)).status == BookStatus.READING

    async def test_update_status_missing(self, catalog):
        assert await catalog.update_status("missing-id", BookStatus.READ) is None

    async def test_update_loan(self, catalog):
        created = await catalog.create(title="Dune", author="Frank Herbert")

        loaned = await catalog.update_loan(created.id, "Grand-mère", datetime(2026, 3, 1, 10, 0))

        assert loaned.loaned_to == "Grand-mère"
        assert loaned.loan_date == datetime(2026, 3, 1, 10, 0)
        assert (await catalog.get(created.id)).loaned_to == "Grand-mère"

    async def test_loan_without_date_is_dated_now(self, catalog):
        created = await catalog.create(title="Dune", author="Frank Herbert")

        loaned = await catalog.update_loan(created.id, "Lisa")

        assert loaned.loaned_to == "Lisa"
        assert loaned.loan_date is not None

    async def test_return_clears_loan(self, catalog):
        created = await catalog.create(title="Dune", author="Frank Herbert")
        await catalog.update_loan(created.id, "Lisa")

        returned = await catalog.update_loan(created.id, None)

        assert returned.loaned_to is None
        assert returned.loan_date is None

    async def test_update_loan_missing(self, catalog):
        assert await catalog.update_loan("missing-id", "Lisa") is None

    async def test_save_reading_card(self, catalog):
        created = await catalog.create(title="Dune", author="Frank Herbert", status=BookStatus.READ)
        card = {"summary": "Une saga sur Arrakis.", "themes": ["écologie"]}

        saved = await catalog.save_reading_card(created.id, card)

        assert saved.reading_card == card
        assert (await catalog.get(created.id)).reading_card == card
        assert await catalog.save_reading_card("missing-id", card) is None

    async def test_delete(self, catalog):
        created = await catalog.create(title="Dune", author="Frank Herbert")

        assert await catalog.delete(created.id) is True
        assert await catalog.get(created.id) is None
        assert await catalog.delete(created.id) is False


class TestDuplicates:
    """Tests for duplicate lookup and scanned inserts."""

    async def test_find_duplicate_is_case_insensitive_containment(self, catalog):
        existing = await catalog.create(title="Dune: Deluxe Edition", author="Frank Herbert")

        found = await catalog.find_duplicate("DUNE", "herbert")

        assert found.id == existing.id

    async def test_find_duplicate_needs_both_fields(self, catalog):
        await catalog.create(title="Dune", author="Frank Herbert")

        assert await catalog.find_duplicate("Dune", "Brian Herbert Jr") is None
        assert await catalog.find_duplicate("Dune Messiah", "Frank Herbert") is None

    async def test_find_duplicate_folds_accented_capitals(self, catalog):
        existing = await catalog.create(title="L'Écume des jours", author="Boris Vian")

        assert (await catalog.find_duplicate("L'Écume des jours", "Boris Vian")).id == existing.id
        assert (await catalog.find_duplicate("l'écume", "BORIS VIAN")).id == existing.id

    async def test_add_scanned_book_accented_rescan(self, catalog):
        book, created = await catalog.add_scanned_book(
            "L'Écume des jours", "Boris Vian", confidence_score=0.95
        )
        again, created_again = await catalog.add_scanned_book(
            "L'Écume des jours", "Boris Vian", confidence_score=0.95
        )

        assert created is True
        assert created_again is False
        assert again.id == book.id
        assert await catalog.count() == 1

    async def test_like_wildcards_are_literal(self, catalog):
        await catalog.create(title="1000 Years", author="Some Author")

        assert await catalog.find_duplicate("1%", "Some Author") is None
        assert await catalog.find_duplicate("1_00", "Some Author") is None

    async def test_add_scanned_book_creates_then_reports_duplicate(self, catalog):
        book, created = await catalog.add_scanned_book(
            "Dune", "Frank Herbert", confidence_score=0.9, status=BookStatus.TO_READ
        )
        again, created_again = await catalog.add_scanned_book(
            "dune", "frank herbert", confidence_score=0.99, isbn="9780441172719"
        )

        assert created is True
        assert created_again is False
        assert again.id == book.id
        assert again.confidence_score == pytest.approx(0.9)
        assert again.isbn is None
        assert await catalog.count() == 1


class TestListing:
    """Tests for filtering and pagination."""

    @pytest_asyncio.fixture
    async def populated(self, catalog):
        await catalog.create(
            title="Dune", author="Frank Herbert", isbn="9780441172719",
            categories=["Science Fiction"], status=BookStatus.READ, owner=Owner.ALIOU,
        )
        await catalog.create(
            title="L'Étranger", author="Albert Camus",
            categories=["Littérature", "Classique"], owner=Owner.SYLVIA,
        )
        await catalog.create(
            title="Children of Dune", author="Frank Herbert",
            categories=["Science Fiction"], status=BookStatus.WISHLIST,
        )
        return catalog

    async def test_all(self, populated):
        books, total = await populated.list_books()

        assert total == 3
        assert len(books) == 3

    async def test_status_and_owner(self, populated):
        books, total = await populated.list_books(status=BookStatus.READ)
        assert total == 1 and books[0].title == "Dune"

        books, total = await populated.list_books(owner=Owner.SYLVIA)
        assert total == 1 and books[0].author == "Albert Camus"

    async def test_category_with_accents(self, populated):
        books, total = await populated.list_books(category="Littérature")

        assert total == 1
        assert books[0].title == "L'Étranger"

    async def test_category_must_match_whole_element(self, populated):
        _, total = await populated.list_books(category="Science")

        assert total == 0

    async def test_author_substring(self, populated):
        _, total = await populated.list_books(author="herbert")

        assert total == 2

    async def test_search_by_title_or_isbn(self, populated):
        _, by_title = await populated.list_books(search="dune")
        books, by_isbn = await populated.list_books(search="0441172719")

        assert by_title == 2
        assert by_isbn == 1
        assert books[0].title == "Dune"

    async def test_accented_title_search_and_author_filter(self, populated):
        books, by_title = await populated.list_books(search="l'étranger")
        _, by_upper = await populated.list_books(search="ÉTRANGER")
        _, by_author = await populated.list_books(author="CAMUS")

        assert by_title == 1
        assert books[0].title == "L'Étranger"
        assert by_upper == 1
        assert by_author == 1

    async def test_pagination(self, populated):
        page_one, total = await populated.list_books(page=1, limit=2)
        page_two, _ = await populated.list_books(page=2, limit=2)

        assert total == 3
        assert len(page_one) == 2
        assert len(page_two) == 1
        assert {b.id for b in page_one}.isdisjoint({b.id for b in page_two})

    async def test_distinct_values(self, populated):
        assert await populated.distinct_categories() == [
            "Classique", "Littérature", "Science Fiction",
        ]
        assert await populated.distinct_authors() == ["Albert Camus", "Frank Herbert"]


class TestFailures:
    """Database errors surface as PersistenceError."""

    async def test_missing_tables(self, tmp_path):
        repo = BookRepository(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")

        with pytest.raises(PersistenceError) as exc_info:
            await repo.add_scanned_book("Dune", "Frank Herbert")

        assert exc_info.value.code == "PERSISTENCE_ERROR"
        await repo.close()
