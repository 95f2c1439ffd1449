"""
Pytest configuration and fixtures for Arcana tests.
"""

import io
import sys
from pathlib import Path
from typing import AsyncGenerator
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from PIL import Image, ImageDraw

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from arcana.api.main import create_app
from arcana.api.dependencies import (
    ServiceContainer,
    Settings,
    get_book_repository,
    get_reading_card_writer,
    get_reconciler,
    get_settings,
)
from arcana.identification.models import (
    DetectedStub,
    EnrichmentResult,
    MetadataCandidate,
    ShelfReading,
)
from arcana.scanning.pipeline import ShelfReconciler
from arcana.storage.book_repository import BookRepository


# =============================================================================
# Test Settings
# =============================================================================

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings configured for testing, with a throwaway SQLite file."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'arcana-test.db'}",
        database_echo=False,
        llm_provider="google",
        google_api_key="test-key",
        max_upload_size_mb=1,
        environment="test",
        debug=True,
    )


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def catalog(test_settings) -> AsyncGenerator[BookRepository, None]:
    """Initialized catalog repository."""
    repo = BookRepository(test_settings.database_url)
    await repo.init()

    yield repo

    await repo.close()


# =============================================================================
# Service Fakes
# =============================================================================

@pytest.fixture
def recognizer() -> Mock:
    """Recognizer fake; set identify.return_value per test."""
    fake = Mock()
    fake.identify = AsyncMock(return_value=ShelfReading())
    return fake


@pytest.fixture
def validator() -> Mock:
    """Metadata validator fake; no candidates unless a test says otherwise."""
    fake = Mock()
    fake.validate = AsyncMock(return_value=EnrichmentResult.empty())
    return fake


@pytest.fixture
def reading_card_writer() -> Mock:
    """Reading card writer fake; set write.return_value per test."""
    fake = Mock()
    fake.write = AsyncMock()
    return fake


@pytest.fixture
def reconciler(recognizer, validator, catalog) -> ShelfReconciler:
    """Pipeline wired to the fakes and the test catalog."""
    return ShelfReconciler(recognizer=recognizer, validator=validator, catalog=catalog)


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def app(test_settings, catalog, reconciler, reading_card_writer):
    """Create FastAPI application for testing."""
    application = create_app(test_settings)

    services = ServiceContainer(test_settings)
    services._book_repository = catalog
    application.state.services = services

    # Override dependencies
    application.dependency_overrides[get_settings] = lambda: test_settings
    application.dependency_overrides[get_book_repository] = lambda: catalog
    application.dependency_overrides[get_reconciler] = lambda: reconciler
    application.dependency_overrides[get_reading_card_writer] = lambda: reading_card_writer

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Image Fixtures
# =============================================================================

@pytest.fixture
def shelf_image_bytes() -> bytes:
    """Synthetic bookshelf photo encoded as JPEG."""
    img = Image.new("RGB", (640, 480), color=(240, 240, 240))
    draw = ImageDraw.Draw(img)

    spine_colors = [
        (150, 50, 50),
        (50, 150, 50),
        (50, 50, 150),
        (150, 150, 50),
        (150, 50, 150),
    ]

    x_start = 50
    for i, color in enumerate(spine_colors):
        width = 40 + (i * 5)
        draw.rectangle([x_start, 100, x_start + width, 400], fill=color)
        x_start += width + 10

    buffer = io.BytesIO()
    img.save(buffer, format="JPEG")
    return buffer.getvalue()


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def dune_stub() -> DetectedStub:
    return DetectedStub(title="Dune", author="Frank Herbert", confidence=0.9)


@pytest.fixture
def dune_candidate() -> MetadataCandidate:
    """Google Books volume for Dune."""
    return MetadataCandidate(
        external_id="B1hSG45JCX4C",
        title="Dune",
        authors=["Frank Herbert"],
        publisher="Penguin",
        published_date="2005-10-01",
        description="Set on the desert planet Arrakis.",
        page_count=612,
        categories=["Fiction"],
        isbn="9780441172719",
        cover_url="https://books.google.com/books/content?id=B1hSG45JCX4C&zoom=0",
    )
