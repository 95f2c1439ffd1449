"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- Service instances (LLM clients, recognizer, metadata lookup, catalog,
  scan pipeline, reading cards)
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from fastapi import Depends


# =============================================================================
# Configuration
# =============================================================================

DEFAULT_IMAGE_TYPES = "image/jpeg,image/png,image/webp,image/gif"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./arcana.db"
    database_echo: bool = False

    # LLM provider (recognition and reading cards)
    llm_provider: str = "google"  # google, anthropic, openai
    google_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    recognition_model: Optional[str] = None
    recognition_timeout_seconds: float = 60.0

    # Reading cards
    reading_card_model: Optional[str] = None
    reading_card_timeout_seconds: float = 90.0

    # Metadata lookup
    google_books_api_key: Optional[str] = None
    lookup_timeout_seconds: float = 10.0
    lookup_max_results: int = 10

    # File uploads
    max_upload_size_mb: int = 5
    allowed_image_types: str = DEFAULT_IMAGE_TYPES

    # CORS
    cors_allowed_origins: list[str] = field(default_factory=list)

    # Environment
    environment: str = "development"
    debug: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        origins = os.getenv("CORS_ALLOWED_ORIGINS", "")
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=_env_bool("DATABASE_ECHO"),
            llm_provider=os.getenv("LLM_PROVIDER", cls.llm_provider).lower(),
            google_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            recognition_model=os.getenv("RECOGNITION_MODEL") or None,
            recognition_timeout_seconds=float(
                os.getenv("RECOGNITION_TIMEOUT_SECONDS", cls.recognition_timeout_seconds)
            ),
            reading_card_model=os.getenv("READING_CARD_MODEL") or None,
            reading_card_timeout_seconds=float(
                os.getenv("READING_CARD_TIMEOUT_SECONDS", cls.reading_card_timeout_seconds)
            ),
            google_books_api_key=os.getenv("GOOGLE_BOOKS_API_KEY"),
            lookup_timeout_seconds=float(os.getenv("LOOKUP_TIMEOUT_SECONDS", cls.lookup_timeout_seconds)),
            lookup_max_results=int(os.getenv("LOOKUP_MAX_RESULTS", cls.lookup_max_results)),
            max_upload_size_mb=int(os.getenv("MAX_UPLOAD_SIZE_MB", cls.max_upload_size_mb)),
            allowed_image_types=os.getenv("ALLOWED_IMAGE_TYPES", cls.allowed_image_types),
            cors_allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
            environment=os.getenv("ARCANA_ENV", cls.environment),
            debug=_env_bool("DEBUG", "true"),
        )

    @property
    def allowed_image_type_set(self) -> set[str]:
        return {t.strip().lower() for t in self.allowed_image_types.split(",") if t.strip()}

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def recognition_api_key(self) -> Optional[str]:
        """API key of the configured LLM provider."""
        return {
            "google": self.google_api_key,
            "anthropic": self.anthropic_api_key,
            "openai": self.openai_api_key,
        }.get(self.llm_provider)


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


# =============================================================================
# Service Dependencies (Lazy Loading)
# =============================================================================

class ServiceContainer:
    """
    Container for lazy-loaded service instances.

    Services are initialized on first access to avoid startup delays.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._book_repository = None
        self._lookup_client = None
        self._validator = None
        self._recognizer = None
        self._reading_card_writer = None
        self._reconciler = None

    @property
    def book_repository(self):
        """Get book repository instance."""
        if self._book_repository is None:
            from ..storage.book_repository import BookRepository
            self._book_repository = BookRepository(
                self.settings.database_url,
                echo=self.settings.database_echo,
            )
        return self._book_repository

    @property
    def lookup_client(self):
        """Get Google Books client instance."""
        if self._lookup_client is None:
            from ..identification.google_books import GoogleBooksClient
            self._lookup_client = GoogleBooksClient(
                api_key=self.settings.google_books_api_key,
                timeout=self.settings.lookup_timeout_seconds,
                max_results=self.settings.lookup_max_results,
            )
        return self._lookup_client

    @property
    def validator(self):
        """Get metadata validator instance."""
        if self._validator is None:
            from ..identification.scorer import MetadataValidator
            self._validator = MetadataValidator(self.lookup_client)
        return self._validator

    @property
    def llm_provider(self):
        """Configured LLM provider, validated."""
        from ..llm.clients import LLMProvider

        try:
            return LLMProvider(self.settings.llm_provider)
        except ValueError:
            raise ValueError(
                f"Unknown LLM_PROVIDER '{self.settings.llm_provider}'. "
                f"Expected one of: {', '.join(p.value for p in LLMProvider)}"
            )

    @property
    def recognizer(self):
        """Get shelf recognizer instance."""
        if self._recognizer is None:
            from ..identification.recognizer import create_recognizer

            self._recognizer = create_recognizer(
                provider=self.llm_provider,
                api_key=self.settings.recognition_api_key,
                model=self.settings.recognition_model,
                timeout=self.settings.recognition_timeout_seconds,
            )
        return self._recognizer

    @property
    def reading_card_writer(self):
        """Get reading card writer instance."""
        if self._reading_card_writer is None:
            from ..intelligence.reading_card import ReadingCardWriter
            from ..llm.clients import create_llm_client

            client = create_llm_client(
                self.llm_provider,
                api_key=self.settings.recognition_api_key,
                model=self.settings.reading_card_model or self.settings.recognition_model,
            )
            self._reading_card_writer = ReadingCardWriter(
                client,
                timeout=self.settings.reading_card_timeout_seconds,
            )
        return self._reading_card_writer

    @property
    def reconciler(self):
        """Get shelf reconciliation pipeline instance."""
        if self._reconciler is None:
            from ..scanning.pipeline import ShelfReconciler
            self._reconciler = ShelfReconciler(
                recognizer=self.recognizer,
                validator=self.validator,
                catalog=self.book_repository,
            )
        return self._reconciler

    async def close(self) -> None:
        """Release network clients and database connections."""
        if self._lookup_client is not None:
            await self._lookup_client.close()
        if self._book_repository is not None:
            await self._book_repository.close()


# Global service container
_service_container: Optional[ServiceContainer] = None


def init_services(settings: Settings) -> ServiceContainer:
    """Initialize service container."""
    global _service_container
    _service_container = ServiceContainer(settings)
    return _service_container


def get_service_container() -> ServiceContainer:
    """Get service container instance."""
    if _service_container is None:
        return init_services(get_settings())
    return _service_container


# =============================================================================
# Individual Service Dependencies
# =============================================================================

def get_book_repository(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for book repository."""
    return container.book_repository


def get_reconciler(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for the shelf reconciliation pipeline."""
    return container.reconciler


def get_reading_card_writer(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for the reading card writer."""
    return container.reading_card_writer
