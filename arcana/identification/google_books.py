"""
Google Books API Client

Looks up candidate volumes for a detected book. Queries are tried through an
ordered list of relaxation strategies, from the most precise (ISBN) to the
widest (title and author only), until one returns results.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import httpx
from loguru import logger

from arcana.exceptions import MetadataLookupError
from arcana.identification.models import MetadataCandidate


@dataclass
class LookupResult:
    """Candidates returned by a lookup and how they were found."""

    candidates: list[MetadataCandidate] = field(default_factory=list)
    exact: bool = False
    strategy: Optional[str] = None

    @property
    def found(self) -> bool:
        return bool(self.candidates)


@dataclass(frozen=True)
class QueryStrategy:
    """One way of querying the catalog for a book."""

    name: str
    build_query: Callable[[str, str, Optional[str], Optional[str]], Optional[str]]
    exact: bool = False


def clean_isbn(isbn: str) -> str:
    """Remove dashes and spaces from an ISBN."""
    return isbn.replace("-", "").replace(" ", "")


def _isbn_query(title, author, isbn, publisher):
    if not isbn:
        return None
    return f"isbn:{clean_isbn(isbn)}"


def _title_author_publisher_query(title, author, isbn, publisher):
    if not publisher:
        return None
    return f"intitle:{title}+inauthor:{author}+inpublisher:{publisher}"


def _title_author_query(title, author, isbn, publisher):
    return f"intitle:{title}+inauthor:{author}"


# Tried in order; a strategy returning None does not apply to the request
RELAXATION_STRATEGIES: tuple[QueryStrategy, ...] = (
    QueryStrategy("isbn", _isbn_query, exact=True),
    QueryStrategy("title_author_publisher", _title_author_publisher_query),
    QueryStrategy("title_author", _title_author_query),
)


class GoogleBooksClient:
    """
    Client for the Google Books volumes API.

    Lookup is best-effort enrichment: service failures are logged and
    reported as empty results, never raised to the caller.
    """

    BASE_URL = "https://www.googleapis.com/books/v1"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        max_results: int = 10,
        strategies: tuple[QueryStrategy, ...] = RELAXATION_STRATEGIES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize client.

        Args:
            api_key: Optional API key. Rate limits are lower without one.
            timeout: Per-request timeout in seconds
            max_results: Maximum volumes requested per query (API caps at 40)
            strategies: Ordered query relaxation strategies
            transport: Custom httpx transport (used by tests)
        """
        self.api_key = api_key
        self.timeout = timeout
        self.max_results = min(max_results, 40)
        self.strategies = strategies
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        if not self.api_key:
            logger.warning("No Google Books API key provided. Rate limits will be lower.")

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def lookup(
        self,
        title: str,
        author: str,
        isbn: Optional[str] = None,
        publisher: Optional[str] = None,
    ) -> LookupResult:
        """
        Find candidate volumes for a book.

        Args:
            title: Title as read from the spine
            author: Author as read from the spine
            isbn: ISBN if legible
            publisher: Publisher hint used to narrow the search

        Returns:
            LookupResult from the first strategy that produced candidates,
            or an empty result when none did
        """
        for strategy in self.strategies:
            query = strategy.build_query(title, author, isbn, publisher)
            if query is None:
                continue

            try:
                candidates = await self.search(query)
            except MetadataLookupError as e:
                logger.warning(f"Lookup strategy '{strategy.name}' failed for '{title}': {e.detail}")
                continue

            if candidates:
                logger.debug(f"'{title}' matched {len(candidates)} volume(s) via {strategy.name}")
                return LookupResult(
                    candidates=candidates,
                    exact=strategy.exact,
                    strategy=strategy.name,
                )

            logger.debug(f"No volumes for '{title}' via {strategy.name}, widening")

        return LookupResult()

    async def search(self, query: str) -> list[MetadataCandidate]:
        """
        Run a raw volumes query.

        Raises:
            MetadataLookupError: On network failure, non-200 status or
                an unparseable body.
        """
        params: dict[str, Any] = {
            "q": query,
            "maxResults": self.max_results,
            "printType": "books",
        }
        if self.api_key:
            params["key"] = self.api_key

        client = await self._get_client()

        try:
            response = await client.get(f"{self.BASE_URL}/volumes", params=params)
        except httpx.HTTPError as e:
            raise MetadataLookupError("Google Books", detail=f"{type(e).__name__}: {e}") from e

        if response.status_code != 200:
            raise MetadataLookupError(
                "Google Books",
                detail=f"HTTP {response.status_code}: {response.text[:200]}",
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MetadataLookupError("Google Books", detail="Invalid JSON body") from e

        if not isinstance(data, dict):
            raise MetadataLookupError("Google Books", detail="Unexpected response shape")

        results = []
        for item in data.get("items") or []:
            candidate = self._parse_volume(item)
            if candidate:
                results.append(candidate)

        return results

    def _parse_volume(self, item: dict) -> Optional[MetadataCandidate]:
        """Parse a raw volume into a MetadataCandidate."""
        if not isinstance(item, dict):
            return None

        info = item.get("volumeInfo") or {}
        title = info.get("title")
        if not title:
            return None

        isbn = None
        for identifier in info.get("industryIdentifiers") or []:
            if identifier.get("type") in ("ISBN_13", "ISBN_10"):
                isbn = identifier.get("identifier")
                break

        page_count = info.get("pageCount")
        if not isinstance(page_count, int):
            page_count = None

        return MetadataCandidate(
            external_id=item.get("id") or "",
            title=title,
            subtitle=info.get("subtitle"),
            authors=list(info.get("authors") or []),
            publisher=info.get("publisher"),
            published_date=info.get("publishedDate"),
            description=info.get("description"),
            page_count=page_count,
            categories=list(info.get("categories") or []),
            isbn=isbn,
            cover_url=best_cover_url(info.get("imageLinks")),
        )

    async def close(self):
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


def best_cover_url(image_links: Optional[dict]) -> Optional[str]:
    """Pick the largest available cover and normalize it to a flat https image."""
    if not image_links:
        return None

    url = (
        image_links.get("large")
        or image_links.get("medium")
        or image_links.get("small")
        or image_links.get("thumbnail")
        or image_links.get("smallThumbnail")
    )
    if not url:
        return None

    url = url.replace("http:", "https:", 1)
    url = url.replace("&edge=curl", "")
    url = url.replace("&zoom=1", "&zoom=0")
    return url
