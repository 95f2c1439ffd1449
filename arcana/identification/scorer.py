"""
Match Scorer

Picks the metadata candidate that best fits a detected stub and scores the
fit with weighted text heuristics:

- Title: 50 points (exact), 35 (containment), up to 25 (word overlap)
- Author: 50 points (containment), up to 35 (word overlap)
- Publisher bonus: 20 points, only when the stub carries a publisher
- Collection bonus: 15 points, only when the stub carries a collection

The denominator only grows with the bonus dimensions actually in play, so a
stub without edition hints can still reach 1.0.
"""

from typing import Optional

from loguru import logger

from arcana.identification.google_books import GoogleBooksClient
from arcana.identification.models import DetectedStub, EnrichmentResult, MetadataCandidate


TITLE_EXACT_POINTS = 50
TITLE_CONTAINS_POINTS = 35
TITLE_WORDS_MAX_POINTS = 25
AUTHOR_CONTAINS_POINTS = 50
AUTHOR_WORDS_MAX_POINTS = 35
PUBLISHER_BONUS = 20
COLLECTION_BONUS = 15
BASE_MAX_POINTS = TITLE_EXACT_POINTS + AUTHOR_CONTAINS_POINTS

VALIDITY_THRESHOLD = 0.5


def normalize(text: Optional[str]) -> str:
    """Lowercase and trim."""
    return (text or "").lower().strip()


def contains_either(a: str, b: str) -> bool:
    """True when either non-empty string contains the other."""
    if not a or not b:
        return False
    return a in b or b in a


def word_overlap(query: str, target: str) -> float:
    """Fraction of whitespace-delimited query words found in target."""
    words = query.split()
    if not words:
        return 0.0
    matched = [w for w in words if w in target]
    return len(matched) / len(words)


class MatchScorer:
    """Selects and scores metadata candidates for a detected stub."""

    def select(
        self,
        stub: DetectedStub,
        candidates: list[MetadataCandidate],
    ) -> Optional[MetadataCandidate]:
        """
        Pick the best candidate.

        Edition constraints (publisher, collection) are relaxed when they
        rule out every title/author match; with nothing matching at all the
        first candidate is used as a best-effort default.
        """
        if not candidates:
            return None

        publisher = normalize(stub.publisher)
        collection = normalize(stub.collection)

        if publisher or collection:
            match = self._first_match(stub, candidates, publisher, collection)
            if match is not None:
                return match

        match = self._first_match(stub, candidates, "", "")
        if match is not None:
            return match

        return candidates[0]

    def _first_match(
        self,
        stub: DetectedStub,
        candidates: list[MetadataCandidate],
        publisher: str,
        collection: str,
    ) -> Optional[MetadataCandidate]:
        title = normalize(stub.title)
        author = normalize(stub.author)

        for candidate in candidates:
            if not contains_either(normalize(candidate.title), title):
                continue
            if not contains_either(normalize(candidate.author_line), author):
                continue
            if publisher and not contains_either(normalize(candidate.publisher), publisher):
                continue
            if collection and not self._collection_matches(candidate, collection):
                continue
            return candidate

        return None

    @staticmethod
    def _collection_matches(candidate: MetadataCandidate, collection: str) -> bool:
        full_title = f"{normalize(candidate.title)} {normalize(candidate.subtitle)}"
        return collection in full_title or collection in normalize(candidate.publisher)

    def confidence(self, stub: DetectedStub, candidate: MetadataCandidate) -> float:
        """Weighted similarity between a stub and one candidate, in [0, 1]."""
        title = normalize(stub.title)
        author = normalize(stub.author)
        book_title = normalize(candidate.title)
        book_authors = normalize(candidate.author_line)

        score = 0.0
        max_score = BASE_MAX_POINTS

        if book_title and book_title == title:
            score += TITLE_EXACT_POINTS
        elif contains_either(book_title, title):
            score += TITLE_CONTAINS_POINTS
        else:
            score += min(TITLE_WORDS_MAX_POINTS, word_overlap(title, book_title) * TITLE_WORDS_MAX_POINTS)

        if contains_either(book_authors, author):
            score += AUTHOR_CONTAINS_POINTS
        else:
            score += min(AUTHOR_WORDS_MAX_POINTS, word_overlap(author, book_authors) * AUTHOR_WORDS_MAX_POINTS)

        publisher = normalize(stub.publisher)
        if publisher:
            max_score += PUBLISHER_BONUS
            if contains_either(normalize(candidate.publisher), publisher):
                score += PUBLISHER_BONUS

        collection = normalize(stub.collection)
        if collection:
            max_score += COLLECTION_BONUS
            if self._collection_matches(candidate, collection):
                score += COLLECTION_BONUS

        return max(0.0, min(1.0, score / max_score))

    def score(
        self,
        stub: DetectedStub,
        candidates: list[MetadataCandidate],
    ) -> EnrichmentResult:
        """Select the best candidate and compute the enrichment confidence."""
        best = self.select(stub, candidates)
        if best is None:
            return EnrichmentResult.empty()

        confidence = self.confidence(stub, best)
        return EnrichmentResult(
            valid=confidence > VALIDITY_THRESHOLD,
            confidence=confidence,
            best_candidate=best,
        )


class MetadataValidator:
    """
    Cross-validates a detected stub against the metadata service.

    An ISBN hit is an exact match and bypasses the weighted scoring.
    """

    def __init__(
        self,
        lookup_client: GoogleBooksClient,
        scorer: Optional[MatchScorer] = None,
    ):
        self.lookup_client = lookup_client
        self.scorer = scorer or MatchScorer()

    async def validate(self, stub: DetectedStub) -> EnrichmentResult:
        """Look up candidates for a stub and score them."""
        result = await self.lookup_client.lookup(
            stub.title,
            stub.author,
            isbn=stub.isbn,
            publisher=stub.publisher,
        )

        if not result.found:
            logger.info(f"No metadata found for '{stub.title}' by {stub.author}")
            return EnrichmentResult.empty()

        if result.exact:
            return EnrichmentResult(
                valid=True,
                confidence=1.0,
                best_candidate=result.candidates[0],
            )

        enrichment = self.scorer.score(stub, result.candidates)
        logger.debug(
            f"'{stub.title}' enrichment confidence {enrichment.confidence:.2f} "
            f"via {result.strategy}"
        )
        return enrichment
