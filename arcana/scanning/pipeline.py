"""
Shelf Reconciliation Pipeline

Flow of one scan:
1. Recognize the books on the photo (one LLM call)
2. For every stub, concurrently: validate against Google Books, compute
   the final confidence, gate on the acceptance threshold, then insert
   into the catalog unless a duplicate exists
3. Aggregate the per-stub outcomes into a report

A failure on one stub is logged and counted as skipped, as is any listed
item the recognizer rejected. Only a failed recognition aborts the scan.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from loguru import logger

from arcana.identification.models import DetectedStub, EnrichmentResult
from arcana.identification.recognizer import ShelfRecognizer
from arcana.identification.scorer import MetadataValidator
from arcana.exceptions import RecognitionError
from arcana.storage.book_repository import BookRepository
from arcana.storage.models import BookStatus, Owner


ACCEPTANCE_THRESHOLD = 0.70

NO_BOOKS_MESSAGE = "No books detected in this image"


class ScanOutcome(str, Enum):
    """What happened to a single detected stub."""
    ADDED = "added"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ScanStats:
    """Counters for one scan. detected == added + duplicates + skipped."""
    detected: int = 0
    added: int = 0
    duplicates: int = 0
    skipped: int = 0


@dataclass
class ReportedBook:
    """A book reported back to the caller, new or already cataloged."""
    id: str
    title: str
    author: str
    confidence: float
    is_new_book: bool
    cover_url: Optional[str] = None
    copy_number: Optional[int] = None


@dataclass
class ScanReport:
    """Aggregated result of a scan."""
    success: bool
    message: str
    books: list[ReportedBook] = field(default_factory=list)
    stats: ScanStats = field(default_factory=ScanStats)


@dataclass
class ScanProgress:
    """Progress event emitted while a scan runs."""
    step: str
    message: str
    progress: int
    books_found: Optional[int] = None


ProgressCallback = Callable[[ScanProgress], Union[None, Awaitable[None]]]


@dataclass
class _StubResult:
    outcome: ScanOutcome
    book: Optional[ReportedBook] = None


def final_confidence(stub: DetectedStub, enrichment: EnrichmentResult) -> float:
    """Mean of recognition and enrichment confidence."""
    # Rounded so float noise cannot push an exact 0.70 below the threshold
    return round((stub.confidence + enrichment.confidence) / 2, 6)


def build_summary_message(stats: ScanStats) -> str:
    """Human summary built from the non-zero counters."""
    parts = []
    if stats.added > 0:
        parts.append(f"{stats.added} new book(s) added")
    if stats.duplicates > 0:
        parts.append(f"{stats.duplicates} duplicate copy(ies) detected")
    if stats.skipped > 0:
        parts.append(f"{stats.skipped} skipped")
    return ", ".join(parts) if parts else "No books added"


class ShelfReconciler:
    """
    Reconciles a shelf photo with the catalog.

    Usage:
        reconciler = ShelfReconciler(recognizer, validator, repository)
        report = await reconciler.reconcile_shelf(image_bytes, "image/jpeg")
    """

    def __init__(
        self,
        recognizer: ShelfRecognizer,
        validator: MetadataValidator,
        catalog: BookRepository,
        acceptance_threshold: float = ACCEPTANCE_THRESHOLD,
    ):
        self.recognizer = recognizer
        self.validator = validator
        self.catalog = catalog
        self.acceptance_threshold = acceptance_threshold

    async def reconcile_shelf(
        self,
        image: bytes,
        mime_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ScanReport:
        """
        Run a full scan.

        Args:
            image: Raw image bytes
            mime_type: Image MIME type
            on_progress: Optional sync or async callback receiving ScanProgress

        Returns:
            ScanReport

        Raises:
            RecognitionError: If the photo could not be analyzed
        """
        start_time = time.time()

        await self._emit(on_progress, ScanProgress("analyzing", "Analyzing image...", 10))

        try:
            reading = await self.recognizer.identify(image, mime_type)
        except RecognitionError as e:
            logger.error(f"Shelf recognition failed: {e.message}")
            await self._emit(on_progress, ScanProgress("error", e.message, 0))
            raise

        await self._emit(
            on_progress,
            ScanProgress(
                "identifying",
                f"{reading.detected} book(s) detected",
                40,
                books_found=reading.detected,
            ),
        )

        if reading.detected == 0:
            await self._emit(on_progress, ScanProgress("complete", NO_BOOKS_MESSAGE, 100))
            return ScanReport(success=True, message=NO_BOOKS_MESSAGE)

        await self._emit(
            on_progress,
            ScanProgress("enriching", "Validating books against Google Books...", 70),
        )

        results = list(
            await asyncio.gather(*(self._process_stub(stub) for stub in reading.stubs))
        )
        for reason in reading.rejected:
            logger.warning(f"Skipping unusable recognition item: {reason}")
            results.append(_StubResult(ScanOutcome.SKIPPED))

        report = self._aggregate(results)

        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(f"Scan finished in {elapsed_ms:.0f}ms: {report.message}")

        await self._emit(on_progress, ScanProgress("complete", report.message, 100))
        return report

    async def _process_stub(self, stub: DetectedStub) -> _StubResult:
        try:
            enrichment = await self.validator.validate(stub)
            confidence = final_confidence(stub, enrichment)

            if confidence < self.acceptance_threshold:
                logger.debug(
                    f"Skipping '{stub.title}' by {stub.author}: "
                    f"confidence {confidence:.2f} < {self.acceptance_threshold}"
                )
                return _StubResult(ScanOutcome.SKIPPED)

            candidate = enrichment.best_candidate
            fields = {
                "status": BookStatus.TO_READ,
                "owner": Owner.FAMILY,
                "confidence_score": confidence,
            }
            if candidate is not None:
                fields.update(
                    cover_url=candidate.cover_url,
                    description=candidate.description,
                    publisher=candidate.publisher,
                    published_date=candidate.published_date,
                    page_count=candidate.page_count,
                    isbn=candidate.isbn,
                    categories=list(candidate.categories),
                    google_books_id=candidate.external_id,
                )

            book, created = await self.catalog.add_scanned_book(
                stub.title,
                stub.author,
                **fields,
            )
        except Exception as e:
            logger.error(f"Failed to process '{stub.title}' by {stub.author}: {e}")
            return _StubResult(ScanOutcome.SKIPPED)

        if created:
            logger.info(f"Added '{book.title}' by {book.author} ({confidence:.2f})")
        else:
            logger.info(f"Duplicate of '{book.title}' (copy {book.copy_number}) already cataloged")

        return _StubResult(
            ScanOutcome.ADDED if created else ScanOutcome.DUPLICATE,
            ReportedBook(
                id=book.id,
                title=book.title,
                author=book.author,
                confidence=confidence,
                is_new_book=created,
                cover_url=book.cover_url,
                copy_number=book.copy_number,
            ),
        )

    @staticmethod
    def _aggregate(results: list[_StubResult]) -> ScanReport:
        added = duplicates = skipped = 0
        books = []
        for result in results:
            if result.outcome is ScanOutcome.ADDED:
                added += 1
            elif result.outcome is ScanOutcome.DUPLICATE:
                duplicates += 1
            else:
                skipped += 1
            if result.book is not None:
                books.append(result.book)

        stats = ScanStats(
            detected=len(results),
            added=added,
            duplicates=duplicates,
            skipped=skipped,
        )
        return ScanReport(
            success=True,
            message=build_summary_message(stats),
            books=books,
            stats=stats,
        )

    @staticmethod
    async def _emit(callback: Optional[ProgressCallback], event: ScanProgress) -> None:
        if callback is None:
            return
        result = callback(event)
        if inspect.isawaitable(result):
            await result
