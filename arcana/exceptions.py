"""
Arcana exception hierarchy.

Domain errors carry an error code and HTTP status so the API layer can
translate them without knowing where they were raised.
"""

from typing import Optional


class ArcanaException(Exception):
    """Base exception for Arcana errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: Optional[str] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class NotFoundError(ArcanaException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
            detail=f"No {resource} with identifier '{identifier}' exists",
        )


class ValidationError(ArcanaException):
    """Input validation failed."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            detail=detail,
        )


class RecognitionError(ArcanaException):
    """
    The vision/LLM recognition call failed or returned unusable output.

    Fatal to a scan: there is nothing to reconcile without it.
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            message=message,
            code="RECOGNITION_FAILED",
            status_code=502,
            detail=detail,
        )


class MetadataLookupError(ArcanaException):
    """A metadata service query failed. Recovered inside the lookup client."""

    def __init__(self, service: str, detail: Optional[str] = None):
        super().__init__(
            message=f"{service} lookup failed",
            code="LOOKUP_FAILED",
            status_code=503,
            detail=detail,
        )


class PersistenceError(ArcanaException):
    """Catalog store read or write failed."""

    def __init__(self, operation: str, detail: Optional[str] = None):
        super().__init__(
            message=f"Catalog {operation} failed",
            code="PERSISTENCE_ERROR",
            status_code=500,
            detail=detail,
        )


class PayloadTooLargeError(ArcanaException):
    """Uploaded file exceeds the configured limit."""

    def __init__(self, max_size_mb: int):
        super().__init__(
            message="Image too large",
            code="PAYLOAD_TOO_LARGE",
            status_code=413,
            detail=f"Image exceeds maximum size of {max_size_mb}MB",
        )


class ReadingCardError(ArcanaException):
    """The reading card could not be generated."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            message=message,
            code="READING_CARD_FAILED",
            status_code=502,
            detail=detail,
        )


class ReadingCardUnavailableError(ArcanaException):
    """Reading cards are only written for books the household has read."""

    def __init__(self, status: str):
        super().__init__(
            message="Reading card only available for books marked as read",
            code="READING_CARD_UNAVAILABLE",
            status_code=403,
            detail=f"Book status is {status}",
        )
