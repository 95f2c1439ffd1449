"""
API middleware components.

Cross-cutting concerns for the API:
- Error handling
- CORS configuration
- Request logging
"""

from .error_handler import (
    setup_exception_handlers,
    error_payload,
)

from .cors import setup_cors

from .logging import (
    LoggingConfig,
    setup_logging,
    record_scan_details,
)


__all__ = [
    # Error handling
    "setup_exception_handlers",
    "error_payload",
    # CORS
    "setup_cors",
    # Logging
    "LoggingConfig",
    "setup_logging",
    "record_scan_details",
]
