"""
Scanning Module for Arcana

Turns a shelf photo into catalog entries.
"""

from arcana.scanning.pipeline import (
    ACCEPTANCE_THRESHOLD,
    ScanOutcome,
    ScanStats,
    ReportedBook,
    ScanReport,
    ScanProgress,
    ShelfReconciler,
    build_summary_message,
)

__all__ = [
    "ACCEPTANCE_THRESHOLD",
    "ScanOutcome",
    "ScanStats",
    "ReportedBook",
    "ScanReport",
    "ScanProgress",
    "ShelfReconciler",
    "build_summary_message",
]
