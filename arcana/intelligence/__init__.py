"""
Book Intelligence Module for Arcana

LLM-written companions to catalog entries:
- ReadingCardWriter: summary, themes and discussion questions for a read book
"""

from arcana.intelligence.reading_card import (
    ReadingCard,
    ReadingCardWriter,
    parse_reading_card,
)

__all__ = [
    "ReadingCard",
    "ReadingCardWriter",
    "parse_reading_card",
]
