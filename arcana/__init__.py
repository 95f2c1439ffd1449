"""
Arcana

Family book inventory with shelf-photo scanning:
- Shelf recognition through a vision/LLM provider
- Metadata validation against Google Books
- Confidence-gated reconciliation into the catalog
"""

__version__ = "1.0.0"
