"""
API Routes for Arcana

Route modules:
- scan: Shelf photo upload and reconciliation
- books: Catalog listing, filters and CRUD
"""

from arcana.api.routes.scan import router as scan_router
from arcana.api.routes.books import router as books_router

__all__ = [
    "scan_router",
    "books_router",
]
