"""Book catalog client.

Provides book search and metadata lookup against Google Books.
"""

from .googlebooks import (
    CatalogError,
    CatalogNotFoundError,
    CatalogRateLimitError,
    GoogleBooksClient,
    volume_to_metadata,
)

__all__ = [
    "CatalogError",
    "CatalogNotFoundError",
    "CatalogRateLimitError",
    "GoogleBooksClient",
    "volume_to_metadata",
]
