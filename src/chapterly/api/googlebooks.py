"""Google Books API client for book search and metadata lookup.

Google Books (googleapis.com/books) provides:
- Free-text search (with ``intitle:``, ``inauthor:``, ``isbn:``,
  ``subject:`` qualifiers)
- Volume lookup by id
- Cover thumbnails, page counts, categories and descriptions

An API key is optional; anonymous requests get a lower quota.
"""

import logging
import time
from typing import Optional

import requests

from ..db.schemas import BookMetadata

logger = logging.getLogger(__name__)

PLACEHOLDER_COVER = (
    "https://images.pexels.com/photos/159866/books-book-pages-read-literature-159866.jpeg"
    "?auto=compress&cs=tinysrgb&w=400"
)


class CatalogError(Exception):
    """Base exception for book catalog errors."""

    pass


class CatalogRateLimitError(CatalogError):
    """Raised when rate limited by the catalog."""

    pass


class CatalogNotFoundError(CatalogError):
    """Raised when a requested volume does not exist."""

    pass


def volume_to_metadata(volume: dict) -> BookMetadata:
    """Convert a Google Books volume resource to BookMetadata."""
    info = volume.get("volumeInfo", {})

    authors = info.get("authors") or []
    images = info.get("imageLinks") or {}
    cover = images.get("thumbnail") or images.get("smallThumbnail") or PLACEHOLDER_COVER

    # Prefer ISBN-13, fall back to ISBN-10
    isbn = None
    identifiers = info.get("industryIdentifiers") or []
    for wanted in ("ISBN_13", "ISBN_10"):
        for ident in identifiers:
            if ident.get("type") == wanted:
                isbn = ident.get("identifier")
                break
        if isbn:
            break

    return BookMetadata(
        id=volume["id"],
        title=info.get("title") or "Unknown Title",
        author=", ".join(authors) or "Unknown Author",
        cover_url=cover.replace("http://", "https://"),
        total_pages=info.get("pageCount") or 0,
        description=info.get("description"),
        published_date=info.get("publishedDate"),
        categories=info.get("categories") or [],
        isbn=isbn,
    )


class GoogleBooksClient:
    """Client for the Google Books volumes API."""

    BASE_URL = "https://www.googleapis.com/books/v1/volumes"

    def __init__(
        self,
        timeout: int = 10,
        max_results: int = 20,
        api_key: Optional[str] = None,
    ):
        """Initialize client.

        Args:
            timeout: Request timeout in seconds
            max_results: Result cap for searches (the API allows at most 40)
            api_key: Optional Google API key
        """
        self.timeout = timeout
        self.max_results = min(max_results, 40)
        self.api_key = api_key
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": "Chapterly/0.1"})
        self._last_request_time = 0.0
        self._min_request_interval = 0.2

    def _rate_limit(self) -> None:
        """Enforce a minimum interval between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_request_interval:
            time.sleep(self._min_request_interval - elapsed)
        self._last_request_time = time.time()

    def _get(self, url: str, params: Optional[dict] = None) -> dict:
        """Make GET request with error handling."""
        params = dict(params or {})
        if self.api_key:
            params["key"] = self.api_key

        self._rate_limit()
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout:
            logger.error(f"Catalog request timed out: {url}")
            raise CatalogError("Request timed out")
        except requests.exceptions.HTTPError as e:
            logger.error(f"Catalog HTTP error {e.response.status_code}: {url}")
            if e.response.status_code == 404:
                raise CatalogNotFoundError("Volume not found")
            if e.response.status_code == 429:
                raise CatalogRateLimitError("Rate limited by Google Books")
            raise CatalogError(f"HTTP error: {e.response.status_code}")
        except requests.exceptions.RequestException as e:
            logger.error(f"Catalog request failed: {e}")
            raise CatalogError(f"Request failed: {e}")

    # ========================================================================
    # Search Operations
    # ========================================================================

    def search(self, query: str, limit: Optional[int] = None) -> list[BookMetadata]:
        """Search for books.

        Args:
            query: Free text, optionally with Google Books qualifiers
            limit: Maximum results (defaults to the client's cap)

        Returns:
            List of BookMetadata, empty when nothing matches
        """
        query = query.strip()
        if not query:
            return []

        params = {
            "q": query,
            "maxResults": min(limit or self.max_results, self.max_results),
            "printType": "books",
        }
        data = self._get(self.BASE_URL, params)

        results = []
        for volume in data.get("items", []):
            if volume.get("id"):
                results.append(volume_to_metadata(volume))
        return results

    def get_by_id(self, volume_id: str) -> Optional[BookMetadata]:
        """Look up a single volume.

        Returns:
            BookMetadata, or None if the volume does not exist
        """
        try:
            data = self._get(f"{self.BASE_URL}/{volume_id}")
        except CatalogNotFoundError:
            return None
        return volume_to_metadata(data)

    def search_by_isbn(self, isbn: str) -> Optional[BookMetadata]:
        """First match for an ISBN, or None (including on errors)."""
        isbn = isbn.replace("-", "").replace(" ", "")
        try:
            results = self.search(f"isbn:{isbn}", limit=1)
        except CatalogError as e:
            logger.warning(f"ISBN lookup failed for {isbn}: {e}")
            return None
        return results[0] if results else None

    def popular(self, category: Optional[str] = None) -> list[BookMetadata]:
        """A short list of popular books, optionally within a category.

        Errors degrade to an empty list.
        """
        query = f"subject:{category}" if category else "bestseller"
        try:
            return self.search(query, limit=10)
        except CatalogError as e:
            logger.warning(f"Popular books lookup failed: {e}")
            return []
