"""
External catalog clients used to source candidate books.

Supports:
- Google Books API (primary catalog for recommendations and search)
- Open Library search (fallback for the external search endpoint)

Catalog flakiness must never abort a recommendation request, so every
search method returns an empty list on HTTP errors, timeouts or malformed
payloads instead of raising.
"""

from dataclasses import dataclass
from typing import Any

import httpx

from readnext.core.config import Settings, get_settings
from readnext.core.logging import get_logger

logger = get_logger(__name__)

# Largest first; Google Books only returns the sizes it has
COVER_SIZE_PREFERENCE = ("extraLarge", "large", "medium", "small", "thumbnail", "smallThumbnail")


@dataclass
class CandidateBook:
    """A book surfaced from the external catalog as a possible recommendation."""

    id: str
    title: str
    author: str
    reason: str
    cover_url: str | None = None
    synopsis: str | None = None
    page_count: int | None = None
    published_year: int | None = None
    isbn: str | None = None
    genre: str | None = None


class GoogleBooksClient:
    """Client for the Google Books volumes API."""

    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None):
        settings = settings or get_settings()
        self.api_key = settings.GOOGLE_BOOKS_API_KEY
        self.client = client or httpx.AsyncClient(
            base_url=settings.GOOGLE_BOOKS_BASE_URL,
            timeout=settings.CATALOG_TIMEOUT_SECONDS,
        )

    async def close(self):
        await self.client.aclose()

    async def search(
        self,
        query: str,
        max_results: int = 10,
        start_index: int | None = None,
        order_by: str | None = "relevance",
        reason: str | None = None,
    ) -> list[CandidateBook]:
        """
        Run a keyword search against the catalog.

        Args:
            query: Google Books query string (supports subject:, inauthor:, ...)
            max_results: Result cap for this call
            start_index: Pagination offset, omitted when 0 or None
            order_by: Ordering hint, omitted when None
            reason: Explanation attached to every candidate (defaults to the query)

        Returns:
            Valid candidates in catalog order, or [] on any failure
        """
        params: dict[str, Any] = {"q": query, "maxResults": max_results}
        if order_by:
            params["orderBy"] = order_by
        if start_index:
            params["startIndex"] = start_index
        if self.api_key:
            params["key"] = self.api_key

        try:
            response = await self.client.get("/volumes", params=params)
            if response.status_code != 200:
                logger.warning(
                    "Google Books search failed",
                    extra={"extra_fields": {"query": query, "status_code": response.status_code}},
                )
                return []

            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Google Books search error",
                extra={"extra_fields": {"query": query, "error": str(e)}},
            )
            return []

        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return []

        candidates = []
        for item in items:
            candidate = self._parse_volume(item, reason or query)
            if candidate:
                candidates.append(candidate)
        return candidates

    @classmethod
    def _parse_volume(cls, item: Any, reason: str) -> CandidateBook | None:
        """Parse a volume item; returns None when title or author is missing."""
        if not isinstance(item, dict):
            return None

        volume_info = item.get("volumeInfo")
        if not isinstance(volume_info, dict):
            volume_info = {}

        title = _str_or_none(volume_info.get("title"))
        author = _str_or_none(_first_or_none(volume_info.get("authors")))
        if not title or not author:
            return None

        isbn = cls._pick_isbn(volume_info.get("industryIdentifiers"))

        return CandidateBook(
            id=str(item.get("id") or isbn or title),
            title=title,
            author=author,
            reason=reason,
            cover_url=cls._pick_cover(volume_info.get("imageLinks")),
            synopsis=_str_or_none(volume_info.get("description")),
            page_count=_int_or_none(volume_info.get("pageCount")),
            published_year=_extract_year(volume_info.get("publishedDate")),
            isbn=isbn,
            genre=_str_or_none(_first_or_none(volume_info.get("categories"))),
        )

    @staticmethod
    def _pick_isbn(identifiers: Any) -> str | None:
        """Prefer ISBN-13 over ISBN-10."""
        if not isinstance(identifiers, list):
            return None

        by_type = {}
        for identifier in identifiers:
            if isinstance(identifier, dict) and _str_or_none(identifier.get("identifier")):
                by_type.setdefault(identifier.get("type"), identifier["identifier"].strip())

        return by_type.get("ISBN_13") or by_type.get("ISBN_10")

    @staticmethod
    def _pick_cover(image_links: Any) -> str | None:
        """Get cover URL (prefer larger images), forced to HTTPS."""
        if not isinstance(image_links, dict):
            return None

        for size in COVER_SIZE_PREFERENCE:
            cover_url = _str_or_none(image_links.get(size))
            if cover_url:
                if cover_url.startswith("http://"):
                    cover_url = cover_url.replace("http://", "https://", 1)
                return cover_url
        return None


class OpenLibraryClient:
    """Client for the Open Library search API."""

    COVERS_URL = "https://covers.openlibrary.org"

    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None):
        settings = settings or get_settings()
        self.client = client or httpx.AsyncClient(
            base_url=settings.OPEN_LIBRARY_BASE_URL,
            timeout=settings.CATALOG_TIMEOUT_SECONDS,
            headers={"User-Agent": f"{settings.APP_NAME}/1.0"},
        )

    async def close(self):
        await self.client.aclose()

    async def search(self, query: str, limit: int = 8) -> list[CandidateBook]:
        """Free-text search; returns [] on any failure."""
        try:
            response = await self.client.get("/search.json", params={"q": query, "limit": limit})
            if response.status_code != 200:
                return []

            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Open Library search error",
                extra={"extra_fields": {"query": query, "error": str(e)}},
            )
            return []

        docs = data.get("docs") if isinstance(data, dict) else None
        if not isinstance(docs, list):
            return []

        results = []
        for doc in docs:
            candidate = self._parse_search_result(doc, query)
            if candidate:
                results.append(candidate)
        return results

    def _parse_search_result(self, doc: Any, reason: str) -> CandidateBook | None:
        if not isinstance(doc, dict):
            return None

        title = _str_or_none(doc.get("title"))
        author = _str_or_none(_first_or_none(doc.get("author_name")))
        if not title or not author:
            return None

        cover_url = None
        cover_i = _int_or_none(doc.get("cover_i"))
        if cover_i:
            cover_url = f"{self.COVERS_URL}/b/id/{cover_i}-M.jpg"

        key = _str_or_none(doc.get("key")) or ""
        return CandidateBook(
            id=key.replace("/works/", "") or f"{title}-{cover_i or ''}",
            title=title,
            author=author,
            reason=reason,
            cover_url=cover_url,
            page_count=_int_or_none(doc.get("number_of_pages_median")),
            published_year=_int_or_none(doc.get("first_publish_year")),
            isbn=_str_or_none(_first_or_none(doc.get("isbn"))),
        )


class CatalogSearchService:
    """
    Book lookup for the "add a book" flow.

    Tries Google Books first and falls back to Open Library when it
    comes back empty.
    """

    MAX_LIMIT = 20

    def __init__(
        self,
        google_books: GoogleBooksClient | None = None,
        open_library: OpenLibraryClient | None = None,
    ):
        self.google_books = google_books or GoogleBooksClient()
        self.open_library = open_library or OpenLibraryClient()

    async def close(self):
        await self.google_books.close()
        await self.open_library.close()

    async def search_external(self, query: str, limit: int = 8) -> list[CandidateBook]:
        query = query.strip()
        if not query:
            return []

        limit = max(1, min(limit, self.MAX_LIMIT))

        results = await self.google_books.search(query, max_results=limit, order_by=None)
        if results:
            return results

        logger.info(
            "Google Books returned nothing, trying Open Library",
            extra={"extra_fields": {"query": query}},
        )
        return await self.open_library.search(query, limit=limit)


def _extract_year(date_str: Any) -> int | None:
    """Extract the year from a catalog date like '2015-05-05' or '1965'."""
    if not date_str:
        return None
    try:
        return int(str(date_str)[:4])
    except ValueError:
        return None


def _first_or_none(lst: Any) -> Any | None:
    """Return first element of a list or None."""
    if isinstance(lst, list) and lst:
        return lst[0]
    return None


def _str_or_none(value: Any) -> str | None:
    """Stripped string, or None for blanks and non-string payload values."""
    if isinstance(value, str):
        return value.strip() or None
    return None


def _int_or_none(value: Any) -> int | None:
    # bool is an int subclass
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None
