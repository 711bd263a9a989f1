"""
Candidate sourcing for recommendations.

Runs catalog searches one after another and keeps a case-insensitive set
of titles already seen (seeded with the user's own library), so later
searches can't re-surface a book an earlier one already produced. Searches
run sequentially because later ones consult the dedup set built by earlier
queries.

Assisted path: the model's search queries, 10 results each, pool of 15.
Fallback path, each step stopping once the pool holds 12:
1. Subject search per top genre (first 4 results each)
2. Author search per top author (first 3 results each)
3. Title + author search per top-rated book, skipping the first hit
"""

import random
from collections.abc import Iterable
from typing import Protocol

from readnext.core.logging import get_logger
from readnext.services.external_apis import CandidateBook
from readnext.services.library_store import OwnedBook
from readnext.services.taste_analyzer import TasteProfile

logger = get_logger(__name__)

ASSISTED_POOL_LIMIT = 15
FALLBACK_POOL_LIMIT = 12

QUERY_PAGE_SIZE = 10
QUERY_OFFSETS = (0, 10, 20)

GENRE_PAGE_SIZE = 8
GENRE_OFFSETS = (0, 10, 20)
PER_GENRE_LIMIT = 4

AUTHOR_PAGE_SIZE = 8
AUTHOR_OFFSETS = (0, 5)
PER_AUTHOR_LIMIT = 3

SIMILAR_PAGE_SIZE = 5
SIMILAR_SOURCE_BOOKS = 3
PER_SIMILAR_LIMIT = 3


class CatalogSearch(Protocol):
    async def search(
        self,
        query: str,
        max_results: int = 10,
        start_index: int | None = None,
        order_by: str | None = "relevance",
        reason: str | None = None,
    ) -> list[CandidateBook]: ...


class TitleDeduplicator:
    """Case-insensitive record of titles that may not be recommended again."""

    def __init__(self, titles: Iterable[str] = ()):
        self._seen = {title.lower() for title in titles}

    def __contains__(self, title: str) -> bool:
        return title.lower() in self._seen

    def add(self, candidate: CandidateBook) -> bool:
        """Record the candidate's title; False if it was already seen."""
        key = candidate.title.lower()
        if key in self._seen:
            return False
        self._seen.add(key)
        return True


class CandidateAggregator:
    """Collects deduplicated candidates for a single recommendation request."""

    def __init__(
        self,
        catalog: CatalogSearch,
        owned_books: list[OwnedBook],
        rng: random.Random | None = None,
    ):
        self.catalog = catalog
        self.rng = rng or random.Random()
        self.seen = TitleDeduplicator(book.title for book in owned_books)

    async def collect_from_queries(self, queries: list[str]) -> list[CandidateBook]:
        """Assisted path: run the model's search queries in order."""
        pool: list[CandidateBook] = []

        for query in queries:
            results = await self._search(
                query,
                max_results=QUERY_PAGE_SIZE,
                start_index=self.rng.choice(QUERY_OFFSETS),
                order_by="relevance",
            )
            self._extend(pool, results, ASSISTED_POOL_LIMIT)
            if len(pool) >= ASSISTED_POOL_LIMIT:
                break

        logger.info(
            "Collected candidates from search queries",
            extra={"extra_fields": {"queries": len(queries), "candidates": len(pool)}},
        )
        return pool

    async def collect_fallback(self, profile: TasteProfile) -> list[CandidateBook]:
        """Fallback path: genre, author, then similar-title searches."""
        pool: list[CandidateBook] = []

        for genre in profile.top_genres:
            if len(pool) >= FALLBACK_POOL_LIMIT:
                break
            results = await self._search(
                f'subject:"{genre}"',
                max_results=GENRE_PAGE_SIZE,
                start_index=self.rng.choice(GENRE_OFFSETS),
                order_by="relevance",
                reason=f"Genre: {genre}",
            )
            self._extend(pool, results[:PER_GENRE_LIMIT], FALLBACK_POOL_LIMIT)

        for author in profile.top_authors:
            if len(pool) >= FALLBACK_POOL_LIMIT:
                break
            results = await self._search(
                f'inauthor:"{author}"',
                max_results=AUTHOR_PAGE_SIZE,
                start_index=self.rng.choice(AUTHOR_OFFSETS),
                order_by=None,
                reason=f"Author: {author}",
            )
            self._extend(pool, results[:PER_AUTHOR_LIMIT], FALLBACK_POOL_LIMIT)

        for book in profile.top_rated_books[:SIMILAR_SOURCE_BOOKS]:
            if len(pool) >= FALLBACK_POOL_LIMIT:
                break
            results = await self._search(
                f'"{book.title}" "{book.author}"',
                max_results=SIMILAR_PAGE_SIZE,
                order_by=None,
                reason=f"Similar to: {book.title}",
            )
            # The first hit is normally the owned book itself
            self._extend(pool, results[1 : 1 + PER_SIMILAR_LIMIT], FALLBACK_POOL_LIMIT)

        logger.info(
            "Collected fallback candidates",
            extra={
                "extra_fields": {
                    "genres": len(profile.top_genres),
                    "authors": len(profile.top_authors),
                    "candidates": len(pool),
                }
            },
        )
        return pool

    async def _search(self, query: str, **kwargs) -> list[CandidateBook]:
        """One catalog call; a failure counts as zero results."""
        try:
            return await self.catalog.search(query, **kwargs)
        except Exception as e:
            logger.warning(
                "Catalog search failed, skipping query",
                extra={"extra_fields": {"query": query, "error": str(e)}},
            )
            return []

    def _extend(self, pool: list[CandidateBook], results: list[CandidateBook], limit: int) -> None:
        for candidate in results:
            if len(pool) >= limit:
                return
            if not candidate.title or not candidate.author:
                continue
            if self.seen.add(candidate):
                pool.append(candidate)
