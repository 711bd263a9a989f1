"""
Reading-taste analysis.

Two interchangeable strategies produce a `TasteProfile`:

1. AssistedTasteAnalyzer - asks the language model to describe the reader
   and propose catalog search queries
2. HeuristicTasteAnalyzer - ranks genres and authors by rating-weighted
   frequency, with no external calls

Rating weights: 5 stars counts 3, 4 stars counts 2, anything else counts 1.
"""

import json
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Protocol

from readnext.core.logging import get_logger
from readnext.services.library_store import OwnedBook
from readnext.services.llm_client import LLMClient, LLMError, extract_json_object

logger = get_logger(__name__)

ASSISTED = "assisted"
HEURISTIC = "heuristic"

MAX_TOP_GENRES = 3
MAX_TOP_AUTHORS = 2
MAX_SEARCH_QUERIES = 4
TOP_RATED_THRESHOLD = 4

TASTE_SYSTEM_PROMPT = (
    "You are a book recommendation expert. You analyse a reader's personal library "
    "and answer with strictly valid JSON and nothing else."
)

TASTE_ANALYSIS_PROMPT = """Analyse the library below and prepare personalised recommendations.

USER LIBRARY:
{library}

Respond ONLY with a valid JSON object in this format:
{{
  "userProfile": "Short description of the reader profile (1-2 sentences)",
  "topGenres": ["genre1", "genre2", "genre3"],
  "searchQueries": [
    "Google Books search query 1",
    "Google Books search query 2",
    "Google Books search query 3",
    "Google Books search query 4"
  ],
  "reasoning": "Why these queries were chosen (1 sentence)"
}}

IMPORTANT:
- PRIORITISE books rated 5 (the ones the reader enjoyed most)
- Base the recommendations mainly on the highest-rated books
- searchQueries must be in English, they are run against Google Books
- Consider the genres and authors of the best-rated books
- Favour diversity, not just a single genre
- Do not suggest books the reader already owns
"""


class TasteAnalysisError(Exception):
    """A taste-analysis strategy could not produce a profile."""


@dataclass
class TasteProfile:
    """What the pipeline knows about the reader's taste for one request."""

    profile_text: str
    top_genres: list[str] = field(default_factory=list)
    top_authors: list[str] = field(default_factory=list)
    search_queries: list[str] = field(default_factory=list)
    top_rated_books: list[OwnedBook] = field(default_factory=list)
    reasoning: str | None = None
    strategy: str = HEURISTIC


class TasteAnalyzer(Protocol):
    async def analyze(self, books: list[OwnedBook]) -> TasteProfile: ...


def rating_weight(rating: int | None) -> int:
    """Weight a book contributes to its genre and author."""
    if rating == 5:
        return 3
    if rating == 4:
        return 2
    return 1


def rank_by_weight(
    books: Iterable[OwnedBook],
    key: Callable[[OwnedBook], str | None],
    limit: int | None = None,
) -> list[str]:
    """
    Rank the values of `key` by accumulated rating weight.

    Ties keep the order in which values were first seen. Books whose key is
    empty are skipped.
    """
    weights: dict[str, int] = {}
    for book in books:
        value = key(book)
        if value:
            weights[value] = weights.get(value, 0) + rating_weight(book.rating)

    # sorted() is stable and dicts keep insertion order
    ranked = sorted(weights, key=lambda value: weights[value], reverse=True)
    return ranked[:limit] if limit is not None else ranked


def top_rated_books(books: list[OwnedBook]) -> list[OwnedBook]:
    """Books rated 4 or 5, best first; ties keep library order."""
    rated = [b for b in books if b.rating and b.rating >= TOP_RATED_THRESHOLD]
    return sorted(rated, key=lambda b: b.rating, reverse=True)


class HeuristicTasteAnalyzer:
    """Deterministic profile built from rating-weighted genre and author counts."""

    def build_profile(self, books: list[OwnedBook]) -> TasteProfile:
        favourites = top_rated_books(books)

        top_genres = self._rank(books, favourites, lambda b: b.genre, MAX_TOP_GENRES)
        top_authors = self._rank(books, favourites, lambda b: b.author, MAX_TOP_AUTHORS)

        if favourites:
            favourite_titles = [b.title for b in favourites[:2]]
            profile_text = (
                f"Recommendations based on your {len(favourites)} top-rated "
                f"book{'s' if len(favourites) != 1 else ''}: {', '.join(favourite_titles)}"
            )
        else:
            profile_text = (
                f"You have {len(books)} book{'s' if len(books) != 1 else ''} by "
                f"{', '.join(top_authors)} and other authors"
            )

        return TasteProfile(
            profile_text=profile_text,
            top_genres=top_genres,
            top_authors=top_authors,
            top_rated_books=favourites,
            strategy=HEURISTIC,
        )

    async def analyze(self, books: list[OwnedBook]) -> TasteProfile:
        return self.build_profile(books)

    @staticmethod
    def _rank(
        books: list[OwnedBook],
        favourites: list[OwnedBook],
        key: Callable[[OwnedBook], str | None],
        limit: int,
    ) -> list[str]:
        """
        Rank from the top-rated books first, then fill any free slots from
        the rest of the library.
        """
        if not favourites:
            return rank_by_weight(books, key, limit)

        ranked = rank_by_weight(favourites, key, limit)
        if len(ranked) < limit:
            favourite_ids = {id(b) for b in favourites}
            rest = [b for b in books if id(b) not in favourite_ids]
            for value in rank_by_weight(rest, key):
                if len(ranked) >= limit:
                    break
                if value not in ranked:
                    ranked.append(value)
        return ranked


class AssistedTasteAnalyzer:
    """Profile and search queries proposed by the language model."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def analyze(self, books: list[OwnedBook]) -> TasteProfile:
        """
        Raises:
            TasteAnalysisError: On any service or parse failure; callers
                fall back to the heuristic strategy, no retry happens here
        """
        prompt = TASTE_ANALYSIS_PROMPT.format(library=self._serialize_library(books))

        try:
            reply = await self.llm.generate(prompt, system_prompt=TASTE_SYSTEM_PROMPT)
            data = extract_json_object(reply)
        except LLMError as e:
            raise TasteAnalysisError(str(e)) from e

        return self._to_profile(data)

    @staticmethod
    def _serialize_library(books: list[OwnedBook]) -> str:
        return json.dumps(
            [
                {
                    "title": b.title,
                    "author": b.author,
                    "genre": b.genre or "Unspecified",
                    "rating": b.rating or 0,
                    "status": b.status.value if hasattr(b.status, "value") else b.status,
                    "pages": b.page_count,
                }
                for b in books
            ],
            indent=2,
            ensure_ascii=False,
        )

    @staticmethod
    def _to_profile(data: dict) -> TasteProfile:
        queries = data.get("searchQueries")
        if not isinstance(queries, list):
            raise TasteAnalysisError("Model reply has no searchQueries list")

        search_queries = [q.strip() for q in queries if isinstance(q, str) and q.strip()]
        if not search_queries:
            raise TasteAnalysisError("Model reply has no usable search queries")

        genres = data.get("topGenres")
        top_genres = [g for g in genres if isinstance(g, str) and g] if isinstance(genres, list) else []

        profile_text = data.get("userProfile")
        reasoning = data.get("reasoning")

        return TasteProfile(
            profile_text=profile_text if isinstance(profile_text, str) else "",
            top_genres=top_genres[:MAX_TOP_GENRES],
            search_queries=search_queries[:MAX_SEARCH_QUERIES],
            reasoning=reasoning if isinstance(reasoning, str) else None,
            strategy=ASSISTED,
        )
