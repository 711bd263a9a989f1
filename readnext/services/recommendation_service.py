"""
Recommendation service.

Generates personalised recommendations from the external catalog:

1. Load the user's library (empty library -> guidance message, nothing else)
2. Analyse reading taste with the language model, or with the rating-weighted
   heuristic when no model is configured or the model call fails
3. Collect deduplicated candidates from the catalog
4. Let the model pick and order the best 12 (assisted path only)
5. Shape the response with an analysis block and a user-facing message

Any unexpected failure is retried once through the heuristic-only path.
Only if that also fails does the caller see an error.
"""

import random

from readnext.core.config import Settings, get_settings
from readnext.core.logging import get_logger
from readnext.schemas.recommendation import (
    RecommendationAnalysis,
    RecommendationItem,
    RecommendationResponse,
)
from readnext.services.candidate_aggregator import CandidateAggregator, CatalogSearch
from readnext.services.external_apis import CandidateBook, GoogleBooksClient
from readnext.services.library_store import LibraryStore, OwnedBook
from readnext.services.llm_client import LLMClient, create_llm_client
from readnext.services.ranker import Ranker
from readnext.services.taste_analyzer import (
    AssistedTasteAnalyzer,
    HeuristicTasteAnalyzer,
    TasteAnalysisError,
    TasteProfile,
)

logger = get_logger(__name__)

EMPTY_LIBRARY_MESSAGE = "Add some books to your library to receive personalized recommendations!"
ASSISTED_MESSAGE = "Recommendations tailored to your reading profile!"
HEURISTIC_MESSAGE = "Recommendations based on your favorite books!"
NO_GENRE_SIGNAL_MESSAGE = "Tip: rate your books to get even better recommendations!"
FAVORITE_GENRES_PLACEHOLDER = ["Based on your favorite books"]

# Hard cap on a response, whatever MAX_RECOMMENDATIONS says
RESULT_LIMIT = 12


class RecommendationOrchestrator:
    """Runs one recommendation request end to end."""

    def __init__(
        self,
        store: LibraryStore,
        catalog: CatalogSearch,
        llm: LLMClient | None = None,
        max_results: int = 12,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.catalog = catalog
        self.llm = llm
        self.max_results = max(1, min(max_results, RESULT_LIMIT))
        self.rng = rng

    async def recommend(self) -> RecommendationResponse:
        """
        Produce recommendations for the current library.

        Raises:
            Exception: Only when the heuristic retry fails as well, e.g. the
                library store itself is unreachable
        """
        try:
            return await self._recommend()
        except Exception as e:
            logger.error(
                "Recommendation pipeline failed, retrying with heuristic analysis",
                extra={"extra_fields": {"error": str(e)}},
                exc_info=True,
            )

        books = self.store.list_owned_books()
        if not books:
            return self._empty_response()
        return await self._heuristic_response(books)

    async def _recommend(self) -> RecommendationResponse:
        books = self.store.list_owned_books()
        if not books:
            return self._empty_response()

        if self.llm is None:
            return await self._heuristic_response(books)

        try:
            profile = await AssistedTasteAnalyzer(self.llm).analyze(books)
        except TasteAnalysisError as e:
            logger.warning(
                "Assisted taste analysis failed, using heuristic analysis",
                extra={"extra_fields": {"error": str(e)}},
            )
            return await self._heuristic_response(books)

        logger.info(
            "Assisted taste analysis complete",
            extra={
                "extra_fields": {
                    "books": len(books),
                    "queries": profile.search_queries,
                    "genres": profile.top_genres,
                }
            },
        )

        aggregator = CandidateAggregator(self.catalog, books, rng=self.rng)
        candidates = await aggregator.collect_from_queries(profile.search_queries)
        ranked = await Ranker(self.llm, limit=self.max_results).rank(candidates, profile.profile_text)

        return self._build_response(books, profile, ranked, ASSISTED_MESSAGE)

    async def _heuristic_response(self, books: list[OwnedBook]) -> RecommendationResponse:
        profile = HeuristicTasteAnalyzer().build_profile(books)

        aggregator = CandidateAggregator(self.catalog, books, rng=self.rng)
        candidates = await aggregator.collect_fallback(profile)

        message = HEURISTIC_MESSAGE if profile.top_genres else NO_GENRE_SIGNAL_MESSAGE
        return self._build_response(books, profile, candidates, message)

    def _build_response(
        self,
        books: list[OwnedBook],
        profile: TasteProfile,
        candidates: list[CandidateBook],
        message: str,
    ) -> RecommendationResponse:
        return RecommendationResponse(
            recommendations=[
                RecommendationItem.from_candidate(c) for c in candidates[: self.max_results]
            ],
            analysis=RecommendationAnalysis(
                total_books=len(books),
                profile=profile.profile_text,
                favorite_genres=profile.top_genres or list(FAVORITE_GENRES_PLACEHOLDER),
            ),
            message=message,
        )

    @staticmethod
    def _empty_response() -> RecommendationResponse:
        return RecommendationResponse(recommendations=[], analysis=None, message=EMPTY_LIBRARY_MESSAGE)


async def get_recommendations(
    store: LibraryStore,
    settings: Settings | None = None,
) -> RecommendationResponse:
    """
    Get recommendations for the library behind `store`.

    Builds the catalog and language-model clients from settings and closes
    them when the request is done.

    Args:
        store: Read access to the owned books
        settings: Application settings (defaults to the cached settings)

    Returns:
        RecommendationResponse
    """
    settings = settings or get_settings()
    catalog = GoogleBooksClient(settings)
    llm = create_llm_client(settings)

    try:
        orchestrator = RecommendationOrchestrator(
            store,
            catalog,
            llm=llm,
            max_results=settings.MAX_RECOMMENDATIONS,
        )
        return await orchestrator.recommend()
    finally:
        await catalog.close()
        if llm:
            await llm.close()
