from readnext.services import book_service, recommendation_service
from readnext.services.candidate_aggregator import CandidateAggregator, TitleDeduplicator
from readnext.services.external_apis import (
    CandidateBook,
    CatalogSearchService,
    GoogleBooksClient,
    OpenLibraryClient,
)
from readnext.services.library_store import LibraryStore, OwnedBook, SqlLibraryStore
from readnext.services.llm_client import (
    AnthropicClient,
    GeminiClient,
    LLMClient,
    LLMError,
    create_llm_client,
)
from readnext.services.ranker import Ranker
from readnext.services.recommendation_service import RecommendationOrchestrator
from readnext.services.taste_analyzer import (
    AssistedTasteAnalyzer,
    HeuristicTasteAnalyzer,
    TasteProfile,
)

__all__ = [
    "book_service",
    "recommendation_service",
    # Library
    "LibraryStore",
    "OwnedBook",
    "SqlLibraryStore",
    # External catalog
    "CandidateBook",
    "CatalogSearchService",
    "GoogleBooksClient",
    "OpenLibraryClient",
    # Language model
    "LLMClient",
    "LLMError",
    "GeminiClient",
    "AnthropicClient",
    "create_llm_client",
    # Pipeline
    "TasteProfile",
    "HeuristicTasteAnalyzer",
    "AssistedTasteAnalyzer",
    "CandidateAggregator",
    "TitleDeduplicator",
    "Ranker",
    "RecommendationOrchestrator",
]
