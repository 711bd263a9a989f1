from readnext.schemas.book import (
    BookCreate,
    BookListResponse,
    BookResponse,
    BookUpdate,
    ExternalBookResult,
    GenreResponse,
    LibraryStats,
    ProgressUpdate,
)
from readnext.schemas.recommendation import (
    ErrorResponse,
    RecommendationAnalysis,
    RecommendationItem,
    RecommendationResponse,
)

__all__ = [
    "BookCreate",
    "BookUpdate",
    "BookResponse",
    "BookListResponse",
    "ProgressUpdate",
    "GenreResponse",
    "LibraryStats",
    "ExternalBookResult",
    "RecommendationItem",
    "RecommendationAnalysis",
    "RecommendationResponse",
    "ErrorResponse",
]
