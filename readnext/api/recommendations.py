from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from readnext.core.config import Settings, get_settings
from readnext.core.database import get_db
from readnext.core.logging import get_logger
from readnext.schemas.recommendation import ErrorResponse, RecommendationResponse
from readnext.services import recommendation_service
from readnext.services.library_store import LibraryStore, SqlLibraryStore

logger = get_logger(__name__)

router = APIRouter()


def get_library_store(db: Session = Depends(get_db)) -> LibraryStore:
    return SqlLibraryStore(db)


@router.get(
    "/",
    response_model=RecommendationResponse,
    responses={500: {"model": ErrorResponse}},
)
async def get_recommendations(
    store: LibraryStore = Depends(get_library_store),
    settings: Settings = Depends(get_settings),
):
    """
    Get personalised recommendations from the external catalog.

    Uses the language model for taste analysis and ranking when a provider
    key is configured, and a rating-weighted heuristic otherwise.
    """
    try:
        return await recommendation_service.get_recommendations(store, settings)
    except Exception as e:
        logger.error(
            "Failed to fetch recommendations",
            extra={"extra_fields": {"error": str(e)}},
            exc_info=True,
        )
        return JSONResponse(status_code=500, content={"error": "Failed to fetch recommendations"})
