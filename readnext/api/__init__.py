from fastapi import APIRouter

from readnext.api import books, external, genres, recommendations

router = APIRouter()

router.include_router(books.router, prefix="/books", tags=["books"])
router.include_router(genres.router, prefix="/genres", tags=["genres"])
router.include_router(external.router, prefix="/external", tags=["external"])
router.include_router(recommendations.router, prefix="/recommendations", tags=["recommendations"])
