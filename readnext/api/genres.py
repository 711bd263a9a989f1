from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from readnext.core.database import get_db
from readnext.schemas.book import GenreResponse
from readnext.services import book_service

router = APIRouter()


@router.get("/", response_model=list[GenreResponse])
async def list_genres(db: Session = Depends(get_db)):
    """List genres with the number of books in each."""
    return book_service.list_genres(db)
