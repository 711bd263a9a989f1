from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from readnext.core.database import get_db
from readnext.models.book import ReadingStatus
from readnext.schemas.book import (
    BookCreate,
    BookListResponse,
    BookResponse,
    BookUpdate,
    LibraryStats,
    ProgressUpdate,
)
from readnext.services import book_service
from readnext.services.book_service import BookValidationError

router = APIRouter()


@router.get("/", response_model=BookListResponse)
async def list_books(
    search: str | None = Query(None, description="Match on title or author"),
    status: ReadingStatus | None = Query(None),
    genre_id: int | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """List books in the library."""
    return book_service.list_books(
        db,
        search=search,
        status=status,
        genre_id=genre_id,
        page=page,
        limit=limit,
    )


@router.get("/stats", response_model=LibraryStats)
async def get_stats(db: Session = Depends(get_db)):
    """Reading totals for the whole library."""
    return book_service.library_stats(db)


@router.get("/{book_id}", response_model=BookResponse)
async def get_book(
    book_id: int,
    db: Session = Depends(get_db),
):
    """Get book details by ID."""
    book = book_service.get_book(db, book_id)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@router.post("/", response_model=BookResponse, status_code=201)
async def create_book(
    data: BookCreate,
    db: Session = Depends(get_db),
):
    """
    Add a book to the library.

    Leave `status` out to have it follow reading progress.
    """
    try:
        return book_service.create_book(db, data)
    except BookValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/{book_id}", response_model=BookResponse)
async def update_book(
    book_id: int,
    data: BookUpdate,
    db: Session = Depends(get_db),
):
    """Update a book. Only the fields sent are changed."""
    try:
        book = book_service.update_book(db, book_id, data)
    except BookValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not book:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@router.patch("/{book_id}/progress", response_model=BookResponse)
async def update_progress(
    book_id: int,
    data: ProgressUpdate,
    db: Session = Depends(get_db),
):
    """Record the page reached."""
    try:
        book = book_service.update_progress(db, book_id, data.current_page)
    except BookValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not book:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@router.delete("/{book_id}", status_code=204)
async def delete_book(
    book_id: int,
    db: Session = Depends(get_db),
):
    """Remove a book from the library."""
    if not book_service.delete_book(db, book_id):
        raise HTTPException(status_code=404, detail="Book not found")
    return Response(status_code=204)
