"""
Library book management.

Reading status follows progress (current page vs. total pages) until the
user picks a status explicitly; from then on the chosen status sticks.
"""

import math

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session, joinedload

from readnext.core.logging import get_logger
from readnext.models.book import Book, Genre, ReadingStatus
from readnext.schemas.book import (
    BookCreate,
    BookListResponse,
    BookResponse,
    BookUpdate,
    GenreResponse,
    LibraryStats,
)

logger = get_logger(__name__)


class BookValidationError(ValueError):
    """Raised when book data breaks a library rule."""


def derive_status(current_page: int | None, pages: int | None) -> ReadingStatus:
    """Reading status implied by progress alone."""
    current_page = current_page or 0
    if pages and current_page >= pages:
        return ReadingStatus.FINISHED
    if current_page > 0:
        return ReadingStatus.READING
    return ReadingStatus.WANT_TO_READ


def list_books(
    db: Session,
    search: str | None = None,
    status: ReadingStatus | None = None,
    genre_id: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> BookListResponse:
    """List library books, most recently updated first."""
    q = db.query(Book)

    if search:
        search_term = f"%{search.lower()}%"
        q = q.filter(or_(Book.title.ilike(search_term), Book.author.ilike(search_term)))

    if status:
        q = q.filter(Book.status == status)

    if genre_id:
        q = q.filter(Book.genre_id == genre_id)

    total_count = q.count()
    books = (
        q.options(joinedload(Book.genre))
        .order_by(Book.updated_at.desc(), Book.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return BookListResponse(
        books=[_to_response(book) for book in books],
        total_count=total_count,
        current_page=page,
        total_pages=math.ceil(total_count / limit) if total_count else 0,
    )


def get_book(db: Session, book_id: int) -> BookResponse | None:
    book = _get(db, book_id)
    return _to_response(book) if book else None


def create_book(db: Session, data: BookCreate) -> BookResponse:
    """
    Add a book to the library.

    Raises:
        BookValidationError: If title/author are blank, the rating is out of
            range or the current page is past the end of the book
    """
    title = _require_text(data.title, "Title")
    author = _require_text(data.author, "Author")
    _validate_rating(data.rating)
    _validate_progress(data.current_page, data.pages)

    book = Book(
        title=title,
        author=author,
        genre=_get_or_create_genre(db, data.genre),
        year=data.year,
        pages=data.pages,
        current_page=data.current_page,
        isbn=data.isbn,
        cover_url=data.cover_url,
        rating=data.rating,
        synopsis=data.synopsis,
        notes=data.notes,
    )

    if data.status is not None:
        book.status = data.status
        book.status_overridden = True
    else:
        book.status = derive_status(book.current_page, book.pages)
        book.status_overridden = False

    db.add(book)
    db.commit()
    db.refresh(book)

    logger.info("Book added", extra={"extra_fields": {"book_id": book.id, "title": book.title}})
    return _to_response(book)


def update_book(db: Session, book_id: int, data: BookUpdate) -> BookResponse | None:
    """
    Apply a partial update; only fields present in the request change.

    Raises:
        BookValidationError: On the same rules as create_book
    """
    book = _get(db, book_id)
    if not book:
        return None

    changes = data.model_dump(exclude_unset=True)
    try:
        _apply_changes(db, book, changes)
    except BookValidationError:
        db.rollback()
        raise

    db.commit()
    db.refresh(book)
    return _to_response(book)


def _apply_changes(db: Session, book: Book, changes: dict) -> None:
    if "title" in changes:
        book.title = _require_text(changes["title"], "Title")
    if "author" in changes:
        book.author = _require_text(changes["author"], "Author")
    if "rating" in changes:
        _validate_rating(changes["rating"])
        book.rating = changes["rating"]
    if "genre" in changes:
        book.genre = _get_or_create_genre(db, changes["genre"])

    for field in ("year", "pages", "isbn", "cover_url", "synopsis", "notes"):
        if field in changes:
            setattr(book, field, changes[field])

    if changes.get("current_page") is not None:
        book.current_page = changes["current_page"]

    _validate_progress(book.current_page, book.pages)

    if changes.get("status") is not None:
        book.status = changes["status"]
        book.status_overridden = True
    elif not book.status_overridden:
        book.status = derive_status(book.current_page, book.pages)


def update_progress(db: Session, book_id: int, current_page: int) -> BookResponse | None:
    return update_book(db, book_id, BookUpdate(current_page=current_page))


def delete_book(db: Session, book_id: int) -> bool:
    book = _get(db, book_id)
    if not book:
        return False

    db.delete(book)
    db.commit()
    return True


def library_stats(db: Session) -> LibraryStats:
    """Totals by status, page counts and the average of rated books."""
    by_status = {status.value: 0 for status in ReadingStatus}
    for status, count in db.query(Book.status, func.count(Book.id)).group_by(Book.status).all():
        by_status[ReadingStatus(status).value] = count

    total_pages, pages_read, average_rating = db.query(
        func.coalesce(func.sum(Book.pages), 0),
        func.coalesce(func.sum(Book.current_page), 0),
        func.avg(case((Book.rating > 0, Book.rating))),
    ).one()

    return LibraryStats(
        total=sum(by_status.values()),
        by_status=by_status,
        total_pages=int(total_pages),
        pages_read=int(pages_read),
        average_rating=round(float(average_rating or 0), 2),
    )


def list_genres(db: Session) -> list[GenreResponse]:
    """Genres with the number of library books filed under each."""
    rows = (
        db.query(Genre, func.count(Book.id))
        .outerjoin(Book, Book.genre_id == Genre.id)
        .group_by(Genre.id)
        .order_by(Genre.name)
        .all()
    )
    return [GenreResponse(id=genre.id, name=genre.name, book_count=count) for genre, count in rows]


def _get(db: Session, book_id: int) -> Book | None:
    return (
        db.query(Book).options(joinedload(Book.genre)).filter(Book.id == book_id).first()
    )


def _get_or_create_genre(db: Session, name: str | None) -> Genre | None:
    name = (name or "").strip()
    if not name:
        return None

    genre = db.query(Genre).filter(func.lower(Genre.name) == name.lower()).first()
    if not genre:
        genre = Genre(name=name)
        db.add(genre)
        db.flush()
    return genre


def _require_text(value: str | None, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise BookValidationError(f"{label} is required")
    return value


def _validate_rating(rating: int | None) -> None:
    if rating is not None and not 0 <= rating <= 5:
        raise BookValidationError("Rating must be between 0 and 5")


def _validate_progress(current_page: int | None, pages: int | None) -> None:
    if current_page is not None and current_page < 0:
        raise BookValidationError("Current page cannot be negative")
    if current_page and pages and current_page > pages:
        raise BookValidationError("Current page cannot be greater than the total number of pages")


def _to_response(book: Book) -> BookResponse:
    return BookResponse(
        id=book.id,
        title=book.title,
        author=book.author,
        genre=book.genre.name if book.genre else None,
        year=book.year,
        pages=book.pages,
        current_page=book.current_page or 0,
        status=book.status,
        status_overridden=book.status_overridden,
        isbn=book.isbn,
        cover_url=book.cover_url,
        rating=book.rating,
        synopsis=book.synopsis,
        notes=book.notes,
        created_at=book.created_at,
        updated_at=book.updated_at,
    )
