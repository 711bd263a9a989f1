"""
Read access to the user's library for the recommendation pipeline.

The pipeline only ever needs a flat, immutable snapshot of the owned books,
so stores hand out `OwnedBook` values rather than ORM rows.
"""

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.orm import Session, joinedload

from readnext.models.book import Book, ReadingStatus


@dataclass(frozen=True)
class OwnedBook:
    """A book already in the user's library."""

    title: str
    author: str
    genre: str | None = None
    rating: int | None = None  # 0 or None means unrated
    status: ReadingStatus = ReadingStatus.WANT_TO_READ
    page_count: int | None = None


class LibraryStore(Protocol):
    def list_owned_books(self) -> list[OwnedBook]: ...


class SqlLibraryStore:
    """LibraryStore backed by the `books` table."""

    def __init__(self, db: Session):
        self.db = db

    def list_owned_books(self) -> list[OwnedBook]:
        books = self.db.query(Book).options(joinedload(Book.genre)).order_by(Book.id).all()
        return [
            OwnedBook(
                title=book.title,
                author=book.author,
                genre=book.genre.name if book.genre else None,
                rating=book.rating,
                status=book.status,
                page_count=book.pages,
            )
            for book in books
        ]
