from datetime import datetime

from pydantic import BaseModel, Field

from readnext.models.book import ReadingStatus


class GenreResponse(BaseModel):
    id: int
    name: str
    book_count: int = 0

    class Config:
        from_attributes = True


class BookCreate(BaseModel):
    title: str
    author: str
    genre: str | None = None  # Genre name, created on first use
    year: int | None = None
    pages: int | None = Field(None, ge=0)
    current_page: int = Field(0, ge=0)
    status: ReadingStatus | None = None  # Omit to derive from progress
    isbn: str | None = Field(None, max_length=13)
    cover_url: str | None = None
    rating: int | None = None  # 0-5, checked by the book service
    synopsis: str | None = None
    notes: str | None = None


class BookUpdate(BaseModel):
    title: str | None = None
    author: str | None = None
    genre: str | None = None
    year: int | None = None
    pages: int | None = Field(None, ge=0)
    current_page: int | None = Field(None, ge=0)
    status: ReadingStatus | None = None
    isbn: str | None = Field(None, max_length=13)
    cover_url: str | None = None
    rating: int | None = None  # 0-5, checked by the book service
    synopsis: str | None = None
    notes: str | None = None


class ProgressUpdate(BaseModel):
    current_page: int = Field(..., ge=0)


class BookResponse(BaseModel):
    id: int
    title: str
    author: str
    genre: str | None
    year: int | None
    pages: int | None
    current_page: int
    status: ReadingStatus
    status_overridden: bool
    isbn: str | None
    cover_url: str | None
    rating: int | None
    synopsis: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class BookListResponse(BaseModel):
    books: list[BookResponse]
    total_count: int
    current_page: int
    total_pages: int


class LibraryStats(BaseModel):
    total: int
    by_status: dict[str, int]
    total_pages: int
    pages_read: int
    average_rating: float  # Over rated books only


class ExternalBookResult(BaseModel):
    id: str
    title: str
    author: str
    pages: int | None = None
    synopsis: str | None = None
    cover: str | None = None
    isbn: str | None = None
    published_year: int | None = None
