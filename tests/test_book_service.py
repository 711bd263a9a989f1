"""Tests for library book management."""

import pytest

from readnext.models.book import ReadingStatus
from readnext.schemas.book import BookCreate, BookUpdate
from readnext.services import book_service
from readnext.services.book_service import BookValidationError, derive_status
from readnext.services.library_store import SqlLibraryStore


class TestDeriveStatus:
    """Test reading status implied by progress."""

    def test_not_started(self):
        assert derive_status(0, 300) == ReadingStatus.WANT_TO_READ
        assert derive_status(None, None) == ReadingStatus.WANT_TO_READ

    def test_in_progress(self):
        assert derive_status(1, 300) == ReadingStatus.READING
        # Unknown length can't be finished
        assert derive_status(50, None) == ReadingStatus.READING

    def test_finished(self):
        assert derive_status(300, 300) == ReadingStatus.FINISHED


class TestBookValidation:
    def test_blank_author(self, db):
        with pytest.raises(BookValidationError):
            book_service.create_book(db, BookCreate(title="Dune", author=""))

    def test_blank_title_on_update(self, db, test_books):
        with pytest.raises(BookValidationError):
            book_service.update_book(db, test_books[0].id, BookUpdate(title=" "))

    def test_shrinking_pages_below_progress(self, db, test_books):
        with pytest.raises(BookValidationError):
            book_service.update_book(db, test_books[1].id, BookUpdate(pages=50))

    def test_clearing_override_not_possible_by_progress(self, db):
        book = book_service.create_book(
            db, BookCreate(title="Hyperion", author="Dan Simmons", pages=482, status=ReadingStatus.PAUSED)
        )

        updated = book_service.update_progress(db, book.id, 10)

        assert updated.status == ReadingStatus.PAUSED

    def test_missing_book(self, db):
        assert book_service.get_book(db, 12345) is None
        assert book_service.update_progress(db, 12345, 10) is None
        assert book_service.delete_book(db, 12345) is False


class TestSqlLibraryStore:
    """Test the library snapshot used by recommendations."""

    def test_snapshot(self, db, test_books):
        books = SqlLibraryStore(db).list_owned_books()

        assert [b.title for b in books] == ["Dune", "The Hobbit", "Neuromancer"]
        assert books[0].genre == "Science Fiction"
        assert books[0].rating == 5
        assert books[0].page_count == 412
        assert books[2].rating is None
