from readnext.models.book import Book, Genre, ReadingStatus

__all__ = [
    "Book",
    "Genre",
    "ReadingStatus",
]
