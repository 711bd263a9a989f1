import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from readnext.core.database import Base


class ReadingStatus(str, enum.Enum):
    WANT_TO_READ = "want_to_read"
    READING = "reading"
    FINISHED = "finished"
    PAUSED = "paused"
    ABANDONED = "abandoned"


class Genre(Base):
    """Genre a library book can be filed under."""

    __tablename__ = "genres"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    books: Mapped[list["Book"]] = relationship(back_populates="genre")


class Book(Base):
    """A book the user owns, with reading progress and rating."""

    __tablename__ = "books"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Core identifiers
    title: Mapped[str] = mapped_column(String(500), index=True)
    author: Mapped[str] = mapped_column(String(255), index=True)
    isbn: Mapped[str | None] = mapped_column(String(13), index=True)

    genre_id: Mapped[int | None] = mapped_column(ForeignKey("genres.id"), index=True)

    # Metadata
    year: Mapped[int | None] = mapped_column(Integer)
    pages: Mapped[int | None] = mapped_column(Integer)
    cover_url: Mapped[str | None] = mapped_column(String(500))
    synopsis: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)

    # Reading progress
    current_page: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[ReadingStatus] = mapped_column(
        Enum(ReadingStatus, native_enum=False, length=20),
        default=ReadingStatus.WANT_TO_READ,
        index=True,
    )
    status_overridden: Mapped[bool] = mapped_column(Boolean, default=False)  # user picked status
    rating: Mapped[int | None] = mapped_column(Integer)  # 0-5 scale, 0 = unrated

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    genre: Mapped["Genre | None"] = relationship(back_populates="books")
