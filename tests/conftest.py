"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Settings are read at import time; keep tests offline and on SQLite
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["GEMINI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["GOOGLE_BOOKS_API_KEY"] = ""

import json
from collections.abc import Callable
from typing import Generator

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from readnext.core.database import Base, get_db
from readnext.main import app
from readnext.models.book import Book, Genre, ReadingStatus
from readnext.services.external_apis import CandidateBook
from readnext.services.library_store import OwnedBook
from readnext.services.llm_client import LLMError

# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def test_books(db: Session) -> list[Book]:
    """Create a small library."""
    science_fiction = Genre(name="Science Fiction")
    fantasy = Genre(name="Fantasy")
    db.add_all([science_fiction, fantasy])
    db.flush()

    books = [
        Book(
            title="Dune",
            author="Frank Herbert",
            genre=science_fiction,
            year=1965,
            pages=412,
            current_page=412,
            status=ReadingStatus.FINISHED,
            rating=5,
        ),
        Book(
            title="The Hobbit",
            author="J.R.R. Tolkien",
            genre=fantasy,
            year=1937,
            pages=310,
            current_page=120,
            status=ReadingStatus.READING,
            rating=4,
        ),
        Book(
            title="Neuromancer",
            author="William Gibson",
            genre=science_fiction,
            year=1984,
            pages=271,
            current_page=0,
            status=ReadingStatus.WANT_TO_READ,
        ),
    ]

    for book in books:
        db.add(book)

    db.commit()

    for book in books:
        db.refresh(book)

    return books


def make_candidate(title: str, author: str = "Some Author", reason: str = "test") -> CandidateBook:
    return CandidateBook(id=title.lower().replace(" ", "-"), title=title, author=author, reason=reason)


def make_owned(
    title: str,
    author: str = "Some Author",
    genre: str | None = None,
    rating: int | None = None,
) -> OwnedBook:
    return OwnedBook(title=title, author=author, genre=genre, rating=rating)


class FakeCatalog:
    """
    Catalog double recording every search.

    `responder` maps (query, kwargs) to a result list; it may raise to
    simulate an upstream failure.
    """

    def __init__(self, responder: Callable[..., list[CandidateBook]] | None = None):
        self.responder = responder or (lambda query, **kwargs: [])
        self.calls: list[tuple[str, dict]] = []

    async def search(self, query: str, **kwargs) -> list[CandidateBook]:
        self.calls.append((query, kwargs))
        return self.responder(query, **kwargs)

    @property
    def queries(self) -> list[str]:
        return [query for query, _ in self.calls]


class FakeLLM:
    """Language-model double returning queued replies (or raising queued errors)."""

    def __init__(self, *replies: str | Exception):
        self.replies = list(replies)
        self.prompts: list[str] = []

    async def generate(self, prompt: str, system_prompt: str | None = None) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise LLMError("no reply queued")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def close(self):
        pass


class FakeStore:
    def __init__(self, books: list[OwnedBook]):
        self.books = books

    def list_owned_books(self) -> list[OwnedBook]:
        return list(self.books)


def google_volume(volume_id: str, title: str, author: str | None = "Some Author", **info) -> dict:
    volume_info = {"title": title, **info}
    if author is not None:
        volume_info["authors"] = [author]
    return {"id": volume_id, "volumeInfo": volume_info}


def json_transport(handler: Callable[[httpx.Request], tuple[int, object]]) -> httpx.MockTransport:
    """MockTransport whose handler returns (status_code, json_body)."""
    def handle(request: httpx.Request) -> httpx.Response:
        status_code, body = handler(request)
        return httpx.Response(status_code, content=json.dumps(body).encode(), headers={"content-type": "application/json"})

    return httpx.MockTransport(handle)
