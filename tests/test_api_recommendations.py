"""Tests for recommendations API endpoints."""

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import google_volume, json_transport
from readnext.api.recommendations import get_library_store
from readnext.core.config import Settings, get_settings
from readnext.main import app
from readnext.services import recommendation_service
from readnext.services.external_apis import GoogleBooksClient


@pytest.fixture
def offline_settings():
    """Settings with no language-model key, so the heuristic path runs."""
    settings = Settings(GEMINI_API_KEY="", ANTHROPIC_API_KEY="")
    app.dependency_overrides[get_settings] = lambda: settings
    return settings


@pytest.fixture
def catalog_requests(monkeypatch):
    """Route Google Books calls to a canned catalog and record the queries."""
    queries = []

    def handler(request: httpx.Request):
        query = request.url.params["q"]
        queries.append(query)
        if query == 'subject:"Science Fiction"':
            return 200, {
                "items": [
                    google_volume("v1", "Dune", "Frank Herbert"),
                    google_volume("v2", "Foundation", "Isaac Asimov", publishedDate="1951"),
                    google_volume("v3", "Hyperion", "Dan Simmons"),
                ]
            }
        return 200, {"items": [google_volume("v4", "The Left Hand of Darkness", "Ursula K. Le Guin")]}

    def client_factory(settings):
        return GoogleBooksClient(
            settings,
            client=httpx.AsyncClient(base_url=settings.GOOGLE_BOOKS_BASE_URL, transport=json_transport(handler)),
        )

    monkeypatch.setattr(recommendation_service, "GoogleBooksClient", client_factory)
    return queries


class TestGetRecommendations:
    """Test recommendations endpoint."""

    def test_empty_library(self, client: TestClient, offline_settings, catalog_requests):
        """Should ask the user to add books and skip the catalog."""
        response = client.get("/api/v1/recommendations/")

        assert response.status_code == 200
        data = response.json()
        assert data["recommendations"] == []
        assert data["analysis"] is None
        assert data["message"] == "Add some books to your library to receive personalized recommendations!"
        assert catalog_requests == []

    def test_heuristic_recommendations(self, client: TestClient, offline_settings, catalog_requests, test_books):
        response = client.get("/api/v1/recommendations/")

        assert response.status_code == 200
        data = response.json()
        titles = [r["title"] for r in data["recommendations"]]
        assert "Dune" not in titles
        assert titles[:2] == ["Foundation", "Hyperion"]
        assert data["recommendations"][0]["publishedYear"] == 1951
        assert data["recommendations"][0]["reason"] == "Genre: Science Fiction"
        assert data["analysis"]["totalBooks"] == 3
        assert data["analysis"]["favoriteGenres"][0] == "Science Fiction"
        assert data["message"] == "Recommendations based on your favorite books!"
        assert catalog_requests[0] == 'subject:"Science Fiction"'

    def test_failure_returns_error(self, client: TestClient, offline_settings):
        """Should answer 500 once the heuristic retry has failed too."""
        class BrokenStore:
            def list_owned_books(self):
                raise RuntimeError("database unavailable")

        app.dependency_overrides[get_library_store] = lambda: BrokenStore()

        response = client.get("/api/v1/recommendations/")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch recommendations"}
