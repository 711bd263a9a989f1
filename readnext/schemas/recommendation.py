from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from readnext.services.external_apis import CandidateBook


class RecommendationItem(BaseModel):
    id: str
    title: str
    author: str
    cover: str | None = None
    synopsis: str | None = None
    pages: int | None = None
    published_year: int | None = Field(None, alias="publishedYear")
    isbn: str | None = None
    genre: str | None = None
    reason: str  # e.g. "Genre: Fantasy", "Author: X", "Similar to: Y" or the search query

    class Config:
        populate_by_name = True

    @classmethod
    def from_candidate(cls, candidate: "CandidateBook") -> "RecommendationItem":
        return cls(
            id=candidate.id,
            title=candidate.title,
            author=candidate.author,
            cover=candidate.cover_url,
            synopsis=candidate.synopsis,
            pages=candidate.page_count,
            published_year=candidate.published_year,
            isbn=candidate.isbn,
            genre=candidate.genre,
            reason=candidate.reason,
        )


class RecommendationAnalysis(BaseModel):
    total_books: int = Field(alias="totalBooks")
    profile: str
    favorite_genres: list[str] = Field(alias="favoriteGenres")

    class Config:
        populate_by_name = True


class RecommendationResponse(BaseModel):
    recommendations: list[RecommendationItem] = []
    analysis: RecommendationAnalysis | None = None
    message: str


class ErrorResponse(BaseModel):
    error: str
