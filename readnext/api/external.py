from fastapi import APIRouter, Depends, Query

from readnext.core.config import Settings, get_settings
from readnext.schemas.book import ExternalBookResult
from readnext.services.external_apis import (
    CatalogSearchService,
    GoogleBooksClient,
    OpenLibraryClient,
)

router = APIRouter()


async def get_catalog_search(settings: Settings = Depends(get_settings)):
    """Per-request catalog search service, closed once the response is sent."""
    service = CatalogSearchService(GoogleBooksClient(settings), OpenLibraryClient(settings))
    try:
        yield service
    finally:
        await service.close()


@router.get("/books", response_model=list[ExternalBookResult])
async def search_external_books(
    query: str = Query("", description="Title, author or ISBN"),
    limit: int = Query(8, ge=1, description="Capped at 20"),
    catalog: CatalogSearchService = Depends(get_catalog_search),
):
    """
    Look a book up in the public catalogs.

    Used to prefill the "add book" form. Google Books is tried first,
    Open Library when it has no match.
    """
    results = await catalog.search_external(query, limit=limit)
    return [
        ExternalBookResult(
            id=book.id,
            title=book.title,
            author=book.author,
            pages=book.page_count,
            synopsis=book.synopsis,
            cover=book.cover_url,
            isbn=book.isbn,
            published_year=book.published_year,
        )
        for book in results
    ]
