"""
Genre endpoints.
"""

from fastapi import APIRouter, Depends, Response, status

from api.deps import get_catalog_service
from api.models import GenreBody, GenreEnvelope, GenreListResponse
from catalog.database import CatalogDatabaseService
from catalog.models import GenreDetail

router = APIRouter(prefix="/catalog/genres", tags=["Genres"])


@router.get("", response_model=GenreListResponse)
async def list_genres(catalog: CatalogDatabaseService = Depends(get_catalog_service)):
    """Get all genres sorted by name."""
    return GenreListResponse(genres=await catalog.list_genres())


@router.get("/{genre_id}", response_model=GenreDetail)
async def get_genre(genre_id: str, catalog: CatalogDatabaseService = Depends(get_catalog_service)):
    """Get a genre and the books filed under it."""
    return await catalog.get_genre(genre_id)


@router.post("", response_model=GenreEnvelope, status_code=status.HTTP_201_CREATED)
async def create_genre(
    body: GenreBody,
    response: Response,
    catalog: CatalogDatabaseService = Depends(get_catalog_service)
):
    """
    Create a genre.

    If a genre with the same name already exists it is returned with 200
    instead of creating a duplicate.
    """
    genre, created = await catalog.create_genre(body.genre)
    if not created:
        response.status_code = status.HTTP_200_OK
    return GenreEnvelope(genre=genre)


@router.put("/{genre_id}", response_model=GenreEnvelope)
async def update_genre(
    genre_id: str,
    body: GenreBody,
    catalog: CatalogDatabaseService = Depends(get_catalog_service)
):
    return GenreEnvelope(genre=await catalog.update_genre(genre_id, body.genre))


@router.delete("/{genre_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_genre(genre_id: str, catalog: CatalogDatabaseService = Depends(get_catalog_service)):
    """Delete a genre; refused with 400 while books use it."""
    await catalog.delete_genre(genre_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
