"""
Author endpoints.
"""

from fastapi import APIRouter, Depends, Response, status

from api.deps import get_catalog_service
from api.models import AuthorBody, AuthorEnvelope, AuthorListResponse
from catalog.database import CatalogDatabaseService
from catalog.models import AuthorDetail

router = APIRouter(prefix="/catalog/authors", tags=["Authors"])


@router.get("", response_model=AuthorListResponse)
async def list_authors(catalog: CatalogDatabaseService = Depends(get_catalog_service)):
    return AuthorListResponse(authors=await catalog.list_authors())


@router.get("/{author_id}", response_model=AuthorDetail)
async def get_author(author_id: str, catalog: CatalogDatabaseService = Depends(get_catalog_service)):
    """Get an author and the books they wrote."""
    return await catalog.get_author(author_id)


@router.post("", response_model=AuthorEnvelope, status_code=status.HTTP_201_CREATED)
async def create_author(body: AuthorBody, catalog: CatalogDatabaseService = Depends(get_catalog_service)):
    return AuthorEnvelope(author=await catalog.create_author(body.author))


@router.put("/{author_id}", response_model=AuthorEnvelope)
async def update_author(
    author_id: str,
    body: AuthorBody,
    catalog: CatalogDatabaseService = Depends(get_catalog_service)
):
    return AuthorEnvelope(author=await catalog.update_author(author_id, body.author))


@router.delete("/{author_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_author(author_id: str, catalog: CatalogDatabaseService = Depends(get_catalog_service)):
    """Delete an author; refused with 400 while books reference them."""
    await catalog.delete_author(author_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
