"""
Book endpoints.
"""

from fastapi import APIRouter, Depends, Response, status

from api.deps import get_catalog_service
from api.models import BookBody, BookEnvelope, BookListResponse, BookUpdateBody
from catalog.database import CatalogDatabaseService

router = APIRouter(prefix="/catalog/books", tags=["Books"])


@router.get("", response_model=BookListResponse)
async def list_books(catalog: CatalogDatabaseService = Depends(get_catalog_service)):
    """Get all books sorted by title, with authors and genres."""
    return BookListResponse(books=await catalog.list_books())


@router.get("/{book_id}", response_model=BookEnvelope)
async def get_book(book_id: str, catalog: CatalogDatabaseService = Depends(get_catalog_service)):
    return BookEnvelope(book=await catalog.get_book(book_id))


@router.post("", response_model=BookEnvelope, status_code=status.HTTP_201_CREATED)
async def create_book(body: BookBody, catalog: CatalogDatabaseService = Depends(get_catalog_service)):
    """
    Create a book.

    - **author**: identifier of an existing author
    - **genre**: identifiers of existing genres
    """
    return BookEnvelope(book=await catalog.create_book(body.book))


@router.put("/{book_id}", response_model=BookEnvelope)
async def update_book(
    book_id: str,
    body: BookUpdateBody,
    catalog: CatalogDatabaseService = Depends(get_catalog_service)
):
    return BookEnvelope(book=await catalog.update_book(book_id, body.book))


@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_book(book_id: str, catalog: CatalogDatabaseService = Depends(get_catalog_service)):
    """Delete a book; refused with 400 while it has reviews."""
    await catalog.delete_book(book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
