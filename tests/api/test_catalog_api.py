"""
Tests for the catalog endpoints.
"""

import pytest
from unittest.mock import AsyncMock

from api.deps import get_catalog_service
from api.main import app
from catalog.database import CatalogDatabaseService
from catalog.models import (
    AuthorDetail, AuthorResponse, BookResponse, BookSummary, GenreDetail, GenreResponse
)
from utilities.errors import NotFound, ValidationFailed


@pytest.fixture
def mock_catalog(client):
    """Catalog service replaced by a mock for the duration of a test."""
    mock = AsyncMock(spec=CatalogDatabaseService)
    app.dependency_overrides[get_catalog_service] = lambda: mock
    return mock


GENRE = GenreResponse(id="64b000000000000000000001", name="Fantasy")
AUTHOR = AuthorResponse(
    id="64b000000000000000000002",
    first_name="Ursula",
    family_name="Le Guin",
    name="Le Guin, Ursula",
    date_of_birth="1929-10-21"
)
BOOK = BookResponse(
    id="64b000000000000000000003",
    title="A Wizard of Earthsea",
    summary="A young mage learns the cost of power.",
    isbn="9780547773742",
    author=AUTHOR,
    genre=[GENRE]
)


def test_catalog_needs_no_token(client, mock_catalog):
    """Catalog reads are public."""
    mock_catalog.list_genres.return_value = [GENRE]

    response = client.get("/catalog/genres")

    assert response.status_code == 200
    assert response.json() == {"genres": [{"id": GENRE.id, "name": "Fantasy"}]}


def test_create_genre_returns_201(client, mock_catalog):
    mock_catalog.create_genre.return_value = (GENRE, True)

    response = client.post("/catalog/genres", json={"genre": {"name": "Fantasy"}})

    assert response.status_code == 201
    assert response.json()["genre"]["name"] == "Fantasy"
    assert mock_catalog.create_genre.call_args[0][0].name == "Fantasy"


def test_create_existing_genre_returns_200(client, mock_catalog):
    mock_catalog.create_genre.return_value = (GENRE, False)

    response = client.post("/catalog/genres", json={"genre": {"name": "Fantasy"}})

    assert response.status_code == 200
    assert response.json()["genre"]["id"] == GENRE.id


def test_create_genre_with_blank_name(client, mock_catalog):
    response = client.post("/catalog/genres", json={"genre": {"name": "   "}})

    assert response.status_code == 422
    data = response.json()
    assert data["status_code"] == 422
    assert data["error"]["message"] == "Request validation failed"
    mock_catalog.create_genre.assert_not_called()


def test_get_genre_lists_its_books(client, mock_catalog):
    mock_catalog.get_genre.return_value = GenreDetail(
        genre=GENRE,
        genre_books=[BookSummary(id=BOOK.id, title=BOOK.title, summary=BOOK.summary)]
    )

    response = client.get(f"/catalog/genres/{GENRE.id}")

    assert response.status_code == 200
    assert response.json()["genre_books"][0]["title"] == "A Wizard of Earthsea"


def test_get_missing_genre(client, mock_catalog):
    mock_catalog.get_genre.side_effect = NotFound("Genre not found")

    response = client.get("/catalog/genres/64b0000000000000000000ff")

    assert response.status_code == 404
    assert response.json() == {
        "error": {"message": "Genre not found", "detail": None},
        "status_code": 404
    }


def test_delete_genre_in_use(client, mock_catalog):
    """Deleting a referenced genre reports the books that block it."""
    books = [{"id": BOOK.id, "title": BOOK.title, "summary": BOOK.summary}]
    mock_catalog.delete_genre.side_effect = ValidationFailed(
        "Delete the following books before deleting this genre",
        detail={"genre_books": books}
    )

    response = client.delete(f"/catalog/genres/{GENRE.id}")

    assert response.status_code == 400
    data = response.json()
    assert data["error"]["detail"]["genre_books"] == books
    assert data["status_code"] == 400


def test_delete_genre(client, mock_catalog):
    response = client.delete(f"/catalog/genres/{GENRE.id}")

    assert response.status_code == 204
    mock_catalog.delete_genre.assert_awaited_once_with(GENRE.id)


def test_create_author(client, mock_catalog):
    mock_catalog.create_author.return_value = AUTHOR

    response = client.post("/catalog/authors", json={"author": {
        "first_name": "Ursula",
        "family_name": "Le Guin",
        "date_of_birth": "1929-10-21"
    }})

    assert response.status_code == 201
    assert response.json()["author"]["name"] == "Le Guin, Ursula"


def test_create_author_dying_before_birth(client, mock_catalog):
    response = client.post("/catalog/authors", json={"author": {
        "first_name": "Ursula",
        "family_name": "Le Guin",
        "date_of_birth": "1929-10-21",
        "date_of_death": "1900-01-01"
    }})

    assert response.status_code == 422
    mock_catalog.create_author.assert_not_called()


def test_get_author_with_books(client, mock_catalog):
    mock_catalog.get_author.return_value = AuthorDetail(author=AUTHOR, author_books=[])

    response = client.get(f"/catalog/authors/{AUTHOR.id}")

    assert response.status_code == 200
    assert response.json()["author"]["family_name"] == "Le Guin"
    assert response.json()["author_books"] == []


def test_delete_author_in_use(client, mock_catalog):
    mock_catalog.delete_author.side_effect = ValidationFailed(
        "Delete the following books before deleting this author",
        detail={"author_books": []}
    )

    response = client.delete(f"/catalog/authors/{AUTHOR.id}")

    assert response.status_code == 400


def test_list_books(client, mock_catalog):
    mock_catalog.list_books.return_value = [BOOK]

    response = client.get("/catalog/books")

    assert response.status_code == 200
    book = response.json()["books"][0]
    assert book["author"]["name"] == "Le Guin, Ursula"
    assert book["genre"] == [{"id": GENRE.id, "name": "Fantasy"}]


def test_create_book_with_unknown_author(client, mock_catalog):
    mock_catalog.create_book.side_effect = ValidationFailed("The author of this book does not exist")

    response = client.post("/catalog/books", json={"book": {
        "title": "Orphan",
        "summary": "No author.",
        "isbn": "1",
        "author": "64b0000000000000000000ff",
        "genre": []
    }})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "The author of this book does not exist"


def test_update_book(client, mock_catalog):
    mock_catalog.update_book.return_value = BOOK

    response = client.put(f"/catalog/books/{BOOK.id}", json={"book": {"title": "A Wizard of Earthsea"}})

    assert response.status_code == 200
    book_id, changes = mock_catalog.update_book.call_args[0]
    assert book_id == BOOK.id
    assert changes.title == "A Wizard of Earthsea"
    assert changes.author is None


def test_delete_reviewed_book(client, mock_catalog):
    mock_catalog.delete_book.side_effect = ValidationFailed(
        "Delete the reviews of this book before deleting it",
        detail={"review_count": 2}
    )

    response = client.delete(f"/catalog/books/{BOOK.id}")

    assert response.status_code == 400
    assert response.json()["error"]["detail"] == {"review_count": 2}
