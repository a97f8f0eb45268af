"""
Database service for the book catalog.
Handles CRUD for genres, authors and books with delete guards on referenced documents.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from catalog.models import (
    AuthorData, AuthorDetail, AuthorResponse,
    BookData, BookResponse, BookSummary, BookUpdate,
    GenreData, GenreDetail, GenreResponse
)
from utilities.documents import parse_object_id, parse_object_ids, serialize_document
from utilities.errors import NotFound, Unprocessable, ValidationFailed

logger = structlog.get_logger(__name__)

BOOK_SUMMARY_PROJECTION = {"title": 1, "summary": 1}


class CatalogDatabaseService:
    """Database service for genre, author and book operations."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.genres_collection = database.genres
        self.authors_collection = database.authors
        self.books_collection = database.books
        self.reviews_collection = database.reviews

    # Genres

    async def list_genres(self) -> List[GenreResponse]:
        """Get all genres sorted by name."""
        try:
            cursor = self.genres_collection.find({}).sort("name", 1)
            genre_docs = await cursor.to_list(length=None)
            return [self._genre(doc) for doc in genre_docs]
        except Exception as e:
            logger.error("Failed to list genres", error=str(e))
            raise

    async def get_genre(self, genre_id: str) -> GenreDetail:
        """
        Get a genre together with the books filed under it.

        Args:
            genre_id: Genre identifier

        Returns:
            GenreDetail with the genre and its books

        Raises:
            NotFound: If the genre does not exist
        """
        object_id = self._require_id(genre_id, "Genre")
        genre_doc, book_docs = await asyncio.gather(
            self.genres_collection.find_one({"_id": object_id}),
            self._books_where({"genre": object_id}),
        )
        if not genre_doc:
            raise NotFound("Genre not found")

        return GenreDetail(
            genre=self._genre(genre_doc),
            genre_books=[self._book_summary(doc) for doc in book_docs]
        )

    async def create_genre(self, data: GenreData) -> Tuple[GenreResponse, bool]:
        """
        Create a genre unless one with the same name exists.

        Returns:
            Tuple of the genre and whether it was newly created
        """
        found_genre = await self.genres_collection.find_one({"name": data.name})
        if found_genre:
            logger.debug("Genre already exists", name=data.name)
            return self._genre(found_genre), False

        now = datetime.utcnow()
        document = {"name": data.name, "created_at": now, "updated_at": now}
        try:
            result = await self.genres_collection.insert_one(document)
        except DuplicateKeyError:
            # Another request inserted the same name after our lookup
            found_genre = await self.genres_collection.find_one({"name": data.name})
            return self._genre(found_genre), False

        document["_id"] = result.inserted_id
        logger.info("Genre created", genre_id=str(result.inserted_id), name=data.name)
        return self._genre(document), True

    async def update_genre(self, genre_id: str, data: GenreData) -> GenreResponse:
        """Overwrite a genre's name after checking it exists."""
        object_id = self._require_id(genre_id, "Genre")
        genre_doc = await self.genres_collection.find_one({"_id": object_id})
        if not genre_doc:
            raise NotFound("Genre not found")

        try:
            await self.genres_collection.update_one(
                {"_id": object_id},
                {"$set": {"name": data.name, "updated_at": datetime.utcnow()}}
            )
        except DuplicateKeyError:
            raise Unprocessable(f"A genre named '{data.name}' already exists")

        logger.info("Genre updated", genre_id=genre_id, name=data.name)
        genre_doc["name"] = data.name
        return self._genre(genre_doc)

    async def delete_genre(self, genre_id: str) -> None:
        """
        Delete a genre that no book references.

        Raises:
            NotFound: If the genre does not exist
            ValidationFailed: If books still reference the genre
        """
        object_id = self._require_id(genre_id, "Genre")
        genre_doc, book_docs = await asyncio.gather(
            self.genres_collection.find_one({"_id": object_id}),
            self._books_where({"genre": object_id}),
        )
        if not genre_doc:
            raise NotFound("Genre not found")

        if book_docs:
            logger.warning("Refused to delete genre with books", genre_id=genre_id, books=len(book_docs))
            raise ValidationFailed(
                "Delete the following books before deleting this genre",
                detail={"genre_books": [self._book_summary(doc).dict() for doc in book_docs]}
            )

        await self.genres_collection.delete_one({"_id": object_id})
        logger.info("Genre deleted", genre_id=genre_id)

    # Authors

    async def list_authors(self) -> List[AuthorResponse]:
        """Get all authors sorted by family name."""
        try:
            cursor = self.authors_collection.find({}).sort([("family_name", 1), ("first_name", 1)])
            author_docs = await cursor.to_list(length=None)
            return [self._author(doc) for doc in author_docs]
        except Exception as e:
            logger.error("Failed to list authors", error=str(e))
            raise

    async def get_author(self, author_id: str) -> AuthorDetail:
        """Get an author together with their books."""
        object_id = self._require_id(author_id, "Author")
        author_doc, book_docs = await asyncio.gather(
            self.authors_collection.find_one({"_id": object_id}),
            self._books_where({"author": object_id}),
        )
        if not author_doc:
            raise NotFound("Author not found")

        return AuthorDetail(
            author=self._author(author_doc),
            author_books=[self._book_summary(doc) for doc in book_docs]
        )

    async def create_author(self, data: AuthorData) -> AuthorResponse:
        now = datetime.utcnow()
        document = data.to_document()
        document.update({"created_at": now, "updated_at": now})

        result = await self.authors_collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.info("Author created", author_id=str(result.inserted_id))
        return self._author(document)

    async def update_author(self, author_id: str, data: AuthorData) -> AuthorResponse:
        object_id = self._require_id(author_id, "Author")
        author_doc = await self.authors_collection.find_one({"_id": object_id})
        if not author_doc:
            raise NotFound("Author not found")

        changes = data.to_document()
        changes["updated_at"] = datetime.utcnow()
        await self.authors_collection.update_one({"_id": object_id}, {"$set": changes})

        logger.info("Author updated", author_id=author_id)
        author_doc.update(changes)
        return self._author(author_doc)

    async def delete_author(self, author_id: str) -> None:
        """
        Delete an author that no book references.

        Raises:
            NotFound: If the author does not exist
            ValidationFailed: If books still reference the author
        """
        object_id = self._require_id(author_id, "Author")
        author_doc, book_docs = await asyncio.gather(
            self.authors_collection.find_one({"_id": object_id}),
            self._books_where({"author": object_id}),
        )
        if not author_doc:
            raise NotFound("Author not found")

        if book_docs:
            logger.warning("Refused to delete author with books", author_id=author_id, books=len(book_docs))
            raise ValidationFailed(
                "Delete the following books before deleting this author",
                detail={"author_books": [self._book_summary(doc).dict() for doc in book_docs]}
            )

        await self.authors_collection.delete_one({"_id": object_id})
        logger.info("Author deleted", author_id=author_id)

    # Books

    async def list_books(self) -> List[BookResponse]:
        """Get all books sorted by title with authors and genres populated."""
        try:
            cursor = self.books_collection.find({}).sort("title", 1)
            book_docs = await cursor.to_list(length=None)

            author_ids = {doc.get("author") for doc in book_docs if doc.get("author")}
            genre_ids = {genre_id for doc in book_docs for genre_id in doc.get("genre", [])}
            author_docs, genre_docs = await asyncio.gather(
                self._find_by_ids(self.authors_collection, author_ids),
                self._find_by_ids(self.genres_collection, genre_ids),
            )
            authors = {doc["_id"]: doc for doc in author_docs}
            genres = {doc["_id"]: doc for doc in genre_docs}

            return [
                self._book(
                    doc,
                    authors.get(doc.get("author")),
                    [genres[genre_id] for genre_id in doc.get("genre", []) if genre_id in genres]
                )
                for doc in book_docs
            ]
        except Exception as e:
            logger.error("Failed to list books", error=str(e))
            raise

    async def get_book(self, book_id: str) -> BookResponse:
        """Get a single book with its author and genres."""
        object_id = self._require_id(book_id, "Book")
        book_doc = await self.books_collection.find_one({"_id": object_id})
        if not book_doc:
            raise NotFound("Book not found")

        author_doc, genre_docs = await asyncio.gather(
            self.authors_collection.find_one({"_id": book_doc.get("author")}),
            self._find_by_ids(self.genres_collection, book_doc.get("genre", [])),
        )
        return self._book(book_doc, author_doc, genre_docs)

    async def create_book(self, data: BookData) -> BookResponse:
        """
        Create a book after checking its author and genres exist.

        Raises:
            ValidationFailed: If the author or a genre does not exist
        """
        author_doc, genre_docs = await self._resolve_references(data.author, data.genre)

        now = datetime.utcnow()
        document = {
            "title": data.title,
            "summary": data.summary,
            "isbn": data.isbn,
            "author": author_doc["_id"],
            "genre": [doc["_id"] for doc in genre_docs],
            "reviews": [],
            "created_at": now,
            "updated_at": now,
        }
        result = await self.books_collection.insert_one(document)
        document["_id"] = result.inserted_id

        logger.info("Book created", book_id=str(result.inserted_id), title=data.title)
        return self._book(document, author_doc, genre_docs)

    async def update_book(self, book_id: str, data: BookUpdate) -> BookResponse:
        """Overwrite the provided fields of an existing book."""
        object_id = self._require_id(book_id, "Book")
        book_doc = await self.books_collection.find_one({"_id": object_id})
        if not book_doc:
            raise NotFound("Book not found")

        changes: Dict[str, Any] = data.dict(exclude_none=True)
        if "author" in changes or "genre" in changes:
            author_doc, genre_docs = await self._resolve_references(
                changes.get("author", book_doc.get("author")),
                changes.get("genre", book_doc.get("genre", []))
            )
            changes["author"] = author_doc["_id"]
            changes["genre"] = [doc["_id"] for doc in genre_docs]

        changes["updated_at"] = datetime.utcnow()
        await self.books_collection.update_one({"_id": object_id}, {"$set": changes})
        logger.info("Book updated", book_id=book_id, fields=sorted(changes))
        return await self.get_book(book_id)

    async def delete_book(self, book_id: str) -> None:
        """
        Delete a book that has no reviews.

        Raises:
            NotFound: If the book does not exist
            ValidationFailed: If reviews still reference the book
        """
        object_id = self._require_id(book_id, "Book")
        book_doc, review_count = await asyncio.gather(
            self.books_collection.find_one({"_id": object_id}),
            self.reviews_collection.count_documents({"book": object_id}),
        )
        if not book_doc:
            raise NotFound("Book not found")

        if review_count:
            logger.warning("Refused to delete reviewed book", book_id=book_id, reviews=review_count)
            raise ValidationFailed(
                "Delete the reviews of this book before deleting it",
                detail={"review_count": review_count}
            )

        await self.books_collection.delete_one({"_id": object_id})
        logger.info("Book deleted", book_id=book_id)

    # Helpers

    async def _books_where(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        cursor = self.books_collection.find(query, BOOK_SUMMARY_PROJECTION).sort("title", 1)
        return await cursor.to_list(length=None)

    async def _find_by_ids(self, collection, ids) -> List[Dict[str, Any]]:
        ids = [object_id for object_id in ids if object_id]
        if not ids:
            return []
        cursor = collection.find({"_id": {"$in": ids}})
        return await cursor.to_list(length=None)

    async def _resolve_references(
        self,
        author_id: Any,
        genre_ids: List[Any]
    ) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
        """Look up a book's author and genres, failing if any is missing."""
        author_object_id = parse_object_id(author_id)
        genre_object_ids = parse_object_ids(genre_ids)
        if author_object_id is None:
            raise ValidationFailed("The author of this book does not exist")
        if None in genre_object_ids:
            raise ValidationFailed("One or more genres of this book do not exist")

        unique_genre_ids = list(dict.fromkeys(genre_object_ids))
        author_doc, genre_docs = await asyncio.gather(
            self.authors_collection.find_one({"_id": author_object_id}),
            self._find_by_ids(self.genres_collection, unique_genre_ids),
        )
        if not author_doc:
            raise ValidationFailed("The author of this book does not exist")
        if len(genre_docs) != len(unique_genre_ids):
            raise ValidationFailed("One or more genres of this book do not exist")

        return author_doc, genre_docs

    @staticmethod
    def _require_id(value: str, label: str) -> ObjectId:
        object_id = parse_object_id(value)
        if object_id is None:
            raise NotFound(f"{label} not found")
        return object_id

    @staticmethod
    def _genre(document: Dict[str, Any]) -> GenreResponse:
        return GenreResponse(id=str(document["_id"]), name=document["name"])

    @staticmethod
    def _author(document: Dict[str, Any]) -> AuthorResponse:
        return AuthorResponse.from_document(serialize_document(document))

    @staticmethod
    def _book_summary(document: Dict[str, Any]) -> BookSummary:
        return BookSummary(
            id=str(document["_id"]),
            title=document.get("title", ""),
            summary=document.get("summary", "")
        )

    def _book(
        self,
        document: Dict[str, Any],
        author_doc: Optional[Dict[str, Any]],
        genre_docs: List[Dict[str, Any]]
    ) -> BookResponse:
        return BookResponse(
            id=str(document["_id"]),
            title=document["title"],
            summary=document.get("summary", ""),
            isbn=document.get("isbn", ""),
            author=self._author(author_doc) if author_doc else None,
            genre=[self._genre(doc) for doc in genre_docs],
            review_count=len(document.get("reviews", []))
        )
