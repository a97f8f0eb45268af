"""
Review service: listing, CRUD and favorites.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase

from api.config import config
from catalog.models import BookSummary
from community.models import (
    ReviewAuthor, ReviewData, ReviewListResponse, ReviewResponse, UserType, is_suspended
)
from community.users import MISSING_USER, UserService
from utilities.documents import parse_object_id
from utilities.errors import Forbidden, NotFound, Unauthorized, ValidationFailed

logger = structlog.get_logger(__name__)

MISSING_REVIEW = "The review you are looking for does not exist."
MISSING_REVIEW_BODY = "You need to send the review object with this request."
SUSPENDED = "Suspended users cannot make reviews!"

AUTHOR_PROJECTION = {"username": 1, "first_name": 1, "family_name": 1, "follower_count": 1}
BOOK_PROJECTION = {"title": 1, "summary": 1, "author": 1}


async def _nothing() -> None:
    return None


class ReviewService:
    """Service for reviews and favorites."""

    def __init__(self, database: AsyncIOMotorDatabase, user_service: Optional[UserService] = None):
        self.database = database
        self.reviews_collection = database.reviews
        self.users_collection = database.users
        self.books_collection = database.books
        self.user_service = user_service or UserService(database)

    async def list_reviews(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
        tags: Optional[str] = None,
        author: Optional[str] = None,
        favorited: Optional[str] = None,
        viewer: Optional[Dict[str, Any]] = None
    ) -> ReviewListResponse:
        """
        List reviews, newest first.

        Args:
            limit: Page size, capped at the configured maximum
            offset: Number of reviews to skip
            tags: Only reviews carrying this tag
            author: Only reviews written by this username; an unknown username
                matches no reviews
            favorited: Only reviews favorited by this username; an unknown
                username matches no reviews
            viewer: Token claims of the caller, used for the favorited flag

        Returns:
            ReviewListResponse with the page and the total number of matches
        """
        limit = min(limit or config.default_page_size, config.max_page_size)
        query: Dict[str, Any] = {}

        if tags:
            query["tags"] = {"$in": [tags]}

        author_doc, favoriter_doc = await asyncio.gather(
            self.users_collection.find_one({"username": author}) if author else _nothing(),
            self.users_collection.find_one({"username": favorited}) if favorited else _nothing(),
        )

        # Unknown usernames match nothing rather than everything
        if author:
            query["review_author"] = author_doc["_id"] if author_doc else {"$in": []}
        if favorited:
            query["_id"] = {"$in": favoriter_doc.get("favorites", []) if favoriter_doc else []}

        try:
            cursor = self.reviews_collection.find(query).sort("created_at", -1).skip(offset).limit(limit)
            review_docs, reviews_count, viewer_doc = await asyncio.gather(
                cursor.to_list(length=limit),
                self.reviews_collection.count_documents(query),
                self.user_service.find_user(viewer["id"]) if viewer else _nothing(),
            )
        except Exception as e:
            logger.error("Failed to list reviews", error=str(e), query=str(query))
            raise

        return ReviewListResponse(
            reviews=await self._shape_many(review_docs, viewer_doc),
            reviews_count=reviews_count
        )

    async def get_review(self, review_id: str, viewer: Optional[Dict[str, Any]] = None) -> ReviewResponse:
        review_doc, viewer_doc = await asyncio.gather(
            self._load_review(review_id),
            self.user_service.find_user(viewer["id"]) if viewer else _nothing(),
        )
        return await self._shape_one(review_doc, viewer_doc)

    async def create_review(self, data: Optional[ReviewData], actor: Dict[str, Any]) -> ReviewResponse:
        """
        Create a review of a book and append it to the book's review list.

        The review insert and the book update are separate writes.

        Raises:
            ValidationFailed: Missing body, suspended user, unknown book or empty content
            Unauthorized: If the acting user no longer exists
        """
        if data is None:
            raise ValidationFailed(MISSING_REVIEW_BODY)

        book_id = parse_object_id(data.book_id)
        user_doc, book_doc = await asyncio.gather(
            self.user_service.find_user(actor["id"]),
            self.books_collection.find_one({"_id": book_id}, BOOK_PROJECTION) if book_id else _nothing(),
        )
        if not user_doc:
            raise Unauthorized(MISSING_USER)

        user_doc = await self.user_service.lift_elapsed_suspension(user_doc)
        if is_suspended(user_doc):
            logger.info("Suspended user tried to review", user_id=actor["id"])
            raise ValidationFailed(SUSPENDED)

        if not book_doc:
            raise ValidationFailed("The book you are trying to review does not exist!")

        if not data.content or not data.content.strip():
            raise ValidationFailed("Review content is required")

        now = datetime.utcnow()
        document = {
            "content": data.content,
            "tags": data.tags or [],
            "review_author": user_doc["_id"],
            "book": book_doc["_id"],
            "favorite_count": 0,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.reviews_collection.insert_one(document)
        document["_id"] = result.inserted_id

        await self.books_collection.update_one(
            {"_id": book_doc["_id"]},
            {"$push": {"reviews": result.inserted_id}}
        )

        logger.info("Review created", review_id=str(result.inserted_id), book_id=str(book_doc["_id"]))
        return self._shape(document, user_doc, book_doc, user_doc)

    async def update_review(
        self,
        review_id: str,
        data: Optional[ReviewData],
        actor: Dict[str, Any]
    ) -> ReviewResponse:
        """Update the content and/or tags of a review (author only)."""
        review_doc = await self._load_review(review_id)
        if data is None:
            raise ValidationFailed(MISSING_REVIEW_BODY)

        if str(review_doc.get("review_author")) != actor["id"]:
            logger.warning("Refused review edit by non-author", review_id=review_id, actor=actor["id"])
            raise Forbidden("Only the author of a review can edit it")

        user_doc = await self.user_service.find_user(actor["id"])
        if not user_doc:
            raise Unauthorized(MISSING_USER)
        user_doc = await self.user_service.lift_elapsed_suspension(user_doc)
        if is_suspended(user_doc):
            raise ValidationFailed(SUSPENDED)

        changes: Dict[str, Any] = {}
        if data.content is not None:
            if not data.content.strip():
                raise ValidationFailed("Review content is required")
            changes["content"] = data.content
        if data.tags is not None:
            changes["tags"] = data.tags

        if changes:
            changes["updated_at"] = datetime.utcnow()
            await self.reviews_collection.update_one({"_id": review_doc["_id"]}, {"$set": changes})
            review_doc.update(changes)
            logger.info("Review updated", review_id=review_id, fields=sorted(changes))

        return await self._shape_one(review_doc, user_doc)

    async def delete_review(self, review_id: str, actor: Dict[str, Any]) -> None:
        """
        Delete a review (author or admin only).

        The review is also removed from its book and from every user's favorites.
        """
        review_doc = await self._load_review(review_id)
        user_doc = await self.user_service.find_user(actor["id"])
        if not user_doc:
            raise ValidationFailed(MISSING_USER)

        is_author = review_doc.get("review_author") == user_doc["_id"]
        if not is_author and user_doc.get("user_type") != UserType.ADMIN.value:
            logger.warning("Refused review deletion", review_id=review_id, actor=actor["id"])
            raise Forbidden("You must either be review creator or an admin to delete this review")

        await self.reviews_collection.delete_one({"_id": review_doc["_id"]})
        await asyncio.gather(
            self.books_collection.update_one(
                {"_id": review_doc.get("book")},
                {"$pull": {"reviews": review_doc["_id"]}}
            ),
            self.users_collection.update_many(
                {"favorites": review_doc["_id"]},
                {"$pull": {"favorites": review_doc["_id"]}}
            ),
        )
        logger.info("Review deleted", review_id=review_id, by=actor["id"])

    async def favorite(self, review_id: str, actor: Dict[str, Any]) -> ReviewResponse:
        """Add a review to the acting user's favorites and recount."""
        review_doc, user_doc = await self._favorite_parties(review_id, actor)

        await self.users_collection.update_one(
            {"_id": user_doc["_id"]},
            {"$addToSet": {"favorites": review_doc["_id"]}}
        )
        if review_doc["_id"] not in user_doc.get("favorites", []):
            user_doc["favorites"] = list(user_doc.get("favorites", [])) + [review_doc["_id"]]
        review_doc["favorite_count"] = await self.update_favorite_count(review_doc["_id"])

        logger.info("Review favorited", review_id=review_id, user_id=actor["id"])
        return await self._shape_one(review_doc, user_doc)

    async def unfavorite(self, review_id: str, actor: Dict[str, Any]) -> ReviewResponse:
        """Remove a review from the acting user's favorites and recount."""
        review_doc, user_doc = await self._favorite_parties(review_id, actor)

        await self.users_collection.update_one(
            {"_id": user_doc["_id"]},
            {"$pull": {"favorites": review_doc["_id"]}}
        )
        user_doc["favorites"] = [
            favorite for favorite in user_doc.get("favorites", []) if favorite != review_doc["_id"]
        ]
        review_doc["favorite_count"] = await self.update_favorite_count(review_doc["_id"])

        logger.info("Review unfavorited", review_id=review_id, user_id=actor["id"])
        return await self._shape_one(review_doc, user_doc)

    async def update_favorite_count(self, review_object_id) -> int:
        """Recount how many users favorited a review and store it."""
        count = await self.users_collection.count_documents({"favorites": review_object_id})
        await self.reviews_collection.update_one(
            {"_id": review_object_id},
            {"$set": {"favorite_count": count}}
        )
        return count

    async def recount_favorite_counts(self) -> int:
        """Recompute every review's favorite count. Returns the number of reviews updated."""
        updated = 0
        async for review_doc in self.reviews_collection.find({}, {"_id": 1}):
            await self.update_favorite_count(review_doc["_id"])
            updated += 1
        logger.info("Favorite counts recomputed", reviews=updated)
        return updated

    async def _load_review(self, review_id: str) -> Dict[str, Any]:
        object_id = parse_object_id(review_id)
        review_doc = await self.reviews_collection.find_one({"_id": object_id}) if object_id else None
        if not review_doc:
            raise NotFound(MISSING_REVIEW)
        return review_doc

    async def _favorite_parties(self, review_id: str, actor: Dict[str, Any]):
        review_doc, user_doc = await asyncio.gather(
            self._load_review(review_id),
            self.user_service.find_user(actor["id"]),
        )
        if not user_doc:
            raise ValidationFailed(MISSING_USER)
        return review_doc, user_doc

    async def _shape_one(
        self,
        review_doc: Dict[str, Any],
        viewer_doc: Optional[Dict[str, Any]]
    ) -> ReviewResponse:
        author_doc, book_doc = await asyncio.gather(
            self.users_collection.find_one({"_id": review_doc.get("review_author")}, AUTHOR_PROJECTION),
            self.books_collection.find_one({"_id": review_doc.get("book")}, BOOK_PROJECTION),
        )
        return self._shape(review_doc, author_doc, book_doc, viewer_doc)

    async def _shape_many(
        self,
        review_docs: List[Dict[str, Any]],
        viewer_doc: Optional[Dict[str, Any]]
    ) -> List[ReviewResponse]:
        if not review_docs:
            return []

        author_docs, book_docs = await asyncio.gather(
            self._find_many(self.users_collection, (doc.get("review_author") for doc in review_docs), AUTHOR_PROJECTION),
            self._find_many(self.books_collection, (doc.get("book") for doc in review_docs), BOOK_PROJECTION),
        )
        authors = {doc["_id"]: doc for doc in author_docs}
        books = {doc["_id"]: doc for doc in book_docs}
        return [
            self._shape(doc, authors.get(doc.get("review_author")), books.get(doc.get("book")), viewer_doc)
            for doc in review_docs
        ]

    @staticmethod
    async def _find_many(collection, ids: Iterable[Any], projection: Dict[str, int]) -> List[Dict[str, Any]]:
        unique_ids = list({object_id for object_id in ids if object_id})
        if not unique_ids:
            return []
        cursor = collection.find({"_id": {"$in": unique_ids}}, projection)
        return await cursor.to_list(length=None)

    @staticmethod
    def _shape(
        review_doc: Dict[str, Any],
        author_doc: Optional[Dict[str, Any]],
        book_doc: Optional[Dict[str, Any]],
        viewer_doc: Optional[Dict[str, Any]]
    ) -> ReviewResponse:
        favorited = bool(viewer_doc) and review_doc["_id"] in viewer_doc.get("favorites", [])
        review_author = None
        if author_doc:
            review_author = ReviewAuthor(
                id=str(author_doc["_id"]),
                username=author_doc["username"],
                first_name=author_doc.get("first_name"),
                family_name=author_doc.get("family_name"),
                follower_count=author_doc.get("follower_count", 0)
            )
        book = None
        if book_doc:
            book = BookSummary(
                id=str(book_doc["_id"]),
                title=book_doc.get("title", ""),
                summary=book_doc.get("summary", "")
            )
        return ReviewResponse(
            id=str(review_doc["_id"]),
            content=review_doc.get("content", ""),
            tags=review_doc.get("tags", []),
            created_at=review_doc.get("created_at"),
            updated_at=review_doc.get("updated_at"),
            favorited=favorited,
            favorite_count=review_doc.get("favorite_count", 0),
            review_author=review_author,
            book=book
        )
