"""
Review endpoints.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from api.auth import get_current_user, get_optional_user
from api.config import config
from api.deps import get_review_service
from api.models import ReviewBody, ReviewEnvelope
from community.models import ReviewListResponse
from community.reviews import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.get("", response_model=ReviewListResponse)
async def list_reviews(
    limit: Optional[int] = Query(None, ge=1, le=config.max_page_size),
    offset: int = Query(0, ge=0),
    tags: Optional[str] = None,
    author: Optional[str] = None,
    favorited: Optional[str] = None,
    viewer: Optional[Dict[str, Any]] = Depends(get_optional_user),
    reviews: ReviewService = Depends(get_review_service)
):
    """
    Get reviews, newest first.

    - **limit**: Page size (1 to the configured maximum)
    - **offset**: Number of reviews to skip
    - **tags**: Filter by tag
    - **author**: Filter by author username
    - **favorited**: Filter by the username of a user who favorited the review
    """
    return await reviews.list_reviews(
        limit=limit,
        offset=offset,
        tags=tags,
        author=author,
        favorited=favorited,
        viewer=viewer
    )


@router.get("/{review_id}", response_model=ReviewEnvelope)
async def get_review(
    review_id: str,
    viewer: Optional[Dict[str, Any]] = Depends(get_optional_user),
    reviews: ReviewService = Depends(get_review_service)
):
    return ReviewEnvelope(review=await reviews.get_review(review_id, viewer))


@router.post("", response_model=ReviewEnvelope, status_code=status.HTTP_201_CREATED)
async def create_review(
    body: Optional[ReviewBody] = None,
    actor: Dict[str, Any] = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
):
    """Review a book. Suspended users are refused."""
    review = await reviews.create_review(body.review if body else None, actor)
    return ReviewEnvelope(review=review)


@router.put("/{review_id}", response_model=ReviewEnvelope)
async def update_review(
    review_id: str,
    body: Optional[ReviewBody] = None,
    actor: Dict[str, Any] = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
):
    review = await reviews.update_review(review_id, body.review if body else None, actor)
    return ReviewEnvelope(review=review)


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    review_id: str,
    actor: Dict[str, Any] = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
):
    """Delete a review (its author or an admin)."""
    await reviews.delete_review(review_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{review_id}/favorite", response_model=ReviewEnvelope)
async def favorite_review(
    review_id: str,
    actor: Dict[str, Any] = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
):
    return ReviewEnvelope(review=await reviews.favorite(review_id, actor))


@router.delete("/{review_id}/favorite", response_model=ReviewEnvelope)
async def unfavorite_review(
    review_id: str,
    actor: Dict[str, Any] = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
):
    return ReviewEnvelope(review=await reviews.unfavorite(review_id, actor))
