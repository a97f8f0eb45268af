"""
Pydantic models for users and reviews.
"""

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, validator

from catalog.models import BookSummary


class UserType(str, Enum):
    """Account roles."""
    PLAIN = "plain"
    ADMIN = "admin"
    MODERATOR = "moderator"


# Request bodies. Fields are optional so that the services can answer
# incomplete bodies with their own messages.

class SignupUser(BaseModel):
    """Signup body."""
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    family_name: Optional[str] = None
    give_admin_priviledges: bool = False
    give_mod_priviledges: bool = False

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("username", "password", "email", "first_name", "family_name")

    def missing_fields(self) -> List[str]:
        return [name for name in self.REQUIRED_FIELDS if not getattr(self, name)]


class LoginUser(BaseModel):
    """Login body."""
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(BaseModel):
    """Profile update body; only these fields can be changed by their owner."""
    username: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    family_name: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=1000)
    image: Optional[str] = None
    password: Optional[str] = None

    @validator('username', 'email', 'first_name', 'family_name', 'password')
    def validate_not_blank(cls, v):
        """Provided identity fields cannot be blank."""
        if v is not None and not v.strip():
            raise ValueError('must not be blank')
        return v


class ReviewData(BaseModel):
    """Review create/update body."""
    content: Optional[str] = None
    tags: Optional[List[str]] = None
    book_id: Optional[str] = None

    @validator('tags')
    def normalize_tags(cls, v):
        """Drop blank tags and surrounding whitespace."""
        if v is None:
            return v
        return [tag.strip() for tag in v if tag and tag.strip()]


class SuspendRequest(BaseModel):
    """Optional suspension length."""
    days: Optional[int] = Field(None, ge=1, le=3650, description="Suspension length in days")


# Responses

class AuthUserResponse(BaseModel):
    """User as seen by themselves, with a fresh token."""
    id: str
    username: str
    email: str
    first_name: str
    family_name: str
    bio: Optional[str] = None
    image: Optional[str] = None
    user_type: UserType = UserType.PLAIN
    follower_count: int = 0
    token: str


class ProfileResponse(BaseModel):
    """User as seen by somebody else."""
    id: str
    username: str
    first_name: str
    family_name: str
    bio: Optional[str] = None
    image: Optional[str] = None
    user_type: UserType = UserType.PLAIN
    follower_count: int = 0
    suspended: bool = False
    following: bool = Field(False, description="Whether the viewer follows this user")


class FollowResponse(BaseModel):
    """Result of a follow or unfollow."""
    user: ProfileResponse
    target_user: ProfileResponse


class ReviewAuthor(BaseModel):
    """Author summary embedded in a review."""
    id: str
    username: str
    first_name: Optional[str] = None
    family_name: Optional[str] = None
    follower_count: int = 0


class ReviewResponse(BaseModel):
    """Review as returned by the API."""
    id: str
    content: str
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    favorited: bool = Field(False, description="Whether the viewer favorited this review")
    favorite_count: int = 0
    review_author: Optional[ReviewAuthor] = None
    book: Optional[BookSummary] = None


class ReviewListResponse(BaseModel):
    """Paginated review list."""
    reviews: List[ReviewResponse]
    reviews_count: int = Field(..., description="Total number of matching reviews")


def is_suspended(user_doc: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    """
    Whether a user is currently barred from writing reviews.

    A user counts as suspended when the flag is set or when the suspension
    window still lies in the future.
    """
    now = now or datetime.utcnow()
    timeline = user_doc.get("suspension_timeline")
    return bool(user_doc.get("suspended")) or (timeline is not None and timeline > now)


def suspension_elapsed(user_doc: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    """Whether a suspended user's window has run out."""
    now = now or datetime.utcnow()
    timeline = user_doc.get("suspension_timeline")
    return bool(user_doc.get("suspended")) and timeline is not None and timeline <= now
