"""
User endpoints: signup, login, profiles, suspension and follows.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from api.auth import get_current_user, get_optional_user
from api.deps import get_user_service
from api.models import (
    LoginBody, ProfileEnvelope, ProfileUpdateBody, SignupBody, UserEnvelope
)
from community.models import FollowResponse, SuspendRequest
from community.users import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=UserEnvelope)
async def signup(
    body: Optional[SignupBody] = None,
    requester: Optional[Dict[str, Any]] = Depends(get_optional_user),
    users: UserService = Depends(get_user_service)
):
    """
    Register a new user.

    Requesting admin or moderator privileges requires an admin token.
    """
    user = await users.signup(body.user if body else None, requester)
    return UserEnvelope(user=user)


@router.post("/login", response_model=UserEnvelope)
async def login(body: Optional[LoginBody] = None, users: UserService = Depends(get_user_service)):
    """Log in with email and password and receive a token."""
    return UserEnvelope(user=await users.login(body.user if body else None))


@router.get("/{user_id}", response_model=UserEnvelope)
async def get_user(
    user_id: str,
    viewer: Optional[Dict[str, Any]] = Depends(get_optional_user),
    users: UserService = Depends(get_user_service)
):
    return UserEnvelope(user=await users.get_profile(user_id, viewer))


@router.put("/{user_id}", response_model=UserEnvelope)
async def update_user(
    user_id: str,
    body: Optional[ProfileUpdateBody] = None,
    actor: Dict[str, Any] = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    """Update your own profile."""
    user = await users.update_profile(user_id, actor, body.user if body else None)
    return UserEnvelope(user=user)


@router.post("/{user_id}/suspend", response_model=ProfileEnvelope)
async def suspend_user(
    user_id: str,
    body: Optional[SuspendRequest] = None,
    actor: Dict[str, Any] = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    """Suspend a user (admins and moderators only)."""
    user = await users.suspend(user_id, actor, body.days if body else None)
    return ProfileEnvelope(user=user)


@router.delete("/{user_id}/suspend", response_model=ProfileEnvelope)
async def unsuspend_user(
    user_id: str,
    actor: Dict[str, Any] = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    return ProfileEnvelope(user=await users.unsuspend(user_id, actor))


@router.post("/{user_id}/follow", response_model=FollowResponse)
async def follow_user(
    user_id: str,
    actor: Dict[str, Any] = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    return await users.follow(user_id, actor)


@router.delete("/{user_id}/follow", response_model=FollowResponse)
async def unfollow_user(
    user_id: str,
    actor: Dict[str, Any] = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    return await users.unfollow(user_id, actor)
