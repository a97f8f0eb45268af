"""
User service: signup, login, profiles, suspension and follows.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Union

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from api.config import config
from community.models import (
    AuthUserResponse, FollowResponse, LoginUser, ProfileResponse, ProfileUpdate,
    SignupUser, UserType, suspension_elapsed
)
from community.security import create_access_token, hash_password, verify_password
from utilities.documents import parse_object_id
from utilities.errors import (
    Forbidden, NotFound, Unauthorized, Unprocessable, ValidationFailed
)

logger = structlog.get_logger(__name__)

MISSING_USER_BODY = "You need to supply the user object with this request"
MISSING_USER = "The user you requested does not exist!"
STAFF_ONLY = "You have to be an admin or a moderator to perform this action"
STAFF_TYPES = (UserType.ADMIN.value, UserType.MODERATOR.value)


class UserService:
    """Service for user accounts and the follow graph."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.users_collection = database.users

    async def signup(
        self,
        data: Optional[SignupUser],
        requester: Optional[Dict[str, Any]] = None
    ) -> AuthUserResponse:
        """
        Register a new user.

        Admin and moderator roles can only be requested by an authenticated
        admin; anybody else asking for them is refused.

        Args:
            data: Signup body
            requester: Token claims of the caller, if any

        Returns:
            The new user with a token
        """
        if data is None:
            raise ValidationFailed(MISSING_USER_BODY)

        if data.missing_fields():
            raise ValidationFailed("Required form values need to be complete!")

        user_type = UserType.PLAIN
        if data.give_admin_priviledges or data.give_mod_priviledges:
            granter = await self.find_user(requester.get("id")) if requester else None
            if not granter or granter.get("user_type") != UserType.ADMIN.value:
                logger.warning(
                    "Refused privileged signup",
                    username=data.username,
                    requester=requester.get("id") if requester else None
                )
                raise Forbidden("Only an admin can create admin or moderator accounts")
            # The moderator flag wins when both are sent
            user_type = UserType.MODERATOR if data.give_mod_priviledges else UserType.ADMIN

        now = datetime.utcnow()
        document = {
            "username": data.username,
            "email": data.email,
            "first_name": data.first_name,
            "family_name": data.family_name,
            "password_hash": hash_password(data.password),
            "bio": None,
            "image": None,
            "user_type": user_type.value,
            "suspended": False,
            "suspension_timeline": None,
            "follower_count": 0,
            "following": [],
            "favorites": [],
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.users_collection.insert_one(document)
        except DuplicateKeyError:
            raise Unprocessable("Username or email is already taken")

        document["_id"] = result.inserted_id
        logger.info("User signed up", user_id=str(result.inserted_id), user_type=user_type.value)
        return self.auth_json(document)

    async def authenticate(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """Local credential check: the user with this email and a matching password."""
        user_doc = await self.users_collection.find_one({"email": email})
        if not user_doc or not verify_password(password, user_doc.get("password_hash")):
            return None
        return user_doc

    async def login(self, data: Optional[LoginUser]) -> AuthUserResponse:
        if data is None:
            raise ValidationFailed(MISSING_USER_BODY)
        if not data.email:
            raise Unprocessable("Email can't be blank")
        if not data.password:
            raise Unprocessable("Password can't be blank")

        user_doc = await self.authenticate(data.email, data.password)
        if not user_doc:
            logger.info("Login failed", email=data.email)
            raise Unprocessable(
                "Email or password is invalid",
                detail={"errors": {"email or password": "is invalid"}}
            )

        user_doc = await self.lift_elapsed_suspension(user_doc)
        logger.info("User logged in", user_id=str(user_doc["_id"]))
        return self.auth_json(user_doc)

    async def get_profile(
        self,
        user_id: str,
        viewer: Optional[Dict[str, Any]] = None
    ) -> Union[AuthUserResponse, ProfileResponse]:
        """
        Fetch a profile.

        The owner gets their auth representation; everybody else gets the
        public profile with a flag telling whether they follow the user.
        """
        user_doc = await self.find_user(user_id)
        if not user_doc:
            raise NotFound(MISSING_USER)

        user_doc = await self.lift_elapsed_suspension(user_doc)

        if viewer:
            if viewer["id"] == str(user_doc["_id"]):
                return self.auth_json(user_doc)
            viewing_user = await self.find_user(viewer["id"])
            return self.profile_json(user_doc, viewing_user)
        return self.profile_json(user_doc)

    async def update_profile(
        self,
        user_id: str,
        actor: Dict[str, Any],
        changes: Optional[ProfileUpdate]
    ) -> AuthUserResponse:
        if changes is None:
            raise ValidationFailed(MISSING_USER_BODY)

        user_doc = await self.find_user(user_id)
        if not user_doc:
            raise NotFound(MISSING_USER)
        if str(user_doc["_id"]) != actor["id"]:
            logger.warning("Refused profile edit by another user", user_id=user_id, actor=actor["id"])
            raise Forbidden("Cannot edit another user's profile!")

        updates = changes.dict(exclude_none=True)
        if "password" in updates:
            updates["password_hash"] = hash_password(updates.pop("password"))
        if not updates:
            return self.auth_json(user_doc)

        updates["updated_at"] = datetime.utcnow()
        try:
            user_doc = await self.users_collection.find_one_and_update(
                {"_id": user_doc["_id"]},
                {"$set": updates},
                return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            raise Unprocessable("Username or email is already taken")

        logger.info("Profile updated", user_id=user_id, fields=sorted(updates))
        return self.auth_json(user_doc)

    async def suspend(
        self,
        user_id: str,
        actor: Dict[str, Any],
        days: Optional[int] = None
    ) -> ProfileResponse:
        """
        Suspend a user for a number of days (admins and moderators only).

        Raises:
            Unauthorized: If the caller is unknown or not staff
            NotFound: If the user to suspend does not exist
            Forbidden: If a moderator tries to suspend an admin
        """
        super_user = await self._require_staff(actor)
        user_doc = await self.find_user(user_id)
        if not user_doc:
            raise NotFound(MISSING_USER)
        if user_doc.get("user_type") == UserType.ADMIN.value and super_user.get("user_type") != UserType.ADMIN.value:
            raise Forbidden("Moderators cannot suspend admins")

        user_doc = await self.apply_suspension(user_doc["_id"], days)
        logger.info("User suspended", user_id=user_id, by=actor["id"], until=user_doc["suspension_timeline"])
        return self.profile_json(user_doc, super_user)

    async def unsuspend(self, user_id: str, actor: Dict[str, Any]) -> ProfileResponse:
        super_user = await self._require_staff(actor)
        user_doc = await self.find_user(user_id)
        if not user_doc:
            raise NotFound(MISSING_USER)

        user_doc = await self.lift_suspension(user_doc["_id"])
        logger.info("User unsuspended", user_id=user_id, by=actor["id"])
        return self.profile_json(user_doc, super_user)

    async def follow(self, target_id: str, actor: Dict[str, Any]) -> FollowResponse:
        """Follow a user and recount their followers."""
        user_doc, target_doc = await self._follow_parties(target_id, actor)
        if target_doc["_id"] in user_doc.get("following", []):
            raise ValidationFailed("You are already following this user")

        await self.users_collection.update_one(
            {"_id": user_doc["_id"]},
            {"$addToSet": {"following": target_doc["_id"]}}
        )
        user_doc["following"] = list(user_doc.get("following", [])) + [target_doc["_id"]]
        target_doc["follower_count"] = await self.update_follower_count(target_doc["_id"])

        logger.info("User followed", user_id=str(user_doc["_id"]), target=target_id)
        return FollowResponse(
            user=self.profile_json(user_doc, target_doc),
            target_user=self.profile_json(target_doc, user_doc)
        )

    async def unfollow(self, target_id: str, actor: Dict[str, Any]) -> FollowResponse:
        """Stop following a user and recount their followers."""
        user_doc, target_doc = await self._follow_parties(target_id, actor)
        if target_doc["_id"] not in user_doc.get("following", []):
            raise ValidationFailed("You don't follow this user")

        await self.users_collection.update_one(
            {"_id": user_doc["_id"]},
            {"$pull": {"following": target_doc["_id"]}}
        )
        user_doc["following"] = [
            followed for followed in user_doc.get("following", []) if followed != target_doc["_id"]
        ]
        target_doc["follower_count"] = await self.update_follower_count(target_doc["_id"])

        logger.info("User unfollowed", user_id=str(user_doc["_id"]), target=target_id)
        return FollowResponse(
            user=self.profile_json(user_doc, target_doc),
            target_user=self.profile_json(target_doc, user_doc)
        )

    async def update_follower_count(self, user_object_id) -> int:
        """Recount the followers of a user from the follow graph and store it."""
        count = await self.users_collection.count_documents({"following": user_object_id})
        await self.users_collection.update_one(
            {"_id": user_object_id},
            {"$set": {"follower_count": count}}
        )
        return count

    async def recount_follower_counts(self) -> int:
        """Recompute every user's follower count. Returns the number of users updated."""
        updated = 0
        async for user_doc in self.users_collection.find({}, {"_id": 1}):
            await self.update_follower_count(user_doc["_id"])
            updated += 1
        logger.info("Follower counts recomputed", users=updated)
        return updated

    async def apply_suspension(self, user_object_id, days: Optional[int] = None) -> Dict[str, Any]:
        timeline = datetime.utcnow() + timedelta(days=days or config.suspension_days)
        return await self.users_collection.find_one_and_update(
            {"_id": user_object_id},
            {"$set": {"suspended": True, "suspension_timeline": timeline}},
            return_document=ReturnDocument.AFTER
        )

    async def lift_suspension(self, user_object_id) -> Dict[str, Any]:
        return await self.users_collection.find_one_and_update(
            {"_id": user_object_id},
            {"$set": {"suspended": False, "suspension_timeline": None}},
            return_document=ReturnDocument.AFTER
        )

    async def lift_elapsed_suspension(self, user_doc: Dict[str, Any]) -> Dict[str, Any]:
        """Clear a suspension whose window has run out; other users pass through."""
        if not suspension_elapsed(user_doc):
            return user_doc

        await self.users_collection.update_one(
            {"_id": user_doc["_id"]},
            {"$set": {"suspended": False, "suspension_timeline": None}}
        )
        logger.info("Elapsed suspension lifted", user_id=str(user_doc["_id"]))
        return {**user_doc, "suspended": False, "suspension_timeline": None}

    async def set_user_type(self, username: str, user_type: UserType) -> Optional[Dict[str, Any]]:
        """Change a user's role by username. Returns None when there is no such user."""
        user_doc = await self.users_collection.find_one_and_update(
            {"username": username},
            {"$set": {"user_type": user_type.value, "updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER
        )
        if user_doc:
            logger.info("User type changed", username=username, user_type=user_type.value)
        return user_doc

    async def find_user(self, user_id: Any) -> Optional[Dict[str, Any]]:
        object_id = parse_object_id(user_id)
        if object_id is None:
            return None
        return await self.users_collection.find_one({"_id": object_id})

    async def find_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        return await self.users_collection.find_one({"username": username})

    async def _require_staff(self, actor: Dict[str, Any]) -> Dict[str, Any]:
        super_user = await self.find_user(actor["id"])
        if not super_user:
            raise Unauthorized(MISSING_USER)
        if super_user.get("user_type") not in STAFF_TYPES:
            raise Unauthorized(STAFF_ONLY)
        return super_user

    async def _follow_parties(self, target_id: str, actor: Dict[str, Any]):
        user_doc, target_doc = await asyncio.gather(
            self.find_user(actor["id"]),
            self.find_user(target_id),
        )
        if not user_doc:
            raise Unauthorized(MISSING_USER)
        if not target_doc:
            raise NotFound(MISSING_USER)
        if user_doc["_id"] == target_doc["_id"]:
            raise ValidationFailed("You cannot follow yourself")
        return user_doc, target_doc

    @staticmethod
    def auth_json(user_doc: Dict[str, Any]) -> AuthUserResponse:
        return AuthUserResponse(
            id=str(user_doc["_id"]),
            username=user_doc["username"],
            email=user_doc["email"],
            first_name=user_doc.get("first_name", ""),
            family_name=user_doc.get("family_name", ""),
            bio=user_doc.get("bio"),
            image=user_doc.get("image"),
            user_type=user_doc.get("user_type", UserType.PLAIN.value),
            follower_count=user_doc.get("follower_count", 0),
            token=create_access_token(user_doc)
        )

    @staticmethod
    def profile_json(
        user_doc: Dict[str, Any],
        viewing_user: Optional[Dict[str, Any]] = None
    ) -> ProfileResponse:
        following = bool(viewing_user) and user_doc["_id"] in viewing_user.get("following", [])
        return ProfileResponse(
            id=str(user_doc["_id"]),
            username=user_doc["username"],
            first_name=user_doc.get("first_name", ""),
            family_name=user_doc.get("family_name", ""),
            bio=user_doc.get("bio"),
            image=user_doc.get("image"),
            user_type=user_doc.get("user_type", UserType.PLAIN.value),
            follower_count=user_doc.get("follower_count", 0),
            suspended=bool(user_doc.get("suspended")),
            following=following
        )
