"""
Service dependencies for the API routes.

The application lifespan registers the database; each request gets
services bound to it. Tests replace the service getters through
``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from catalog.database import CatalogDatabaseService
from community.reviews import ReviewService
from community.users import UserService

_database: Optional[AsyncIOMotorDatabase] = None


def set_database(database: Optional[AsyncIOMotorDatabase]) -> None:
    global _database
    _database = database


def get_database() -> AsyncIOMotorDatabase:
    if _database is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database service not available"
        )
    return _database


def get_catalog_service(
    database: AsyncIOMotorDatabase = Depends(get_database)
) -> CatalogDatabaseService:
    return CatalogDatabaseService(database)


def get_user_service(
    database: AsyncIOMotorDatabase = Depends(get_database)
) -> UserService:
    return UserService(database)


def get_review_service(
    database: AsyncIOMotorDatabase = Depends(get_database),
    user_service: UserService = Depends(get_user_service)
) -> ReviewService:
    return ReviewService(database, user_service)
