"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from api.deps import get_database
from api.main import app
from community.security import create_access_token, hash_password


def make_cursor(documents=None):
    """Create a mock Motor cursor whose chain methods return itself."""
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=list(documents or []))
    return cursor


def make_collection():
    """Create a mock Motor collection with empty results."""
    collection = MagicMock()
    collection.find = MagicMock(return_value=make_cursor())
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId()))
    collection.update_one = AsyncMock(return_value=MagicMock(modified_count=1))
    collection.update_many = AsyncMock(return_value=MagicMock(modified_count=0))
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    collection.count_documents = AsyncMock(return_value=0)
    collection.find_one_and_update = AsyncMock(return_value=None)
    return collection


def find_by_id(*documents):
    """side_effect for find_one that looks documents up by ``_id``."""
    by_id = {doc["_id"]: doc for doc in documents}

    async def find_one(query, *args, **kwargs):
        doc = by_id.get(query.get("_id"))
        return dict(doc) if doc else None

    return find_one


def auth_headers(user_doc):
    """Authorization header carrying a token for the given user document."""
    return {"Authorization": f"Bearer {create_access_token(user_doc)}"}


def actor(user_doc):
    """Token claims as the API dependencies pass them to the services."""
    return {"id": str(user_doc["_id"]), "username": user_doc["username"]}


@pytest.fixture
def mock_database():
    """Mock Motor database with one mock collection per application collection."""
    database = MagicMock()
    database.genres = make_collection()
    database.authors = make_collection()
    database.books = make_collection()
    database.users = make_collection()
    database.reviews = make_collection()
    return database


@pytest.fixture
def client():
    """Create test client; dependency overrides are cleared afterwards."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def db_client(client, mock_database):
    """Test client whose services run against the mock database."""
    app.dependency_overrides[get_database] = lambda: mock_database
    return client


def _user(username, user_type="plain", **overrides):
    now = datetime.utcnow()
    doc = {
        "_id": ObjectId(),
        "username": username,
        "email": f"{username}@example.com",
        "first_name": username.title(),
        "family_name": "Reader",
        "password_hash": hash_password("secret-password"),
        "bio": None,
        "image": None,
        "user_type": user_type,
        "suspended": False,
        "suspension_timeline": None,
        "follower_count": 0,
        "following": [],
        "favorites": [],
        "created_at": now,
        "updated_at": now,
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def alice():
    return _user("alice")


@pytest.fixture
def bob():
    return _user("bob")


@pytest.fixture
def admin_user():
    return _user("root", user_type="admin")


@pytest.fixture
def moderator_user():
    return _user("mod", user_type="moderator")


@pytest.fixture
def suspended_user():
    return _user(
        "carol",
        suspended=True,
        suspension_timeline=datetime.utcnow() + timedelta(days=3)
    )


@pytest.fixture
def sample_genre():
    return {"_id": ObjectId(), "name": "Fantasy"}


@pytest.fixture
def sample_author():
    return {
        "_id": ObjectId(),
        "first_name": "Ursula",
        "family_name": "Le Guin",
        "date_of_birth": datetime(1929, 10, 21),
        "date_of_death": datetime(2018, 1, 22),
    }


@pytest.fixture
def sample_book(sample_author, sample_genre):
    return {
        "_id": ObjectId(),
        "title": "A Wizard of Earthsea",
        "summary": "A young mage learns the cost of power.",
        "isbn": "9780547773742",
        "author": sample_author["_id"],
        "genre": [sample_genre["_id"]],
        "reviews": [],
    }


@pytest.fixture
def sample_review(alice, sample_book):
    now = datetime.utcnow()
    return {
        "_id": ObjectId(),
        "content": "Quiet and enormous.",
        "tags": ["classic"],
        "review_author": alice["_id"],
        "book": sample_book["_id"],
        "favorite_count": 0,
        "created_at": now,
        "updated_at": now,
    }
