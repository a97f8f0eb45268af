#!/usr/bin/env python3
"""
User Management Utility

This script provides operator commands that the API does not expose:
- Promote a user to admin or moderator (signup cannot grant roles on its own)
- Suspend or unsuspend a user by username
- Recompute follower and favorite counts
"""

import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from api.config import config
from community.models import UserType
from community.reviews import ReviewService
from community.users import UserService
from utilities.database import MongoDBManager
from utilities.logger import get_logger, setup_logging

logger = get_logger(__name__)

USAGE = """Usage: python manage_users.py [promote|suspend|unsuspend|recount] [args]

Commands:
  promote <username> <admin|moderator|plain>  - Change a user's role
  suspend <username> [days]                   - Suspend a user
  unsuspend <username>                        - Lift a suspension
  recount                                     - Recompute follower and favorite counts

Examples:
  python manage_users.py promote alice admin
  python manage_users.py suspend bob 3
  python manage_users.py recount"""


async def promote(users: UserService, username: str, role: str) -> bool:
    try:
        user_type = UserType(role.lower())
    except ValueError:
        print(f"Error: unknown role '{role}' (expected admin, moderator or plain)")
        return False

    user_doc = await users.set_user_type(username, user_type)
    if not user_doc:
        print(f"Error: no user named '{username}'")
        return False
    print(f"{username} is now {user_type.value}")
    return True


async def suspend(users: UserService, username: str, days: int = None) -> bool:
    user_doc = await users.find_by_username(username)
    if not user_doc:
        print(f"Error: no user named '{username}'")
        return False
    user_doc = await users.apply_suspension(user_doc["_id"], days)
    print(f"{username} suspended until {user_doc['suspension_timeline'].isoformat()}")
    return True


async def unsuspend(users: UserService, username: str) -> bool:
    user_doc = await users.find_by_username(username)
    if not user_doc:
        print(f"Error: no user named '{username}'")
        return False
    await users.lift_suspension(user_doc["_id"])
    print(f"{username} is no longer suspended")
    return True


async def recount(users: UserService, reviews: ReviewService) -> bool:
    user_total = await users.recount_follower_counts()
    review_total = await reviews.recount_favorite_counts()
    print(f"Recomputed follower counts for {user_total} users")
    print(f"Recomputed favorite counts for {review_total} reviews")
    return True


def parse_days(value: str):
    """Suspension length from the command line; None when it is not a whole number of days >= 1."""
    try:
        days = int(value)
    except ValueError:
        print(f"Error: days must be a whole number, got '{value}'")
        return None
    if days < 1:
        print("Error: days must be at least 1")
        return None
    return days


async def run(args) -> bool:
    """Dispatch a command against the configured database."""
    command = args[0].lower()
    days = None
    if command == "suspend" and len(args) == 3:
        days = parse_days(args[2])
        if days is None:
            return False

    logger.info("Running user management command", command=command)
    db_manager = MongoDBManager(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database
    )
    database = await db_manager.connect()
    try:
        users = UserService(database)
        if command == "promote" and len(args) == 3:
            return await promote(users, args[1], args[2])
        if command == "suspend" and len(args) in (2, 3):
            return await suspend(users, args[1], days)
        if command == "unsuspend" and len(args) == 2:
            return await unsuspend(users, args[1])
        if command == "recount" and len(args) == 1:
            return await recount(users, ReviewService(database, users))
        print(USAGE)
        return False
    finally:
        await db_manager.disconnect()


def main():
    """Main function."""
    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )

    if not asyncio.run(run(sys.argv[1:])):
        sys.exit(1)


if __name__ == "__main__":
    main()
