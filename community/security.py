"""
Password hashing and JWT helpers.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from api.config import config

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    user_doc: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
    now_utc: Optional[datetime] = None,
) -> str:
    """
    Create a signed token identifying a user.

    Args:
        user_doc: User document; its ``_id`` and ``username`` become claims
        expires_delta: Token lifetime, defaults to the configured expiry
        now_utc: Current UTC time, for deterministic tests
    """
    current_time = now_utc or datetime.utcnow()
    expires_delta = expires_delta or timedelta(minutes=config.access_token_expire_minutes)
    claims = {
        "id": str(user_doc["_id"]),
        "username": user_doc.get("username"),
        "exp": current_time + expires_delta,
    }
    return jwt.encode(claims, config.secret_key, algorithm=config.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the token claims, or None when the token is invalid or expired."""
    try:
        payload = jwt.decode(token, config.secret_key, algorithms=[config.algorithm])
    except JWTError:
        return None
    if not payload.get("id"):
        return None
    return payload
