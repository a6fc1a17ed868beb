"""
JWT Authentication Middleware.

Identifies the caller from a signed JWT that encodes the user id and email,
then resolves the caller's effective roles from the database.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import Depends, Header, HTTPException, Request
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from uproar.database import get_db
from uproar.services.permissions import Role
from uproar.services.roles import get_user_roles

logger = logging.getLogger(__name__)


# JWT Configuration
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days


def _get_secret_key() -> str:
    """Lazy-load the secret key to support testing."""
    from uproar.config import get_settings
    return get_settings().SECRET_KEY


@dataclass
class Actor:
    """The authenticated caller of a request."""
    user_id: str
    email: Optional[str]
    roles: List[Role] = field(default_factory=list)


def create_access_token(
    user_id: str,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT for a user.

    Args:
        user_id: The user's UUID.
        email: The user's email, carried as a claim.
        expires_delta: Optional custom expiration time.

    Returns:
        A signed JWT string.
    """
    to_encode = {"sub": user_id}
    if email:
        to_encode["email"] = email

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode["exp"] = expire

    return jwt.encode(to_encode, _get_secret_key(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry. Raises JWTError when either fails."""
    return jwt.decode(token, _get_secret_key(), algorithms=[ALGORITHM])


async def get_current_actor(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """
    FastAPI dependency that authenticates the caller and loads their roles.
    Supports both 'Authorization: Bearer' header and 'auth_token' cookie.

    Returns:
        The Actor for this request.
    """
    credentials_exception = HTTPException(
        status_code=401,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = None

    # 1. Try Authorization Header
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:]

    # 2. Try HttpOnly Cookie (Fallback)
    if not token:
        token = request.cookies.get("auth_token")

    if not token:
        raise credentials_exception

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise credentials_exception

    user_id: Optional[str] = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    roles = await get_user_roles(db, user_id)
    logger.info(f"Authenticated user: {user_id} roles={[r.value for r in roles]}")
    return Actor(user_id=user_id, email=payload.get("email"), roles=roles)
