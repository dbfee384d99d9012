"""
Authentication Utility - JWT verification and role checks.

Provides:
- JWT token creation (seeding scripts, tests) and verification
- FastAPI dependencies for protected routes
- Development bypass with a synthetic user (role from X-Dev-Role)

Tokens are issued by the identity provider; this service only verifies them.
The caller's role comes from the users collection, keyed by the token's sub.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from placement.core.config import get_settings
from placement.core.errors import AuthError, ForbiddenError
from placement.db.mongodb import COLLECTIONS
from placement.db.store import DocumentStore, get_store

logger = logging.getLogger(__name__)

# Bearer token extractor; missing headers are reported by us, not by FastAPI
bearer_scheme = HTTPBearer(auto_error=False)

DEV_USER_ID = "dev-user-id"
DEV_USER_EMAIL = "dev@example.com"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _dev_user(role: Optional[str]) -> dict:
    role = role or "faculty"
    return {
        "uid": DEV_USER_ID,
        "email": DEV_USER_EMAIL,
        "role": role,
        "userData": {"role": role, "name": "Development User"},
    }


def _user_from_token(store: DocumentStore, token: str) -> Optional[dict]:
    payload = decode_token(token)
    if not payload or not payload.get("sub"):
        return None

    user_id = str(payload["sub"])
    user_doc = store.get(COLLECTIONS["users"], user_id) or {}
    return {
        "uid": user_id,
        "email": payload.get("email") or user_doc.get("email"),
        "role": user_doc.get("role"),
        "userData": user_doc,
    }


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_dev_role: Optional[str] = Header(None),
    store: DocumentStore = Depends(get_store),
) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    if get_settings().auth_bypass_enabled:
        logger.debug("Auth bypass: using development user")
        return _dev_user(x_dev_role)

    if credentials is None:
        raise AuthError("No token provided or invalid format. Use: Bearer <token>")

    user = _user_from_token(store, credentials.credentials)
    if user is None:
        logger.warning("Token verification failed")
        raise AuthError("Invalid or expired token")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: DocumentStore = Depends(get_store),
) -> Optional[dict]:
    """Dependency - verify a token when one is sent; anonymous callers get None."""
    if credentials is None:
        return None
    user = _user_from_token(store, credentials.credentials)
    if user is None:
        logger.info("Optional auth: invalid token provided")
    return user


def require_role(*allowed_roles: str) -> Callable:
    """Dependency factory - restrict a route to the given roles."""
    async def _check(user: dict = Depends(get_current_user)) -> dict:
        if not user.get("role"):
            raise ForbiddenError("User role not found")
        if user["role"] not in allowed_roles:
            raise ForbiddenError(f"Access denied. Required role: {' or '.join(allowed_roles)}")
        return user

    return _check
