"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies for protected routes (required / optional user)
- Policy-based role checks (see mbkm.core.permissions)
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import text

from mbkm.core.config import get_settings
from mbkm.core.errors import PermissionDeniedError, UnauthorizedError
from mbkm.core.permissions import is_allowed
from mbkm.db.postgres import get_db_session

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor; missing headers are reported as 401 below
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt. Errors propagate: an unusable hash must never be stored."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password against hash."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # stored value is not a recognised hash
        return False


def create_access_token(user: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token carrying user id, username and role."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    claims = {
        "sub": str(user["id"]),
        "user_id": user["id"],
        "username": user.get("username"),
        "role": user.get("role"),
        "iat": now,
        "nbf": now,
        "exp": expire,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token (signature, exp, nbf)."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def load_user(user_id: int) -> Optional[dict]:
    """Fetch the user row plus its role ids. Returns None if the user is gone."""
    with get_db_session() as db:
        result = db.execute(
            text("SELECT id, name, email, username, role FROM users WHERE id = :id"),
            {"id": user_id}
        )
        row = result.fetchone()
        if not row:
            return None
        roles = db.execute(
            text("SELECT role_id FROM role_user WHERE user_id = :id ORDER BY role_id"),
            {"id": user_id}
        )
        role_ids = [r[0] for r in roles.fetchall()]

    return {
        "user_id": row[0], "name": row[1], "email": row[2],
        "username": row[3], "role": row[4], "role_ids": role_ids,
    }


def _resolve_user(credentials: Optional[HTTPAuthorizationCredentials]) -> dict:
    if credentials is None:
        raise UnauthorizedError("Missing authorization header")
    if credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Invalid authorization header format")

    payload = decode_token(credentials.credentials)
    if not payload:
        raise UnauthorizedError("Invalid or expired token")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid token claims")

    user = load_user(user_id)
    if not user:
        raise UnauthorizedError("User not found")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    return _resolve_user(credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[dict]:
    """Dependency - Same as get_current_user but returns None for anonymous or bad tokens."""
    if credentials is None:
        return None
    try:
        return _resolve_user(credentials)
    except UnauthorizedError:
        return None


def require_permission(action: str):
    """
    Dependency factory - Require one of the roles POLICY allows for `action`.

    Usage:
        @router.post("/{id}/approve")
        async def approve(id: int, user: dict = Depends(require_permission("job.review"))):
            ...
    """
    async def dependency(user: dict = Depends(get_current_user)) -> dict:
        if not is_allowed(action, user["role_ids"]):
            raise PermissionDeniedError(f"Not allowed to perform '{action}'")
        return user

    return dependency
