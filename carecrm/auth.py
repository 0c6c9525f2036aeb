import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import JWT_ALGORITHM, JWT_EXPIRY_HOURS, SECRET_KEY
from .database import get_db
from .exceptions import UnauthorizedException
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token for a user.

    Claims mirror what the login service issues: user_id, email, role and org_id.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=JWT_EXPIRY_HOURS))
    to_encode = {
        "user_id": user.id,
        "email": user.email,
        "role": user.role,
        "org_id": user.organization_id,
        "exp": expire,
    }
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry; raises UnauthorizedException"""
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise UnauthorizedException("Invalid or expired token") from e


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the bearer token to an active user.

    Role and organization come from the user row, not the token.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedException("Authorization header required")

    payload = decode_access_token(credentials.credentials)

    user_id = payload.get("user_id")
    if not user_id:
        logger.warning("❌ Token missing user_id claim")
        raise UnauthorizedException("Invalid token claims")

    user = (
        db.query(User)
        .filter(User.id == user_id, User.is_active.is_(True), User.deleted_at.is_(None))
        .first()
    )
    if not user:
        logger.warning(f"❌ Token for unknown or inactive user {user_id}")
        raise UnauthorizedException("User not found or inactive")

    if payload.get("org_id") and payload["org_id"] != user.organization_id:
        logger.warning(f"⚠️ Token organization mismatch for user {user_id}")
        raise UnauthorizedException("Token organization does not match user")

    return user
