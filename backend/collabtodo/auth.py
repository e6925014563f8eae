import os
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from .database import get_db
from .errors import InvalidToken, Unauthenticated
from .models import User

logger = logging.getLogger(__name__)

# auto_error=False so a missing header answers 401 like every other auth failure
security = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))


def get_jwt_secret() -> str:
    """Signing secret, no fallback value."""
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise RuntimeError("JWT_SECRET environment variable is required")
    return secret


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=JWT_EXPIRE_DAYS))
    claims = {"sub": str(user_id), "exp": int(expire.timestamp())}
    return jwt.encode(claims, get_jwt_secret(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> int:
    """
    Verify a session token issued by create_access_token
    Returns the user id it was issued for
    Raises InvalidToken on bad signature, malformed token or expiry
    """
    try:
        claims = jwt.decode(token, get_jwt_secret(), algorithms=[ALGORITHM])
    except JWTError as e:
        raise InvalidToken(f"Invalid token: {e}")

    sub = claims.get("sub")
    try:
        return int(sub)
    except (TypeError, ValueError):
        raise InvalidToken("Invalid token subject")


def get_current_user(
        credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
        db: Session = Depends(get_db),
) -> User:
    """
    FastAPI dependency to get current authenticated user
    Usage: user = Depends(get_current_user)
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    try:
        user_id = decode_access_token(credentials.credentials)
    except InvalidToken as e:
        logger.warning(f"Rejected bearer token: {e.detail}")
        raise Unauthenticated()

    user = db.get(User, user_id)
    if user is None:
        logger.warning(f"Bearer token for unknown user {user_id}")
        raise Unauthenticated()
    return user
