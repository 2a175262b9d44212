"""
Bearer-token verification for protected post routes.

Tokens are HS256 JWTs whose ``sub`` claim is the caller's user id.  The
token may arrive either as ``Authorization: Bearer <token>`` or in the
``x-auth-token`` header used by older clients.  Only verification lives
here; issuing tokens for real users belongs to the identity service, and
``create_access_token`` exists for scripts and tests.
"""
import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.config import settings
from app.errors import UnauthenticatedError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"sub": str(user_id), "iat": now, "exp": expire}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str | None:
    """Return the user id carried by *token*, or None if it does not verify."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        logger.debug("Rejected bearer token: %s", exc)
        return None
    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        return None
    return user_id


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    x_auth_token: str | None = Header(None, alias="x-auth-token"),
) -> str:
    """FastAPI dependency resolving the request to a verified user id."""
    token = credentials.credentials if credentials else x_auth_token
    if not token:
        raise UnauthenticatedError()

    user_id = decode_access_token(token)
    if user_id is None:
        raise UnauthenticatedError("Token is not valid")
    return user_id
