import logging
from typing import Annotated

import jwt
from fastapi import Cookie, Depends, HTTPException, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app import db
from app.config import ENVIRONMENT, JWT_EXPIRY_DAYS
from app.models import UserInfo
from app.security import create_access_token, decode_access_token

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"

_bearer = HTTPBearer(auto_error=False)


# ── Session ───────────────────────────────────────────────────────────────


def issue_session(response: Response, user_id: str) -> str:
    """Sign a token for *user_id*, set it as a cookie and return it."""
    token = create_access_token(user_id)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=ENVIRONMENT == "production",
        max_age=JWT_EXPIRY_DAYS * 86400,
    )
    return token


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)] = None,
    session: Annotated[str | None, Cookie()] = None,
) -> UserInfo:
    """Resolve the caller from a bearer token, falling back to the session cookie."""
    token = credentials.credentials if credentials else session
    if not token:
        raise _unauthorized("Not authorized, no token")

    try:
        user_id = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Session expired. Please log in again.") from None
    except jwt.PyJWTError:
        logger.info("Rejected invalid token")
        raise _unauthorized("Not authorized") from None

    user = await db.get_user(user_id)
    if user is None or not user.is_active:
        raise _unauthorized("Not authorized")
    return user


CurrentUser = Annotated[UserInfo, Depends(get_current_user)]
