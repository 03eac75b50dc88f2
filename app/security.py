"""
Password hashing and bearer-token signing.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from app.config import JWT_ALGORITHM, JWT_EXPIRY_DAYS, JWT_SECRET

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


# ── Passwords ─────────────────────────────────────────────────────────────


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, hashed: str | None) -> bool:
    """False for accounts without a password (email OTP users)."""
    if not hashed:
        return False
    try:
        return _pwd_context.verify(password, hashed)
    except ValueError:
        # Unrecognised hash format
        return False


# ── JWT ───────────────────────────────────────────────────────────────────


def create_access_token(user_id: str) -> str:
    """Create a signed JWT whose subject is the user id."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(days=JWT_EXPIRY_DAYS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Return the subject of a valid token.

    Raises jwt.ExpiredSignatureError / jwt.PyJWTError on a bad token.
    """
    payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    subject = payload.get("sub")
    if not subject:
        raise jwt.InvalidTokenError("token has no subject")
    return subject
