"""
SQLite database layer using aiosqlite.

Stores user accounts. OTP state is deliberately not persisted here;
it lives in memory in app.services.otp.
Tables are created automatically on first connect.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

import aiosqlite

from app.config import DB_PATH
from app.models import UserInfo

logger = logging.getLogger(__name__)


class DuplicateUserError(Exception):
    """A unique column (name or email) already holds the given value."""

    def __init__(self, field: str) -> None:
        super().__init__(f"duplicate {field}")
        self.field = field


# ── Module-level connection ───────────────────────────────────────────────

_db: aiosqlite.Connection | None = None


async def init_db() -> None:
    """Open the database and create tables if they don't exist."""
    global _db
    db_path = Path(DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(db_path))
    _db.row_factory = aiosqlite.Row  # dict-like rows
    await _db.execute("PRAGMA journal_mode=WAL")

    await _db.executescript(_SCHEMA)
    await _db.commit()
    logger.info("Database initialized at %s", db_path)


async def close_db() -> None:
    """Close the database connection."""
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("Database connection closed")


def get_db() -> aiosqlite.Connection:
    """Return the active database connection (must call init_db first)."""
    assert _db is not None, "Database not initialized, call init_db() first"
    return _db


# ── Schema ────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id                TEXT PRIMARY KEY,
    name              TEXT NOT NULL UNIQUE COLLATE NOCASE,
    email             TEXT UNIQUE,          -- lower-cased; NULL for password-only users
    password_hash     TEXT,                 -- NULL for email OTP users
    role              TEXT NOT NULL DEFAULT 'auditor',
    is_email_verified INTEGER NOT NULL DEFAULT 0,
    is_active         INTEGER NOT NULL DEFAULT 1,
    auth_method       TEXT NOT NULL DEFAULT 'email_otp',
    last_login        TEXT,
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_users_active ON users(is_active);
"""


# ── Helpers ───────────────────────────────────────────────────────────────


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_user(row: aiosqlite.Row) -> UserInfo:
    """Convert a database row to a UserInfo model (never exposes the hash)."""
    return UserInfo(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        role=row["role"],
        is_email_verified=bool(row["is_email_verified"]),
        is_active=bool(row["is_active"]),
        auth_method=row["auth_method"],
        last_login=row["last_login"],
        created_at=row["created_at"],
    )


def _duplicate_field(exc: sqlite3.IntegrityError) -> str:
    # sqlite reports e.g. "UNIQUE constraint failed: users.email"
    return "email" if "users.email" in str(exc) else "name"


async def _fetch_one(sql: str, params: tuple) -> UserInfo | None:
    db = get_db()
    async with db.execute(sql, params) as cur:
        row = await cur.fetchone()
    return _row_to_user(row) if row else None


# ══════════════════════════════════════════════════════════════════════════
#                          USER REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def create_user(
    name: str,
    *,
    auth_method: str,
    email: str | None = None,
    password_hash: str | None = None,
    is_email_verified: bool = False,
    role: str = "auditor",
) -> UserInfo:
    """Insert a new user and return it. Raises DuplicateUserError."""
    db = get_db()
    user_id = str(uuid4())
    now = _now_iso()

    try:
        await db.execute(
            """
            INSERT INTO users (
                id, name, email, password_hash, role,
                is_email_verified, is_active, auth_method,
                last_login, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, 1, ?, NULL, ?, ?)
            """,
            (
                user_id, name, email, password_hash, role,
                int(is_email_verified), auth_method,
                now, now,
            ),
        )
    except sqlite3.IntegrityError as exc:
        await db.rollback()
        raise DuplicateUserError(_duplicate_field(exc)) from exc
    await db.commit()

    logger.info("Created user %s (%s, %s)", user_id, name, auth_method)
    return await get_user(user_id)  # type: ignore[return-value]


async def get_user(user_id: str) -> UserInfo | None:
    """Fetch a single user by ID."""
    return await _fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))


async def get_user_by_name(name: str, *, active_only: bool = False) -> UserInfo | None:
    """Case-insensitive lookup by display name."""
    sql = "SELECT * FROM users WHERE name = ?"
    if active_only:
        sql += " AND is_active = 1"
    return await _fetch_one(sql, (name,))


async def get_user_by_email(email: str, *, active_only: bool = False) -> UserInfo | None:
    """Lookup by (already normalized) email."""
    sql = "SELECT * FROM users WHERE email = ?"
    if active_only:
        sql += " AND is_active = 1"
    return await _fetch_one(sql, (email,))


async def name_taken(name: str) -> bool:
    return await get_user_by_name(name) is not None


async def get_password_hash(user_id: str) -> str | None:
    db = get_db()
    async with db.execute(
        "SELECT password_hash FROM users WHERE id = ?", (user_id,)
    ) as cur:
        row = await cur.fetchone()
    return row["password_hash"] if row else None


async def record_login(user_id: str) -> UserInfo | None:
    """Set last_login to now and return the refreshed user."""
    db = get_db()
    now = _now_iso()
    await db.execute(
        "UPDATE users SET last_login = ?, updated_at = ? WHERE id = ?",
        (now, now, user_id),
    )
    await db.commit()
    return await get_user(user_id)


async def set_password(user_id: str, password_hash: str) -> bool:
    """Replace a user's password hash. Returns True if a row was updated."""
    db = get_db()
    cur = await db.execute(
        "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
        (password_hash, _now_iso(), user_id),
    )
    await db.commit()
    return cur.rowcount > 0
