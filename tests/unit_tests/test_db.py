"""Tests for the SQLite user store."""

import pytest
import pytest_asyncio

from app import db


@pytest_asyncio.fixture()
async def database(monkeypatch, tmp_path):
    monkeypatch.setattr(db, "DB_PATH", str(tmp_path / "users.db"))
    await db.init_db()
    try:
        yield db
    finally:
        await db.close_db()


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_create_email_user(self, database):
        user = await db.create_user(
            "Alice",
            auth_method="email_otp",
            email="alice@example.com",
            is_email_verified=True,
        )
        assert user.name == "Alice"
        assert user.email == "alice@example.com"
        assert user.role == "auditor"
        assert user.is_email_verified is True
        assert user.is_active is True
        assert user.last_login is None
        assert await db.get_password_hash(user.id) is None

    @pytest.mark.asyncio
    async def test_password_users_without_email(self, database):
        await db.create_user("Bob", auth_method="password", password_hash="h1")
        carol = await db.create_user("Carol", auth_method="password", password_hash="h2")
        assert carol.email is None
        assert await db.get_password_hash(carol.id) == "h2"

    @pytest.mark.asyncio
    async def test_duplicate_name_is_case_insensitive(self, database):
        await db.create_user("Alice", auth_method="password")
        with pytest.raises(db.DuplicateUserError) as exc_info:
            await db.create_user("ALICE", auth_method="password")
        assert exc_info.value.field == "name"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, database):
        await db.create_user("Alice", auth_method="email_otp", email="a@b.com")
        with pytest.raises(db.DuplicateUserError) as exc_info:
            await db.create_user("Another", auth_method="email_otp", email="a@b.com")
        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_store_usable_after_duplicate(self, database):
        await db.create_user("Alice", auth_method="password")
        with pytest.raises(db.DuplicateUserError):
            await db.create_user("alice", auth_method="password")
        user = await db.create_user("Bob", auth_method="password")
        assert await db.get_user(user.id) == user


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_by_name_ignores_case(self, database):
        created = await db.create_user("Alice", auth_method="password")
        found = await db.get_user_by_name("alice")
        assert found is not None
        assert found.id == created.id
        assert await db.name_taken("ALICE") is True
        assert await db.name_taken("Zed") is False

    @pytest.mark.asyncio
    async def test_get_by_email(self, database):
        created = await db.create_user("Alice", auth_method="email_otp", email="a@b.com")
        assert (await db.get_user_by_email("a@b.com")).id == created.id
        assert await db.get_user_by_email("x@b.com") is None

    @pytest.mark.asyncio
    async def test_active_only_filters_inactive(self, database):
        user = await db.create_user("Alice", auth_method="email_otp", email="a@b.com")
        conn = db.get_db()
        await conn.execute("UPDATE users SET is_active = 0 WHERE id = ?", (user.id,))
        await conn.commit()

        assert await db.get_user_by_email("a@b.com", active_only=True) is None
        assert await db.get_user_by_name("Alice", active_only=True) is None
        assert await db.get_user_by_email("a@b.com") is not None

    @pytest.mark.asyncio
    async def test_missing_user(self, database):
        assert await db.get_user("no-such-id") is None
        assert await db.get_password_hash("no-such-id") is None


class TestUpdates:
    @pytest.mark.asyncio
    async def test_record_login(self, database):
        user = await db.create_user("Alice", auth_method="password")
        updated = await db.record_login(user.id)
        assert updated.last_login is not None

    @pytest.mark.asyncio
    async def test_set_password(self, database):
        user = await db.create_user("Alice", auth_method="email_otp", email="a@b.com")
        assert await db.set_password(user.id, "new-hash") is True
        assert await db.get_password_hash(user.id) == "new-hash"

    @pytest.mark.asyncio
    async def test_set_password_unknown_user(self, database):
        assert await db.set_password("no-such-id", "hash") is False
