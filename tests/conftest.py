"""
Shared test fixtures.

Provides a FastAPI TestClient wired to:
  • a temporary SQLite database (via app lifespan)
  • a fresh OtpManager driven by a controllable clock
  • a recording mailer (no SMTP)

The `client` fixture runs the full lifespan (DB init / shutdown) so that
the user store backed by SQLite works correctly in tests.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.otp import OtpManager, OtpSweeper
from tests.mocks.clock import FakeClock
from tests.mocks.mailer import RecordingMailer


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def otp_manager(clock: FakeClock) -> OtpManager:
    return OtpManager(ttl_seconds=600, max_attempts=3, clock=clock)


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def _test_env(monkeypatch, tmp_path, otp_manager: OtpManager, mailer: RecordingMailer):
    """
    Internal fixture that patches the DB path, the OTP manager and the
    mailer so that the app lifespan runs cleanly against a temp
    database and nothing leaves the process.
    """
    # ── Temp database ─────────────────────────────────────────────────
    import app.db as db_mod

    monkeypatch.setattr(db_mod, "DB_PATH", str(tmp_path / "test.db"))

    # ── Fresh OTP store (everywhere it was imported) ──────────────────
    monkeypatch.setattr("app.services.otp.otp_manager", otp_manager)
    monkeypatch.setattr("app.routers.auth.otp_manager", otp_manager)
    monkeypatch.setattr("app.main.otp_sweeper", OtpSweeper(otp_manager, interval=3600))

    # ── Recording mailer ──────────────────────────────────────────────
    monkeypatch.setattr("app.routers.auth.send_otp_email", mailer.send_otp_email)
    monkeypatch.setattr("app.routers.auth.send_welcome_email", mailer.send_welcome_email)
    monkeypatch.setattr(
        "app.routers.auth.send_password_reset_email", mailer.send_password_reset_email
    )

    # ── Disable rate limiting in tests ────────────────────────────────
    from app.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)

    return otp_manager


@pytest.fixture()
def client(_test_env: OtpManager) -> TestClient:
    """
    FastAPI TestClient with temp DB, fresh OTP store and recording mailer.

    Uses a context manager so the lifespan runs (DB init/shutdown).
    """
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc
