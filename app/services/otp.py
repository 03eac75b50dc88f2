"""
One-time passcode store with single-use, expiry and attempt limits.

The manager owns a single in-memory store keyed by normalized email.
Every state transition happens under one lock, and the critical
sections only touch the dict and the clock, so the manager is safe to
call from request handlers running on threads or on the event loop.

Usage::

    otp = OtpManager(ttl_seconds=600)
    code = otp.issue("a@b.com")          # hand the code to the mailer
    result = otp.verify("a@b.com", code)
    if result.valid: ...
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from app.config import OTP_MAX_ATTEMPTS, OTP_SWEEP_INTERVAL, OTP_TTL_SECONDS
from app.services.background import BackgroundWorker

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
_CODE_SPACE = 10**CODE_LENGTH

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_identity(email: str) -> str:
    """Case-fold an email so that it can be used as a store key."""
    return email.strip().lower()


class OtpGenerationError(RuntimeError):
    """The OS random source could not produce a code."""


class VerifyReason(str, enum.Enum):
    SUCCESS = "success"
    NOT_FOUND_OR_EXPIRED = "not_found_or_expired"
    EXPIRED = "expired"
    INVALID_CODE = "invalid_code"
    TOO_MANY_ATTEMPTS = "too_many_attempts"


_MESSAGES = {
    VerifyReason.SUCCESS: "OTP verified successfully",
    VerifyReason.NOT_FOUND_OR_EXPIRED: "OTP not found or expired",
    VerifyReason.EXPIRED: "OTP has expired. Please request a new one.",
    VerifyReason.INVALID_CODE: "Invalid OTP",
    VerifyReason.TOO_MANY_ATTEMPTS: "Too many failed attempts. Please request a new OTP.",
}


@dataclass(frozen=True)
class VerifyResult:
    valid: bool
    reason: VerifyReason

    @property
    def message(self) -> str:
        """User-facing text for the outcome."""
        return _MESSAGES[self.reason]


@dataclass
class OtpRecord:
    identity: str
    code: str
    issued_at: datetime
    expires_at: datetime
    attempts: int = 0


def generate_code() -> str:
    """
    Draw a uniformly distributed 6-digit code (leading zeros kept).

    Raises OtpGenerationError if the OS entropy source fails; callers
    must never fall back to a weaker generator.
    """
    try:
        value = secrets.randbelow(_CODE_SPACE)
    except (OSError, NotImplementedError) as exc:
        raise OtpGenerationError("random source unavailable") from exc
    return f"{value:0{CODE_LENGTH}d}"


class OtpManager:
    """
    Keyed store of pending codes with single-use, expiry and
    attempt-limit semantics.

    At most one record exists per identity. A record leaves the store
    exactly once: when it is consumed, found expired, burned by the
    last allowed failed attempt, or purged by the sweeper.
    """

    def __init__(
        self,
        *,
        ttl_seconds: int = OTP_TTL_SECONDS,
        max_attempts: int = OTP_MAX_ATTEMPTS,
        clock: Clock = _utcnow,
    ) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_attempts = max_attempts
        self._clock = clock
        self._records: dict[str, OtpRecord] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    # ── Issue ──────────────────────────────────────────────────────────

    def issue(self, identity: str) -> str:
        """
        Create a fresh code for *identity*, replacing any live one.

        The code is generated before the lock is taken, so a failing
        random source leaves the existing record untouched.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")

        code = generate_code()
        with self._lock:
            now = self._clock()
            replaced = identity in self._records
            self._records[identity] = OtpRecord(
                identity=identity,
                code=code,
                issued_at=now,
                expires_at=now + self._ttl,
            )

        logger.info(
            "OTP issued for %s (replaced=%s, expires in %ds)",
            identity, replaced, self.ttl_seconds,
        )
        return code

    # ── Verify ─────────────────────────────────────────────────────────

    def verify(self, identity: str, candidate: str) -> VerifyResult:
        """
        Check *candidate* against the live record for *identity*.

        Expiry is checked before the code, so an expired code never
        costs an attempt.
        """
        with self._lock:
            now = self._clock()
            record = self._records.get(identity)

            if record is None:
                result = VerifyResult(False, VerifyReason.NOT_FOUND_OR_EXPIRED)
            elif now >= record.expires_at:
                del self._records[identity]
                result = VerifyResult(False, VerifyReason.EXPIRED)
            elif not secrets.compare_digest(
                record.code.encode("ascii"), candidate.encode("utf-8")
            ):
                record.attempts += 1
                if record.attempts >= self._max_attempts:
                    del self._records[identity]
                    result = VerifyResult(False, VerifyReason.TOO_MANY_ATTEMPTS)
                else:
                    result = VerifyResult(False, VerifyReason.INVALID_CODE)
            else:
                del self._records[identity]
                result = VerifyResult(True, VerifyReason.SUCCESS)

        logger.info("OTP verify for %s: %s", identity, result.reason.value)
        return result

    # ── Housekeeping ───────────────────────────────────────────────────

    def purge_expired(self) -> int:
        """Drop every expired record. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, r in self._records.items() if now >= r.expires_at]
            for key in expired:
                del self._records[key]
        return len(expired)

    def peek(self, identity: str) -> OtpRecord | None:
        """Return a copy of the stored record, if any. No side effects."""
        with self._lock:
            record = self._records.get(identity)
            return dataclasses.replace(record) if record else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class OtpSweeper(BackgroundWorker):
    """Periodically purges codes that expired without being verified."""

    def __init__(self, manager: OtpManager, *, interval: float = OTP_SWEEP_INTERVAL) -> None:
        super().__init__(interval=interval, name="otp-sweeper")
        self._manager = manager

    async def _tick(self) -> None:
        purged = self._manager.purge_expired()
        if purged:
            logger.info("Purged %d expired OTP(s), %d pending", purged, len(self._manager))


# ── Module-level singletons ───────────────────────────────────────────────
otp_manager = OtpManager()
otp_sweeper = OtpSweeper(otp_manager)
