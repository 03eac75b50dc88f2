"""Concurrent access to the OTP manager from threads and event-loop tasks."""

import asyncio
import random
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from app.services.otp import OtpManager, VerifyReason

IDENTITIES = [f"user{i}@example.com" for i in range(1000)]


def _wrong(code: str) -> str:
    return "000000" if code != "000000" else "111111"


def _run_sequence(manager: OtpManager, identity: str, rng: random.Random) -> list[VerifyReason]:
    """Issue, miss once, maybe reissue, hit, replay. Returns the verdicts."""
    code = manager.issue(identity)
    reasons = [manager.verify(identity, _wrong(code)).reason]
    if rng.random() < 0.5:
        code = manager.issue(identity)
    reasons.append(manager.verify(identity, code).reason)
    reasons.append(manager.verify(identity, code).reason)
    return reasons


EXPECTED = [
    VerifyReason.INVALID_CODE,
    VerifyReason.SUCCESS,
    VerifyReason.NOT_FOUND_OR_EXPIRED,
]


class TestThreadedAccess:
    def test_many_identities_in_parallel(self, otp_manager):
        order = list(IDENTITIES)
        random.shuffle(order)

        def _job(identity: str) -> tuple[str, list[VerifyReason]]:
            return identity, _run_sequence(otp_manager, identity, random.Random(identity))

        with ThreadPoolExecutor(max_workers=32) as pool:
            results = dict(pool.map(_job, order))

        assert len(results) == len(IDENTITIES)
        for identity, reasons in results.items():
            assert reasons == EXPECTED, identity
        assert len(otp_manager) == 0

    def test_racing_correct_guesses_succeed_once(self, otp_manager):
        code = otp_manager.issue("race@example.com")
        barrier = threading.Barrier(16)

        def _guess(_):
            barrier.wait()
            return otp_manager.verify("race@example.com", code)

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(_guess, range(16)))

        assert sum(r.valid for r in results) == 1
        assert all(
            r.reason is VerifyReason.NOT_FOUND_OR_EXPIRED for r in results if not r.valid
        )

    def test_racing_wrong_guesses_burn_at_ceiling(self, otp_manager):
        code = otp_manager.issue("race@example.com")
        wrong = _wrong(code)
        barrier = threading.Barrier(12)

        def _guess(_):
            barrier.wait()
            return otp_manager.verify("race@example.com", wrong).reason

        with ThreadPoolExecutor(max_workers=12) as pool:
            reasons = list(pool.map(_guess, range(12)))

        assert reasons.count(VerifyReason.INVALID_CODE) == 2
        assert reasons.count(VerifyReason.TOO_MANY_ATTEMPTS) == 1
        assert reasons.count(VerifyReason.NOT_FOUND_OR_EXPIRED) == 9

    def test_concurrent_issue_leaves_one_live_record(self, otp_manager):
        barrier = threading.Barrier(8)

        def _issue(_):
            barrier.wait()
            return otp_manager.issue("race@example.com")

        with ThreadPoolExecutor(max_workers=8) as pool:
            codes = list(pool.map(_issue, range(8)))

        assert len(otp_manager) == 1
        live = otp_manager.peek("race@example.com").code
        assert live in codes
        # Only the last writer's code is accepted
        assert otp_manager.verify("race@example.com", live).valid is True


class TestEventLoopAccess:
    @pytest.mark.asyncio
    async def test_many_identities_as_tasks(self, otp_manager):
        async def _job(identity: str) -> list[VerifyReason]:
            rng = random.Random(identity)
            code = otp_manager.issue(identity)
            await asyncio.sleep(rng.random() / 1000)
            reasons = [otp_manager.verify(identity, _wrong(code)).reason]
            await asyncio.sleep(0)
            reasons.append(otp_manager.verify(identity, code).reason)
            await asyncio.sleep(rng.random() / 1000)
            reasons.append(otp_manager.verify(identity, code).reason)
            return reasons

        order = list(IDENTITIES)
        random.shuffle(order)
        results = await asyncio.gather(*(_job(i) for i in order))

        assert all(reasons == EXPECTED for reasons in results)
        assert len(otp_manager) == 0
