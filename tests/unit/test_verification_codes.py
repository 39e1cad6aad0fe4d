import asyncio

import pytest

from phoneauth.application.verification_codes import VerificationCodeService
from phoneauth.domain.errors import (
    CodeExpired,
    CodeInvalid,
    CooldownActive,
    MaxAttemptsExceeded,
    RateLimited,
)
from tests.fakes import SuspendingStore

SUBJECT = "+15550001111"


@pytest.mark.asyncio
async def test_send_then_verify_returns_correlation_id(codes, store):
    await codes.send_code(SUBJECT, "123456", "abc")

    verified = await codes.verify_code(SUBJECT, "123456")
    assert verified.correlation_id == "abc"

    # single success path: the record is gone
    with pytest.raises(CodeExpired):
        await codes.verify_code(SUBJECT, "123456")


@pytest.mark.asyncio
async def test_code_record_is_hashed_and_expires(codes, store):
    await codes.send_code(SUBJECT, "123456", "abc")

    record = await store.get_hash(f"otp:{SUBJECT}")
    assert record["attempts"] == "0"
    assert record["request_id"] == "abc"
    assert "123456" not in record["hash"]
    assert store.ttl(f"otp:{SUBJECT}") == 180

    store.advance(181)
    with pytest.raises(CodeExpired):
        await codes.verify_code(SUBJECT, "123456")


@pytest.mark.asyncio
async def test_verify_without_send_is_expired(codes):
    with pytest.raises(CodeExpired):
        await codes.verify_code(SUBJECT, "123456")


@pytest.mark.asyncio
async def test_second_send_within_cooldown_is_rejected(codes, store):
    await codes.send_code(SUBJECT, "123456", "abc")

    with pytest.raises(CooldownActive):
        await codes.check_send_allowed(SUBJECT)
    with pytest.raises(CooldownActive):
        await codes.send_code(SUBJECT, "654321", "def")

    store.advance(61)
    await codes.check_send_allowed(SUBJECT)


@pytest.mark.asyncio
async def test_resend_supersedes_pending_code(codes, store):
    await codes.send_code(SUBJECT, "111111", "first")
    store.advance(61)
    await codes.send_code(SUBJECT, "222222", "second")

    with pytest.raises(CodeInvalid):
        await codes.verify_code(SUBJECT, "111111")
    verified = await codes.verify_code(SUBJECT, "222222")
    assert verified.correlation_id == "second"


@pytest.mark.asyncio
async def test_wrong_code_counts_attempts_then_locks(codes, store):
    await codes.send_code(SUBJECT, "123456", "abc")

    for _ in range(4):
        with pytest.raises(CodeInvalid):
            await codes.verify_code(SUBJECT, "000000")
    # the fifth wrong guess reaches the limit
    with pytest.raises(MaxAttemptsExceeded):
        await codes.verify_code(SUBJECT, "000000")

    # even the right code is refused now
    with pytest.raises(MaxAttemptsExceeded):
        await codes.verify_code(SUBJECT, "123456")
    record = await store.get_hash(f"otp:{SUBJECT}")
    assert record["attempts"] == "5"


@pytest.mark.asyncio
async def test_per_subject_send_limit(store):
    codes = VerificationCodeService(
        store, secret="s", cooldown_seconds=1, per_subject_limit=2
    )
    for i in range(2):
        await codes.send_code(SUBJECT, "123456", f"r{i}")
        store.advance(2)

    with pytest.raises(RateLimited):
        await codes.check_send_allowed(SUBJECT)
    with pytest.raises(RateLimited):
        await codes.send_code(SUBJECT, "123456", "r3")

    # the window resets the counter
    store.advance(3600)
    await codes.check_send_allowed(SUBJECT)


@pytest.mark.asyncio
async def test_per_ip_send_limit_spans_subjects(store):
    codes = VerificationCodeService(store, secret="s", per_ip_limit=2)
    await codes.send_code("+15550000001", "123456", "a", client_ip="10.0.0.1")
    await codes.send_code("+15550000002", "123456", "b", client_ip="10.0.0.1")

    with pytest.raises(RateLimited):
        await codes.check_send_allowed("+15550000003", "10.0.0.1")
    with pytest.raises(RateLimited):
        await codes.send_code("+15550000003", "123456", "c", client_ip="10.0.0.1")
    # other clients are unaffected
    await codes.check_send_allowed("+15550000003", "10.0.0.2")


@pytest.mark.asyncio
async def test_codes_are_bound_to_subject(codes, store):
    await codes.send_code("+15550000001", "123456", "a")
    await codes.send_code("+15550000002", "123456", "b")

    first = await store.get_hash("otp:+15550000001")
    second = await store.get_hash("otp:+15550000002")
    assert first["hash"] != second["hash"]


@pytest.mark.asyncio
async def test_concurrent_sends_claim_cooldown_once():
    store = SuspendingStore()
    codes = VerificationCodeService(store, secret="s")

    results = await asyncio.gather(
        codes.send_code(SUBJECT, "111111", "a"),
        codes.send_code(SUBJECT, "222222", "b"),
        return_exceptions=True,
    )

    assert results.count(None) == 1
    assert sum(isinstance(r, CooldownActive) for r in results) == 1
    assert await store.get(f"otp:send_count:{SUBJECT}") == "1"


@pytest.mark.asyncio
async def test_rate_limited_send_does_not_hold_cooldown(store):
    codes = VerificationCodeService(store, secret="s", per_subject_limit=1)
    await codes.send_code(SUBJECT, "123456", "r1")
    store.advance(61)

    with pytest.raises(RateLimited):
        await codes.send_code(SUBJECT, "123456", "r2")
    assert not await store.exists(f"otp:cooldown:{SUBJECT}")
    # the first code is still the pending one
    verified = await codes.verify_code(SUBJECT, "123456")
    assert verified.correlation_id == "r1"
