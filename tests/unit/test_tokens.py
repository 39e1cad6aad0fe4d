import asyncio
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from phoneauth.application.tokens import TokenService
from phoneauth.domain.entities import IdentityKind
from phoneauth.domain.errors import InvalidToken, TokenExpired

SECRET = "test-secret"


@pytest.mark.asyncio
async def test_issue_returns_pair_and_writes_grant(tokens, store):
    pair = await tokens.issue("driver-1", IdentityKind.DRIVER)

    assert pair.expires_in == 900
    claims = tokens.parse_refresh(pair.refresh_token)
    grant_key = f"refresh:driver-1:{claims.token_id}"
    assert await store.get(grant_key) == "driver"
    assert store.ttl(grant_key) == 30 * 24 * 3600


@pytest.mark.asyncio
async def test_verify_access_returns_subject_and_role(tokens):
    pair = await tokens.issue("disp-1", IdentityKind.DISPATCHER)

    claims = tokens.verify_access(pair.access_token)
    assert claims.subject_id == "disp-1"
    assert claims.role is IdentityKind.DISPATCHER


@pytest.mark.asyncio
async def test_refresh_token_is_not_an_access_token(tokens):
    pair = await tokens.issue("driver-1", IdentityKind.DRIVER)
    with pytest.raises(InvalidToken):
        tokens.verify_access(pair.refresh_token)
    with pytest.raises(InvalidToken):
        tokens.parse_refresh(pair.access_token)


def test_verify_access_rejects_garbage_and_foreign_signatures(tokens):
    with pytest.raises(InvalidToken):
        tokens.verify_access("not-a-jwt")

    forged = jwt.encode(
        {
            "sub": "driver-1",
            "role": "driver",
            "typ": "access",
            "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        },
        "another-key",
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        tokens.verify_access(forged)


def test_verify_access_reports_expiry(tokens):
    expired = jwt.encode(
        {
            "sub": "driver-1",
            "role": "driver",
            "typ": "access",
            "exp": datetime.now(timezone.utc) - timedelta(seconds=5),
        },
        SECRET,
        algorithm="HS256",
    )
    with pytest.raises(TokenExpired):
        tokens.verify_access(expired)


def test_unknown_role_is_invalid(tokens):
    token = jwt.encode(
        {
            "sub": "x",
            "role": "admin",
            "typ": "access",
            "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        },
        SECRET,
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        tokens.verify_access(token)


@pytest.mark.asyncio
async def test_rotate_is_single_use(tokens, store):
    pair = await tokens.issue("driver-1", IdentityKind.DRIVER)

    rotated = await tokens.rotate(pair.refresh_token)
    assert rotated.refresh_token != pair.refresh_token
    assert tokens.verify_access(rotated.access_token).subject_id == "driver-1"

    with pytest.raises(InvalidToken):
        await tokens.rotate(pair.refresh_token)

    # only the new grant is left
    assert len(store.keys("refresh:driver-1:")) == 1


@pytest.mark.asyncio
async def test_concurrent_rotate_issues_at_most_one_pair(tokens, store):
    pair = await tokens.issue("driver-1", IdentityKind.DRIVER)

    results = await asyncio.gather(
        *(tokens.rotate(pair.refresh_token) for _ in range(5)),
        return_exceptions=True,
    )
    issued = [r for r in results if not isinstance(r, Exception)]
    assert len(issued) == 1
    assert all(isinstance(r, InvalidToken) for r in results if r not in issued)


@pytest.mark.asyncio
async def test_rotate_rejects_other_role_without_burning_the_grant(tokens, store):
    pair = await tokens.issue("driver-1", IdentityKind.DRIVER)

    with pytest.raises(InvalidToken):
        await tokens.rotate(pair.refresh_token, role=IdentityKind.DISPATCHER)

    await tokens.rotate(pair.refresh_token, role=IdentityKind.DRIVER)


@pytest.mark.asyncio
async def test_rotate_expired_refresh_is_invalid(store):
    short = TokenService(store, signing_key=SECRET, refresh_ttl_seconds=-1)
    pair = await short.issue("driver-1", IdentityKind.DRIVER)

    with pytest.raises(InvalidToken):
        await short.rotate(pair.refresh_token)


@pytest.mark.asyncio
async def test_revoked_refresh_cannot_rotate(tokens):
    pair = await tokens.issue("driver-1", IdentityKind.DRIVER)

    await tokens.revoke_refresh_token(pair.refresh_token)
    with pytest.raises(InvalidToken):
        await tokens.rotate(pair.refresh_token)

    # logout is best-effort
    await tokens.revoke_refresh_token(pair.refresh_token)
    await tokens.revoke_refresh_token("garbage")


@pytest.mark.asyncio
async def test_revoke_scoped_to_role_skips_other_kind(tokens):
    pair = await tokens.issue("dispatcher-1", IdentityKind.DISPATCHER)

    await tokens.revoke_refresh_token(pair.refresh_token, role=IdentityKind.DRIVER)
    rotated = await tokens.rotate(pair.refresh_token, role=IdentityKind.DISPATCHER)

    await tokens.revoke_refresh_token(
        rotated.refresh_token, role=IdentityKind.DISPATCHER
    )
    with pytest.raises(InvalidToken):
        await tokens.rotate(rotated.refresh_token)
