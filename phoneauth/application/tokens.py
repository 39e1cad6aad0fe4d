from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

import jwt

from phoneauth.domain.entities import (
    AccessClaims,
    IdentityKind,
    RefreshClaims,
    TokenPair,
)
from phoneauth.domain.errors import InvalidToken, TokenExpired, Unauthorized
from phoneauth.domain.ports.volatile_store import VolatileStorePort

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


class TokenService:
    """
    Signed access/refresh pairs shared by every identity kind.

    Access tokens are stateless. A refresh token is only redeemable while its
    grant `refresh:{subject}:{jti}` exists; redeeming deletes the grant, so
    each refresh token rotates at most once.
    """

    def __init__(
        self,
        store: VolatileStorePort,
        *,
        signing_key: str,
        access_ttl_seconds: int = 900,
        refresh_ttl_seconds: int = 30 * 24 * 3600,
        algorithm: str = "HS256",
    ) -> None:
        self._store = store
        self._signing_key = signing_key
        self.access_ttl_seconds = access_ttl_seconds
        self.refresh_ttl_seconds = refresh_ttl_seconds
        self._algorithm = algorithm

    @staticmethod
    def _grant_key(subject_id: str, token_id: str) -> str:
        return f"refresh:{subject_id}:{token_id}"

    def _encode(self, claims: dict) -> str:
        return jwt.encode(claims, self._signing_key, algorithm=self._algorithm)

    def _decode(self, token: str, token_type: str) -> dict:
        try:
            claims = jwt.decode(
                (token or "").strip(),
                self._signing_key,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired() from e
        except jwt.PyJWTError as e:
            raise InvalidToken() from e
        if claims.get("typ") != token_type:
            raise InvalidToken()
        try:
            claims["role"] = IdentityKind(claims.get("role"))
        except ValueError as e:
            raise InvalidToken() from e
        return claims

    async def issue(self, subject_id: str, role: IdentityKind) -> TokenPair:
        now = datetime.now(timezone.utc)
        access_token = self._encode(
            {
                "sub": subject_id,
                "role": role.value,
                "typ": ACCESS,
                "iat": now,
                "exp": now + timedelta(seconds=self.access_ttl_seconds),
            }
        )
        token_id = str(uuid.uuid4())
        refresh_token = self._encode(
            {
                "sub": subject_id,
                "role": role.value,
                "typ": REFRESH,
                "jti": token_id,
                "iat": now,
                "exp": now + timedelta(seconds=self.refresh_ttl_seconds),
            }
        )
        await self._store.put(
            self._grant_key(subject_id, token_id), role.value, self.refresh_ttl_seconds
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.access_ttl_seconds,
        )

    def verify_access(self, token: str) -> AccessClaims:
        claims = self._decode(token, ACCESS)
        return AccessClaims(subject_id=claims["sub"], role=claims["role"])

    def parse_refresh(self, token: str) -> RefreshClaims:
        claims = self._decode(token, REFRESH)
        token_id = claims.get("jti")
        if not token_id:
            raise InvalidToken()
        return RefreshClaims(
            subject_id=claims["sub"], role=claims["role"], token_id=token_id
        )

    async def rotate(
        self, refresh_token: str, role: IdentityKind | None = None
    ) -> TokenPair:
        """
        Redeem a refresh token for a brand-new pair. Replays, revoked and
        expired tokens, and tokens of another kind all raise InvalidToken.
        """
        try:
            claims = self.parse_refresh(refresh_token)
        except TokenExpired as e:
            raise InvalidToken() from e
        if role is not None and claims.role is not role:
            raise InvalidToken()

        if not await self._store.delete(
            self._grant_key(claims.subject_id, claims.token_id)
        ):
            logger.warning(
                "refresh token replay or revoked",
                extra={"subject_id": claims.subject_id, "role": claims.role.value},
            )
            raise InvalidToken()
        return await self.issue(claims.subject_id, claims.role)

    async def revoke(self, subject_id: str, token_id: str) -> None:
        await self._store.delete(self._grant_key(subject_id, token_id))

    async def revoke_refresh_token(
        self, refresh_token: str, role: IdentityKind | None = None
    ) -> None:
        """
        Best-effort logout: unparseable tokens, and tokens of another role
        when `role` is given, are ignored.
        """
        try:
            claims = self.parse_refresh(refresh_token)
        except Unauthorized:
            return
        if role is not None and claims.role is not role:
            return
        await self.revoke(claims.subject_id, claims.token_id)
