from __future__ import annotations

import logging
import uuid

from phoneauth.application.hashed_records import (
    ATTEMPTS_FIELD,
    HASH_FIELD,
    redeem_hashed_record,
)
from phoneauth.domain.entities import ActionGrant
from phoneauth.domain.errors import CodeExpired, SessionNotFound
from phoneauth.domain.ports.volatile_store import VolatileStorePort
from phoneauth.domain.services import keyed_digest

logger = logging.getLogger(__name__)


class OneTimeSessionService:
    """Opaque session id -> payload string, redeemable exactly once."""

    def __init__(
        self, store: VolatileStorePort, *, key_prefix: str, ttl_seconds: int = 900
    ) -> None:
        self._store = store
        self._prefix = key_prefix
        self.ttl_seconds = ttl_seconds

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}:{session_id}"

    async def create(self, payload: str) -> str:
        session_id = str(uuid.uuid4())
        await self._store.put(self._key(session_id), payload, self.ttl_seconds)
        return session_id

    async def consume(self, session_id: str) -> str:
        """
        Atomic read-and-delete. The session is gone afterwards whatever the
        caller does with the payload.
        """
        session_id = (session_id or "").strip()
        if not session_id:
            raise SessionNotFound()
        payload = await self._store.take(self._key(session_id))
        if payload is None:
            raise SessionNotFound()
        return payload


class ActionSessionService:
    """
    One-time session that is only released against a fresh code.

    The code hash binds to the session id, so a guess is only meaningful for
    the session it was submitted to.
    """

    def __init__(
        self,
        store: VolatileStorePort,
        *,
        secret: str,
        key_prefix: str,
        ttl_seconds: int = 180,
        max_attempts: int = 5,
    ) -> None:
        self._store = store
        self._secret = secret
        self._prefix = key_prefix
        self.ttl_seconds = ttl_seconds
        self._max_attempts = max_attempts

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}:{session_id}"

    async def create(
        self,
        subject_id: str,
        current_payload: str,
        target_payload: str,
        code: str,
    ) -> str:
        session_id = str(uuid.uuid4())
        await self._store.put_hash(
            self._key(session_id),
            {
                "subject_id": subject_id,
                "current": current_payload,
                "target": target_payload,
                HASH_FIELD: keyed_digest(session_id, code, self._secret),
                ATTEMPTS_FIELD: "0",
            },
            self.ttl_seconds,
        )
        return session_id

    async def verify(
        self, session_id: str, candidate: str, subject_id: str | None = None
    ) -> ActionGrant:
        """
        Redeem the session with `candidate`. When `subject_id` is given, a
        session owned by someone else is refused before any attempt is spent.
        """
        session_id = (session_id or "").strip()
        if not session_id:
            raise CodeExpired()
        if subject_id is not None:
            owner = await self._store.get_hash(self._key(session_id))
            if not owner or owner.get("subject_id") != subject_id:
                raise CodeExpired()

        record = await redeem_hashed_record(
            self._store,
            self._key(session_id),
            keyed_digest(session_id, candidate, self._secret),
            self._max_attempts,
        )
        subject_id = record.get("subject_id", "")
        if not subject_id:
            logger.warning("action session without subject", extra={"prefix": self._prefix})
            raise CodeExpired()
        return ActionGrant(
            subject_id=subject_id,
            current_payload=record.get("current", ""),
            target_payload=record.get("target", ""),
        )
