from __future__ import annotations

import logging

from phoneauth.application.hashed_records import (
    ATTEMPTS_FIELD,
    HASH_FIELD,
    redeem_hashed_record,
)
from phoneauth.domain.entities import VerifiedCode
from phoneauth.domain.errors import CooldownActive, RateLimited
from phoneauth.domain.ports.volatile_store import VolatileStorePort
from phoneauth.domain.services import keyed_digest, mask_phone

logger = logging.getLogger(__name__)


class VerificationCodeService:
    """
    Hashed, attempt-limited one-time codes keyed by subject (a normalized
    phone, optionally namespaced per identity kind).

    Records live only in the volatile store:
      otp:{subject}                 hash, attempts, request_id   (code TTL)
      otp:cooldown:{subject}        resend marker                (cooldown TTL)
      otp:send_count:{subject}      sends in the current window
      otp:send_count_ip:{ip}        sends in the current window
    """

    def __init__(
        self,
        store: VolatileStorePort,
        *,
        secret: str,
        code_ttl_seconds: int = 180,
        cooldown_seconds: int = 60,
        max_attempts: int = 5,
        per_subject_limit: int = 10,
        per_ip_limit: int = 30,
        window_seconds: int = 3600,
    ) -> None:
        self._store = store
        self._secret = secret
        self.code_ttl_seconds = code_ttl_seconds
        self._cooldown_seconds = cooldown_seconds
        self._max_attempts = max_attempts
        self._per_subject_limit = per_subject_limit
        self._per_ip_limit = per_ip_limit
        self._window_seconds = window_seconds

    @staticmethod
    def _code_key(subject_key: str) -> str:
        return f"otp:{subject_key}"

    @staticmethod
    def _cooldown_key(subject_key: str) -> str:
        return f"otp:cooldown:{subject_key}"

    @staticmethod
    def _subject_counter_key(subject_key: str) -> str:
        return f"otp:send_count:{subject_key}"

    @staticmethod
    def _ip_counter_key(client_ip: str) -> str:
        return f"otp:send_count_ip:{client_ip}"

    async def check_send_allowed(
        self, subject_key: str, client_ip: str | None = None
    ) -> None:
        """
        Read-only pre-flight run before delivery, so a send that would be
        rejected never reaches the gateway. The cooldown is then claimed
        atomically by `claim_cooldown` and the counters by `send_code`.
        """
        if await self._store.exists(self._cooldown_key(subject_key)):
            raise CooldownActive()
        if await self._count(self._subject_counter_key(subject_key)) >= (
            self._per_subject_limit
        ):
            raise RateLimited()
        if client_ip and await self._count(self._ip_counter_key(client_ip)) >= (
            self._per_ip_limit
        ):
            raise RateLimited()

    async def _count(self, key: str) -> int:
        raw = await self._store.get(key)
        return int(raw) if raw else 0

    async def claim_cooldown(self, subject_key: str) -> None:
        """Atomically start the resend cooldown; CooldownActive if already held."""
        if not await self._store.put_if_absent(
            self._cooldown_key(subject_key), "1", self._cooldown_seconds
        ):
            raise CooldownActive()

    async def release_cooldown(self, subject_key: str) -> None:
        await self._store.delete(self._cooldown_key(subject_key))

    async def send_code(
        self,
        subject_key: str,
        code: str,
        correlation_id: str,
        client_ip: str | None = None,
        *,
        cooldown_claimed: bool = False,
    ) -> None:
        """
        Persist a code that has already been delivered out-of-band.

        Replaces any pending code for the subject (a resend always wins) and
        holds the resend cooldown. Callers that claimed the cooldown before
        delivering pass `cooldown_claimed=True`.
        """
        if not cooldown_claimed:
            await self.claim_cooldown(subject_key)

        try:
            await self._count_send(subject_key, client_ip)
        except RateLimited:
            await self.release_cooldown(subject_key)
            raise

        await self._store.put_hash(
            self._code_key(subject_key),
            {
                HASH_FIELD: keyed_digest(subject_key, code, self._secret),
                ATTEMPTS_FIELD: "0",
                "request_id": correlation_id,
            },
            self.code_ttl_seconds,
        )
        logger.info("otp stored", extra={"subject": mask_phone(subject_key)})

    async def _count_send(self, subject_key: str, client_ip: str | None) -> None:
        sent = await self._store.incr_with_expiry(
            self._subject_counter_key(subject_key), self._window_seconds
        )
        if sent > self._per_subject_limit:
            logger.warning(
                "otp send rate limited",
                extra={"subject": mask_phone(subject_key), "scope": "subject"},
            )
            raise RateLimited()
        if client_ip:
            sent_from_ip = await self._store.incr_with_expiry(
                self._ip_counter_key(client_ip), self._window_seconds
            )
            if sent_from_ip > self._per_ip_limit:
                logger.warning(
                    "otp send rate limited",
                    extra={"subject": mask_phone(subject_key), "scope": "ip"},
                )
                raise RateLimited()

    async def verify_code(self, subject_key: str, candidate: str) -> VerifiedCode:
        record = await redeem_hashed_record(
            self._store,
            self._code_key(subject_key),
            keyed_digest(subject_key, candidate, self._secret),
            self._max_attempts,
        )
        return VerifiedCode(correlation_id=record.get("request_id", ""))
