from __future__ import annotations

import logging
from typing import Callable

import phoneauth.domain.services as domain_services
from phoneauth.application.one_time_sessions import (
    ActionSessionService,
    OneTimeSessionService,
)
from phoneauth.application.tokens import TokenService
from phoneauth.application.verification_codes import VerificationCodeService
from phoneauth.domain.entities import (
    ActionTicket,
    Identity,
    IdentityKind,
    NewIdentity,
    RegistrationOutcome,
    RegistrationProfile,
    TokenPair,
    VerifyOutcome,
)
from phoneauth.domain.errors import (
    CodeExpired,
    IdentityNotFound,
    InvalidCredentials,
    InvalidInput,
    PhoneAlreadyRegistered,
)
from phoneauth.domain.ports.delivery_gateway import DeliveryGatewayPort
from phoneauth.domain.ports.identity_repository import IdentityRepositoryPort

logger = logging.getLogger(__name__)


class AuthOrchestrator:
    """
    Phone/OTP flows for one identity kind.

    Codes are delivered before anything is persisted: a failed delivery
    leaves no state behind. Business outcomes are raised as DomainError
    subclasses; nothing here retries.
    """

    def __init__(
        self,
        *,
        kind: IdentityKind,
        identities: IdentityRepositoryPort,
        gateway: DeliveryGatewayPort,
        codes: VerificationCodeService,
        registrations: OneTimeSessionService,
        phone_changes: ActionSessionService,
        tokens: TokenService,
        hash_password: Callable[[str], str],
        verify_password: Callable[[str, str], bool],
        password_resets: ActionSessionService | None = None,
        code_length: int = 6,
        subject_namespace: str = "",
    ) -> None:
        self.kind = kind
        self._identities = identities
        self._gateway = gateway
        self._codes = codes
        self._registrations = registrations
        self._phone_changes = phone_changes
        self._password_resets = password_resets
        self._tokens = tokens
        self._hash_password = hash_password
        self._verify_password = verify_password
        self._code_length = code_length
        self._namespace = subject_namespace

    def _subject_key(self, phone: str) -> str:
        return f"{self._namespace}{phone}"

    async def _deliver(self, phone: str, ttl_seconds: int) -> tuple[str, str]:
        code = domain_services.generate_numeric_code(self._code_length)
        correlation_id = await self._gateway.send(phone, code, ttl_seconds)
        return code, correlation_id

    # login / registration

    async def send_code(self, phone: str, client_ip: str | None = None) -> int:
        phone = domain_services.normalize_phone(phone)
        subject_key = self._subject_key(phone)

        await self._codes.check_send_allowed(subject_key, client_ip)
        # one delivery per cooldown window, even for concurrent requests
        await self._codes.claim_cooldown(subject_key)
        try:
            code, correlation_id = await self._deliver(
                phone, self._codes.code_ttl_seconds
            )
        except Exception:
            await self._codes.release_cooldown(subject_key)
            raise
        await self._codes.send_code(
            subject_key, code, correlation_id, client_ip, cooldown_claimed=True
        )
        return self._codes.code_ttl_seconds

    async def verify_code(self, phone: str, otp: str) -> VerifyOutcome:
        phone = domain_services.normalize_phone(phone)
        otp = domain_services.validate_otp(otp)

        await self._codes.verify_code(self._subject_key(phone), otp)

        identity = await self._identities.find_by_phone(phone)
        if identity is not None:
            tokens = await self._tokens.issue(identity.id, self.kind)
            logger.info(
                "otp login",
                extra={"role": self.kind.value, "identity_id": identity.id},
            )
            return VerifyOutcome(event="login", tokens=tokens)

        session_id = await self._registrations.create(phone)
        return VerifyOutcome(event="register", session_id=session_id)

    def _clean_profile(self, profile: RegistrationProfile) -> RegistrationProfile:
        def clean(value: str | None) -> str | None:
            if value is None:
                return None
            value = value.strip()
            return value or None

        name = clean(profile.name) or ""
        if len(name) < 2:
            raise InvalidInput("name is too short")

        cleaned = RegistrationProfile(
            name=name,
            password=profile.password,
            passport_series=clean(profile.passport_series),
            passport_number=clean(profile.passport_number),
            pinfl=clean(profile.pinfl),
            photo=clean(profile.photo),
        )
        if self.kind is IdentityKind.DISPATCHER:
            domain_services.validate_password(cleaned.password or "")
            if not (cleaned.passport_series and cleaned.passport_number and cleaned.pinfl):
                raise InvalidInput(
                    "passport_series, passport_number, pinfl are required"
                )
        return cleaned

    async def _login_existing(self, identity: Identity) -> RegistrationOutcome:
        tokens = await self._tokens.issue(identity.id, self.kind)
        return RegistrationOutcome(event="login", tokens=tokens, identity=identity)

    async def complete_registration(
        self, session_id: str, profile: RegistrationProfile
    ) -> RegistrationOutcome:
        # profile errors must leave the session redeemable
        profile = self._clean_profile(profile)

        phone = await self._registrations.consume(session_id)

        # a concurrent completion may have created it already
        existing = await self._identities.find_by_phone(phone)
        if existing is not None:
            return await self._login_existing(existing)

        new = NewIdentity(
            phone=phone,
            name=profile.name,
            password_hash=(
                self._hash_password(profile.password) if profile.password else None
            ),
            passport_series=profile.passport_series,
            passport_number=profile.passport_number,
            pinfl=profile.pinfl,
            photo=profile.photo,
        )
        try:
            identity_id = await self._identities.create(new)
        except PhoneAlreadyRegistered:
            existing = await self._identities.find_by_phone(phone)
            if existing is None:
                raise
            return await self._login_existing(existing)

        identity = await self._identities.find_by_id(identity_id)
        if identity is None:
            raise RuntimeError(f"{self.kind.value} {identity_id} missing after create")

        tokens = await self._tokens.issue(identity.id, self.kind)
        logger.info(
            "identity registered",
            extra={"role": self.kind.value, "identity_id": identity.id},
        )
        return RegistrationOutcome(event="registered", tokens=tokens, identity=identity)

    async def login_with_password(self, phone: str, password: str) -> TokenPair:
        phone = domain_services.normalize_phone(phone)
        identity = await self._identities.find_by_phone(phone)
        if (
            identity is None
            or not identity.password_hash
            or not self._verify_password(password, identity.password_hash)
        ):
            raise InvalidCredentials("invalid phone or password")
        return await self._tokens.issue(identity.id, self.kind)

    # tokens

    async def refresh(self, refresh_token: str) -> TokenPair:
        return await self._tokens.rotate(refresh_token, role=self.kind)

    async def logout(self, refresh_token: str) -> None:
        await self._tokens.revoke_refresh_token(refresh_token, role=self.kind)

    # phone change (authenticated)

    async def request_phone_change(
        self, identity_id: str, new_phone: str
    ) -> ActionTicket:
        new_phone = domain_services.normalize_phone(new_phone)

        identity = await self._identities.find_by_id(identity_id)
        if identity is None:
            raise InvalidCredentials(f"{self.kind.value} not found")
        if identity.phone == new_phone or (
            await self._identities.find_by_phone(new_phone) is not None
        ):
            raise PhoneAlreadyRegistered()

        code, _ = await self._deliver(new_phone, self._phone_changes.ttl_seconds)
        session_id = await self._phone_changes.create(
            identity.id, identity.phone, new_phone, code
        )
        return ActionTicket(
            session_id=session_id, ttl_seconds=self._phone_changes.ttl_seconds
        )

    async def verify_phone_change(
        self, identity_id: str, session_id: str, otp: str
    ) -> Identity:
        otp = domain_services.validate_otp(otp)

        grant = await self._phone_changes.verify(
            session_id, otp, subject_id=identity_id
        )
        if not grant.target_payload:
            raise CodeExpired()

        await self._identities.update_phone(grant.subject_id, grant.target_payload)
        identity = await self._identities.find_by_id(grant.subject_id)
        if identity is None:
            raise IdentityNotFound()
        logger.info(
            "phone changed",
            extra={"role": self.kind.value, "identity_id": identity.id},
        )
        return identity

    # passwords

    def _require_password_resets(self) -> ActionSessionService:
        if self._password_resets is None:
            raise RuntimeError(f"password reset is not enabled for {self.kind.value}")
        return self._password_resets

    async def request_password_reset(self, phone: str) -> ActionTicket:
        resets = self._require_password_resets()
        phone = domain_services.normalize_phone(phone)

        identity = await self._identities.find_by_phone(phone)
        if identity is None:
            raise IdentityNotFound(f"{self.kind.value} not found")

        code, _ = await self._deliver(phone, resets.ttl_seconds)
        session_id = await resets.create(identity.id, phone, "", code)
        return ActionTicket(session_id=session_id, ttl_seconds=resets.ttl_seconds)

    async def confirm_password_reset(
        self, session_id: str, otp: str, new_password: str
    ) -> None:
        resets = self._require_password_resets()
        domain_services.validate_password(new_password)
        otp = domain_services.validate_otp(otp)

        grant = await resets.verify(session_id, otp)
        await self._identities.update_password_hash(
            grant.subject_id, self._hash_password(new_password)
        )
        logger.info(
            "password reset",
            extra={"role": self.kind.value, "identity_id": grant.subject_id},
        )

    async def change_password(
        self, identity_id: str, current_password: str, new_password: str
    ) -> None:
        domain_services.validate_password(new_password)

        identity = await self._identities.find_by_id(identity_id)
        if (
            identity is None
            or not identity.password_hash
            or not self._verify_password(current_password, identity.password_hash)
        ):
            raise InvalidCredentials("invalid current_password")
        await self._identities.update_password_hash(
            identity.id, self._hash_password(new_password)
        )
