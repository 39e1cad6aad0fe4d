from typing import Annotated, Callable, Optional

from fastapi import Depends, Request

from phoneauth.application.auth_flows import AuthOrchestrator
from phoneauth.application.one_time_sessions import (
    ActionSessionService,
    OneTimeSessionService,
)
from phoneauth.application.tokens import TokenService
from phoneauth.application.verification_codes import VerificationCodeService
from phoneauth.domain.entities import IdentityKind
from phoneauth.domain.ports.delivery_gateway import DeliveryGatewayPort
from phoneauth.domain.ports.identity_repository import IdentityRepositoryPort
from phoneauth.domain.ports.volatile_store import VolatileStorePort
from phoneauth.infrastructure.db.identity_repo import (
    PgDispatcherRepository,
    PgDriverRepository,
)
from phoneauth.infrastructure.db.pool import get_pool
from phoneauth.infrastructure.redis_cache.pool import get_redis
from phoneauth.infrastructure.redis_cache.store import RedisVolatileStore
from phoneauth.infrastructure.security.password import hash_password, verify_password
from phoneauth.settings import Settings, get_settings

DISPATCHER_NAMESPACE = "disp:"


def get_volatile_store() -> VolatileStorePort:
    return RedisVolatileStore(get_redis())


def get_delivery_gateway(request: Request) -> DeliveryGatewayPort:
    # This is set in phoneauth.main lifespan()
    return request.app.state.delivery_gateway


def get_driver_repository() -> IdentityRepositoryPort:
    return PgDriverRepository(get_pool())


def get_dispatcher_repository() -> IdentityRepositoryPort:
    return PgDispatcherRepository(get_pool())


def get_hash_password() -> Callable[[str], str]:
    return hash_password


def get_verify_password() -> Callable[[str, str], bool]:
    return verify_password


def get_client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


StoreDep = Annotated[VolatileStorePort, Depends(get_volatile_store)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_token_service(store: StoreDep, settings: SettingsDep) -> TokenService:
    return TokenService(
        store,
        signing_key=settings.jwt_signing_key,
        access_ttl_seconds=settings.jwt_access_ttl_seconds,
        refresh_ttl_seconds=settings.jwt_refresh_ttl_seconds,
    )


def _codes(store: VolatileStorePort, settings: Settings) -> VerificationCodeService:
    return VerificationCodeService(
        store,
        secret=settings.jwt_signing_key,
        code_ttl_seconds=settings.otp_ttl_seconds,
        cooldown_seconds=settings.otp_resend_cooldown_seconds,
        max_attempts=settings.otp_max_attempts,
        per_subject_limit=settings.otp_send_limit_per_phone,
        per_ip_limit=settings.otp_send_limit_per_ip,
        window_seconds=settings.otp_send_window_seconds,
    )


def _action_sessions(
    store: VolatileStorePort, settings: Settings, key_prefix: str
) -> ActionSessionService:
    return ActionSessionService(
        store,
        secret=settings.jwt_signing_key,
        key_prefix=key_prefix,
        ttl_seconds=settings.otp_ttl_seconds,
        max_attempts=settings.otp_max_attempts,
    )


def get_driver_auth(
    store: StoreDep,
    settings: SettingsDep,
    identities: Annotated[IdentityRepositoryPort, Depends(get_driver_repository)],
    gateway: Annotated[DeliveryGatewayPort, Depends(get_delivery_gateway)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    password_hasher: Annotated[Callable[[str], str], Depends(get_hash_password)],
    password_verifier: Annotated[
        Callable[[str, str], bool], Depends(get_verify_password)
    ],
) -> AuthOrchestrator:
    return AuthOrchestrator(
        kind=IdentityKind.DRIVER,
        identities=identities,
        gateway=gateway,
        codes=_codes(store, settings),
        registrations=OneTimeSessionService(
            store,
            key_prefix="regsession",
            ttl_seconds=settings.registration_session_ttl_seconds,
        ),
        phone_changes=_action_sessions(store, settings, "phonechange"),
        tokens=tokens,
        hash_password=password_hasher,
        verify_password=password_verifier,
        code_length=settings.otp_length,
    )


def get_dispatcher_auth(
    store: StoreDep,
    settings: SettingsDep,
    identities: Annotated[IdentityRepositoryPort, Depends(get_dispatcher_repository)],
    gateway: Annotated[DeliveryGatewayPort, Depends(get_delivery_gateway)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    password_hasher: Annotated[Callable[[str], str], Depends(get_hash_password)],
    password_verifier: Annotated[
        Callable[[str, str], bool], Depends(get_verify_password)
    ],
) -> AuthOrchestrator:
    return AuthOrchestrator(
        kind=IdentityKind.DISPATCHER,
        identities=identities,
        gateway=gateway,
        codes=_codes(store, settings),
        registrations=OneTimeSessionService(
            store,
            key_prefix="disp_regsession",
            ttl_seconds=settings.registration_session_ttl_seconds,
        ),
        phone_changes=_action_sessions(store, settings, "disp_phone"),
        password_resets=_action_sessions(store, settings, "disp_reset"),
        tokens=tokens,
        hash_password=password_hasher,
        verify_password=password_verifier,
        code_length=settings.otp_length,
        subject_namespace=DISPATCHER_NAMESPACE,
    )
