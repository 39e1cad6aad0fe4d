import pytest

from phoneauth.application.auth_flows import AuthOrchestrator
from phoneauth.application.one_time_sessions import (
    ActionSessionService,
    OneTimeSessionService,
)
from phoneauth.application.tokens import TokenService
from phoneauth.application.verification_codes import VerificationCodeService
from phoneauth.domain.entities import IdentityKind
from tests.fakes import FakeGateway, FakeIdentityRepo, FakeVolatileStore

SECRET = "test-secret"


@pytest.fixture()
def store():
    return FakeVolatileStore()


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def driver_repo():
    return FakeIdentityRepo(kind=IdentityKind.DRIVER)


@pytest.fixture()
def dispatcher_repo():
    return FakeIdentityRepo(kind=IdentityKind.DISPATCHER)


@pytest.fixture()
def codes(store):
    return VerificationCodeService(store, secret=SECRET)


@pytest.fixture()
def tokens(store):
    return TokenService(store, signing_key=SECRET)


@pytest.fixture()
def hash_password_stub():
    return lambda p: "hashed-" + p


@pytest.fixture()
def verify_password_stub():
    return lambda plain, hashed: hashed == "hashed-" + plain


@pytest.fixture()
def driver_auth(
    store, gateway, driver_repo, codes, tokens, hash_password_stub, verify_password_stub
):
    return AuthOrchestrator(
        kind=IdentityKind.DRIVER,
        identities=driver_repo,
        gateway=gateway,
        codes=codes,
        registrations=OneTimeSessionService(store, key_prefix="regsession"),
        phone_changes=ActionSessionService(
            store, secret=SECRET, key_prefix="phonechange"
        ),
        tokens=tokens,
        hash_password=hash_password_stub,
        verify_password=verify_password_stub,
    )


@pytest.fixture()
def dispatcher_auth(
    store,
    gateway,
    dispatcher_repo,
    codes,
    tokens,
    hash_password_stub,
    verify_password_stub,
):
    return AuthOrchestrator(
        kind=IdentityKind.DISPATCHER,
        identities=dispatcher_repo,
        gateway=gateway,
        codes=codes,
        registrations=OneTimeSessionService(store, key_prefix="disp_regsession"),
        phone_changes=ActionSessionService(
            store, secret=SECRET, key_prefix="disp_phone"
        ),
        password_resets=ActionSessionService(
            store, secret=SECRET, key_prefix="disp_reset"
        ),
        tokens=tokens,
        hash_password=hash_password_stub,
        verify_password=verify_password_stub,
        subject_namespace="disp:",
    )


@pytest.fixture(autouse=True)
def patch_code(monkeypatch):
    """
    Make generated codes deterministic in all tests ("123456" for 6 digits).
    You can override in a specific test by re-monkeypatching.
    """
    from phoneauth.domain import services as domain_services

    monkeypatch.setattr(
        domain_services,
        "generate_numeric_code",
        lambda length=6: "1234567890"[:length],
    )
    yield


@pytest.fixture()
def registration_session(store):
    """Drive send + verify for an unknown phone and return the session id."""

    async def _open(auth, phone: str) -> str:
        await auth.send_code(phone)
        outcome = await auth.verify_code(phone, "123456")
        assert outcome.event == "register"
        store.advance(61)  # past the resend cooldown
        return outcome.session_id

    return _open
