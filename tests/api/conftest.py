import pytest
from fastapi.testclient import TestClient

from phoneauth.domain.entities import IdentityKind
from phoneauth.main import create_app
from phoneauth.presentation.dependencies import (
    get_delivery_gateway,
    get_dispatcher_repository,
    get_driver_repository,
    get_hash_password,
    get_verify_password,
    get_volatile_store,
)
from phoneauth.settings import Settings, get_settings
from tests.fakes import FakeGateway, FakeIdentityRepo, FakeVolatileStore


@pytest.fixture()
def deps():
    return {
        "store": FakeVolatileStore(),
        "gateway": FakeGateway(),
        "drivers": FakeIdentityRepo(kind=IdentityKind.DRIVER),
        "dispatchers": FakeIdentityRepo(kind=IdentityKind.DISPATCHER),
        "settings": Settings(jwt_signing_key="api-test-key"),
    }


@pytest.fixture()
def app(deps):
    app = create_app()
    app.dependency_overrides[get_volatile_store] = lambda: deps["store"]
    app.dependency_overrides[get_delivery_gateway] = lambda: deps["gateway"]
    app.dependency_overrides[get_driver_repository] = lambda: deps["drivers"]
    app.dependency_overrides[get_dispatcher_repository] = lambda: deps["dispatchers"]
    app.dependency_overrides[get_settings] = lambda: deps["settings"]
    app.dependency_overrides[get_hash_password] = lambda: (lambda p: "hashed-" + p)
    app.dependency_overrides[get_verify_password] = lambda: (
        lambda plain, hashed: hashed == "hashed-" + plain
    )
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    return TestClient(app, raise_server_exceptions=False)
