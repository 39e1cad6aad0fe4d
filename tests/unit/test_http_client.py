import pytest

from phoneauth.infrastructure.http import client as http_client_mod


@pytest.fixture(autouse=True)
async def reset_http_client():
    """
    Each test starts with a clean module-level client and leaves it clean.
    """
    await http_client_mod.close_http_client()
    yield
    await http_client_mod.close_http_client()


@pytest.mark.asyncio
async def test_get_before_open_raises():
    with pytest.raises(RuntimeError):
        http_client_mod.get_http_client()


@pytest.mark.asyncio
async def test_open_returns_singleton_with_requested_timeout():
    c1 = await http_client_mod.open_http_client(timeout=8.0)
    c2 = await http_client_mod.open_http_client(timeout=1.0)

    assert c1 is c2
    assert http_client_mod.get_http_client() is c1
    assert float(c1.timeout.read) == pytest.approx(8.0)
    assert float(c1.timeout.connect) == pytest.approx(8.0)
    assert c1.headers["Accept"] == "application/json"


@pytest.mark.asyncio
async def test_close_is_idempotent_and_reopen_creates_new_instance():
    c1 = await http_client_mod.open_http_client()
    await http_client_mod.close_http_client()
    await http_client_mod.close_http_client()
    assert c1.is_closed

    c2 = await http_client_mod.open_http_client()
    assert c2 is not c1
    assert not c2.is_closed
