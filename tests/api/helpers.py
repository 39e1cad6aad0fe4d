from fastapi.testclient import TestClient


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def login_driver(client: TestClient, phone: str) -> dict:
    """Send + verify for an already registered driver; returns the tokens."""
    assert client.post("/v1/auth/phone", json={"phone": phone}).status_code == 200
    r = client.post("/v1/auth/otp/verify", json={"phone": phone, "otp": "123456"})
    assert r.json()["data"]["event"] == "login", r.json()
    return r.json()["data"]["tokens"]
