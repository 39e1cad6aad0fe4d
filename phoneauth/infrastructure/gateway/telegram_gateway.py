from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from phoneauth.domain.errors import GatewayUnavailable
from phoneauth.domain.ports.delivery_gateway import DeliveryGatewayPort
from phoneauth.domain.services import mask_phone

logger = logging.getLogger(__name__)


class TelegramGatewayAdapter(DeliveryGatewayPort):
    """
    Delivers codes through the Telegram Gateway API
    (`POST {base}/sendVerificationMessage`).

    Every failure mode surfaces as GatewayUnavailable; nothing is retried.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        sender: str = "",
        payload: str = "phoneauth-otp",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 8.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._sender = sender
        self._payload = payload
        self._timeout = timeout
        self._owns_client: bool = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, phone: str, code: str, ttl_seconds: int) -> str:
        if not self._token:
            logger.error("telegram gateway token is not configured")
            raise GatewayUnavailable("gateway token is not configured")

        body: Dict[str, Any] = {
            "phone_number": phone,
            "code": code,
            "ttl": ttl_seconds,
            "payload": self._payload,
        }
        if self._sender:
            body["sender_username"] = self._sender
        headers = {"Authorization": f"Bearer {self._token}"}
        url = f"{self._base_url}/sendVerificationMessage"

        try:
            resp = await self._client.post(
                url, json=body, headers=headers, timeout=self._timeout
            )
        except httpx.HTTPError as e:
            logger.warning(
                "telegram gateway transport error",
                extra={"phone": mask_phone(phone), "error": type(e).__name__},
            )
            raise GatewayUnavailable("gateway unreachable") from e

        if resp.status_code != 200:
            logger.warning(
                "telegram gateway rejected request",
                extra={
                    "phone": mask_phone(phone),
                    "status_code": resp.status_code,
                    "body": resp.text[:200],
                },
            )
            raise GatewayUnavailable(f"gateway responded {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise GatewayUnavailable("gateway returned an undecodable body") from e

        if not isinstance(data, dict) or not data.get("ok"):
            error = data.get("error") if isinstance(data, dict) else None
            logger.warning(
                "telegram gateway error",
                extra={"phone": mask_phone(phone), "error": error},
            )
            raise GatewayUnavailable(f"gateway error: {error}")

        result = data.get("result") or {}
        request_id = result.get("request_id") if isinstance(result, dict) else None
        if not request_id:
            raise GatewayUnavailable("gateway returned an empty request_id")

        logger.info(
            "otp delivered",
            extra={"phone": mask_phone(phone), "request_id": request_id},
        )
        return str(request_id)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
