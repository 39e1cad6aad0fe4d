from __future__ import annotations

from typing import Protocol


class DeliveryGatewayPort(Protocol):
    async def send(self, phone: str, code: str, ttl_seconds: int) -> str:
        """
        Deliver `code` to `phone` and return the gateway's correlation id.
        Raises GatewayUnavailable on any failure.
        """
