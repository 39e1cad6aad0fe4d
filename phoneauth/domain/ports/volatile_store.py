from typing import Mapping, Optional, Protocol


class VolatileStorePort(Protocol):
    """
    TTL-bearing key-value store shared by every worker.

    All cross-request coordination goes through these primitives; each one
    must be atomic on its own.
    """

    async def exists(self, key: str) -> bool:
        """True if the key is present (and not expired)."""

    async def incr_with_expiry(self, key: str, window_seconds: int) -> int:
        """
        Increment a counter and return the new value. The first increment of
        a window also sets its expiry.
        """

    async def put_hash(
        self, key: str, mapping: Mapping[str, str], ttl_seconds: int
    ) -> None:
        """Replace the hash at `key` with `mapping`, expiring after ttl_seconds."""

    async def get_hash(self, key: str) -> dict[str, str]:
        """All fields of the hash, or {} when missing."""

    async def increment_field(self, key: str, field: str) -> Optional[int]:
        """
        Increment an integer hash field and return it. Returns None if the key
        no longer exists (it is never recreated without a TTL).
        """

    async def get(self, key: str) -> Optional[str]:
        """String value, or None if missing."""

    async def put_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set a string value with TTL only if the key is absent; True if set."""

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Set a string value with TTL."""

    async def take(self, key: str) -> Optional[str]:
        """Atomically read and delete. None if missing."""

    async def delete(self, key: str) -> bool:
        """Delete the key; True if it existed."""
