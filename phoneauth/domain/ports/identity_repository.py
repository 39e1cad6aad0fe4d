from __future__ import annotations

from typing import Optional, Protocol

from phoneauth.domain.entities import Identity, NewIdentity


class IdentityRepositoryPort(Protocol):
    async def find_by_phone(self, phone: str) -> Optional[Identity]:
        """Return the identity owning `phone`, or None."""

    async def find_by_id(self, identity_id: str) -> Optional[Identity]:
        """Return the identity, or None."""

    async def create(self, new: NewIdentity) -> str:
        """
        Insert a new identity and return its id.
        Raises PhoneAlreadyRegistered if the phone is taken.
        """

    async def update_phone(self, identity_id: str, new_phone: str) -> None:
        """Raises PhoneAlreadyRegistered if the phone is taken."""

    async def update_password_hash(self, identity_id: str, password_hash: str) -> None:
        """Replace the stored password hash."""
