from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal


class IdentityKind(str, Enum):
    DRIVER = "driver"
    DISPATCHER = "dispatcher"


@dataclass
class Identity:
    id: str
    kind: IdentityKind
    phone: str
    name: str | None = None
    password_hash: str | None = field(default=None, repr=False)
    passport_series: str | None = None
    passport_number: str | None = None
    pinfl: str | None = None
    photo: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def public_view(self) -> dict:
        """Serializable fields, without the password hash."""
        view = {
            "id": self.id,
            "role": self.kind.value,
            "phone": self.phone,
            "name": self.name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if self.kind is IdentityKind.DISPATCHER:
            view.update(
                passport_series=self.passport_series,
                passport_number=self.passport_number,
                pinfl=self.pinfl,
                photo=self.photo,
            )
        return view


@dataclass
class NewIdentity:
    phone: str
    name: str
    password_hash: str | None = None
    passport_series: str | None = None
    passport_number: str | None = None
    pinfl: str | None = None
    photo: str | None = None


@dataclass
class RegistrationProfile:
    name: str
    password: str | None = None
    passport_series: str | None = None
    passport_number: str | None = None
    pinfl: str | None = None
    photo: str | None = None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int

    def as_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_in": self.expires_in,
        }


@dataclass(frozen=True)
class AccessClaims:
    subject_id: str
    role: IdentityKind


@dataclass(frozen=True)
class RefreshClaims:
    subject_id: str
    role: IdentityKind
    token_id: str


@dataclass(frozen=True)
class VerifiedCode:
    correlation_id: str


@dataclass(frozen=True)
class ActionGrant:
    subject_id: str
    current_payload: str
    target_payload: str


@dataclass(frozen=True)
class ActionTicket:
    session_id: str
    ttl_seconds: int


@dataclass(frozen=True)
class VerifyOutcome:
    event: Literal["login", "register"]
    tokens: TokenPair | None = None
    session_id: str | None = None


@dataclass(frozen=True)
class RegistrationOutcome:
    event: Literal["registered", "login"]
    tokens: TokenPair
    identity: Identity
