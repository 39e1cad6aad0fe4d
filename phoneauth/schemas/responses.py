from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    status: Literal["success", "error"] = "success"
    code: int = Field(..., description="Mirrors the HTTP status code")
    description: str
    data: Optional[DataT] = None


class TokensOut(BaseModel):
    access_token: str
    refresh_token: str
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class TokensData(BaseModel):
    tokens: TokensOut


class CodeSentOut(BaseModel):
    ttl_seconds: int


class SessionTicketOut(BaseModel):
    session_id: str
    ttl_seconds: int


class VerifyOut(BaseModel):
    event: Literal["login", "register"]
    tokens: Optional[TokensOut] = None
    session_id: Optional[str] = None


class PasswordLoginOut(BaseModel):
    event: Literal["login"] = "login"
    tokens: TokensOut


class DriverOut(BaseModel):
    id: str
    role: Literal["driver"]
    phone: str
    name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DispatcherOut(DriverOut):
    role: Literal["dispatcher"]
    passport_series: Optional[str] = None
    passport_number: Optional[str] = None
    pinfl: Optional[str] = None
    photo: Optional[str] = None


class DriverRegistrationOut(BaseModel):
    event: Literal["registered", "login"]
    tokens: TokensOut
    driver: DriverOut


class DispatcherRegistrationOut(BaseModel):
    event: Literal["registered", "login"]
    tokens: TokensOut
    dispatcher: DispatcherOut


class DriverData(BaseModel):
    driver: DriverOut


class DispatcherData(BaseModel):
    dispatcher: DispatcherOut


class EmptyOut(BaseModel):
    pass


class HealthOut(BaseModel):
    status: Literal["ok"] = "ok"
