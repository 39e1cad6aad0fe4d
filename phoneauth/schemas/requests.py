from typing import Optional

from pydantic import BaseModel, Field, field_validator


class PhoneIn(BaseModel):
    phone: str = Field(..., description="Phone number, E.164 or with separators", max_length=32)


class OtpVerifyIn(BaseModel):
    phone: str = Field(..., max_length=32)
    otp: str = Field(..., description="4-8 digit code", max_length=16)


class RefreshIn(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class DriverRegistrationIn(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., max_length=255)
    oferta_accepted: bool = Field(..., description="The public offer must be accepted")

    @field_validator("oferta_accepted")
    @classmethod
    def _oferta_must_be_accepted(cls, v: bool) -> bool:
        if not v:
            raise ValueError("oferta must be accepted")
        return v


class DispatcherRegistrationIn(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., max_length=255)
    password: str = Field(..., max_length=128)
    passport_series: str = Field(..., max_length=16)
    passport_number: str = Field(..., max_length=32)
    pinfl: str = Field(..., max_length=32)
    photo: Optional[str] = Field(None, max_length=1024)


class PhoneChangeRequestIn(BaseModel):
    new_phone: str = Field(..., max_length=32)


class PhoneChangeVerifyIn(BaseModel):
    session_id: str = Field(..., max_length=64)
    otp: str = Field(..., max_length=16)


class PasswordLoginIn(BaseModel):
    phone: str = Field(..., max_length=32)
    password: str = Field(..., max_length=128)


class PasswordResetConfirmIn(BaseModel):
    session_id: str = Field(..., max_length=64)
    otp: str = Field(..., max_length=16)
    new_password: str = Field(..., max_length=128)


class PasswordChangeIn(BaseModel):
    current_password: str = Field(..., max_length=128)
    new_password: str = Field(..., max_length=128)
