from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from phoneauth.application.auth_flows import AuthOrchestrator
from phoneauth.domain.entities import AccessClaims, RegistrationProfile
from phoneauth.presentation.auth import require_driver
from phoneauth.presentation.dependencies import get_client_ip, get_driver_auth
from phoneauth.presentation.envelope import success
from phoneauth.schemas.requests import (
    DriverRegistrationIn,
    OtpVerifyIn,
    PhoneChangeRequestIn,
    PhoneChangeVerifyIn,
    PhoneIn,
    RefreshIn,
)
from phoneauth.schemas.responses import (
    CodeSentOut,
    DriverData,
    DriverRegistrationOut,
    EmptyOut,
    Envelope,
    SessionTicketOut,
    TokensData,
    VerifyOut,
)

router = APIRouter(tags=["Drivers"])

DriverAuth = Annotated[AuthOrchestrator, Depends(get_driver_auth)]
CurrentDriver = Annotated[AccessClaims, Depends(require_driver)]


@router.post("/auth/phone", response_model=Envelope[CodeSentOut])
async def post_send_code(
    body: PhoneIn,
    auth: DriverAuth,
    client_ip: Annotated[Optional[str], Depends(get_client_ip)],
):
    ttl = await auth.send_code(body.phone, client_ip)
    return success({"ttl_seconds": ttl}, description="otp sent")


@router.post("/auth/otp/verify", response_model=Envelope[VerifyOut])
async def post_verify_code(body: OtpVerifyIn, auth: DriverAuth):
    outcome = await auth.verify_code(body.phone, body.otp)
    if outcome.event == "login":
        return success({"event": "login", "tokens": outcome.tokens.as_dict()})
    return success(
        {"event": "register", "session_id": outcome.session_id},
        description="registration required",
    )


@router.post("/registration/complete", response_model=Envelope[DriverRegistrationOut])
async def post_complete_registration(body: DriverRegistrationIn, auth: DriverAuth):
    outcome = await auth.complete_registration(
        body.session_id, RegistrationProfile(name=body.name)
    )
    return success(
        {
            "event": outcome.event,
            "tokens": outcome.tokens.as_dict(),
            "driver": outcome.identity.public_view(),
        },
        description=outcome.event,
    )


@router.post("/auth/refresh", response_model=Envelope[TokensData])
async def post_refresh(body: RefreshIn, auth: DriverAuth):
    tokens = await auth.refresh(body.refresh_token)
    return success({"tokens": tokens.as_dict()})


@router.post("/auth/logout", response_model=Envelope[EmptyOut])
async def post_logout(body: RefreshIn, auth: DriverAuth):
    await auth.logout(body.refresh_token)
    return success({}, description="logged out")


@router.post(
    "/profile/phone-change/request", response_model=Envelope[SessionTicketOut]
)
async def post_phone_change_request(
    body: PhoneChangeRequestIn, auth: DriverAuth, current: CurrentDriver
):
    ticket = await auth.request_phone_change(current.subject_id, body.new_phone)
    return success(
        {"session_id": ticket.session_id, "ttl_seconds": ticket.ttl_seconds},
        description="otp sent",
    )


@router.post("/profile/phone-change/verify", response_model=Envelope[DriverData])
async def post_phone_change_verify(
    body: PhoneChangeVerifyIn, auth: DriverAuth, current: CurrentDriver
):
    driver = await auth.verify_phone_change(
        current.subject_id, body.session_id, body.otp
    )
    return success({"driver": driver.public_view()}, description="phone changed")
