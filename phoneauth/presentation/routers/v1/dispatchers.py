from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from phoneauth.application.auth_flows import AuthOrchestrator
from phoneauth.domain.entities import AccessClaims, RegistrationProfile
from phoneauth.presentation.auth import require_dispatcher
from phoneauth.presentation.dependencies import get_client_ip, get_dispatcher_auth
from phoneauth.presentation.envelope import success
from phoneauth.schemas.requests import (
    DispatcherRegistrationIn,
    OtpVerifyIn,
    PasswordChangeIn,
    PasswordLoginIn,
    PasswordResetConfirmIn,
    PhoneChangeRequestIn,
    PhoneChangeVerifyIn,
    PhoneIn,
    RefreshIn,
)
from phoneauth.schemas.responses import (
    CodeSentOut,
    DispatcherData,
    DispatcherRegistrationOut,
    EmptyOut,
    Envelope,
    PasswordLoginOut,
    SessionTicketOut,
    TokensData,
    VerifyOut,
)

router = APIRouter(prefix="/dispatchers", tags=["Dispatchers"])

DispatcherAuth = Annotated[AuthOrchestrator, Depends(get_dispatcher_auth)]
CurrentDispatcher = Annotated[AccessClaims, Depends(require_dispatcher)]


@router.post("/auth/phone", response_model=Envelope[CodeSentOut])
async def post_send_code(
    body: PhoneIn,
    auth: DispatcherAuth,
    client_ip: Annotated[Optional[str], Depends(get_client_ip)],
):
    ttl = await auth.send_code(body.phone, client_ip)
    return success({"ttl_seconds": ttl}, description="otp sent")


@router.post("/auth/otp/verify", response_model=Envelope[VerifyOut])
async def post_verify_code(body: OtpVerifyIn, auth: DispatcherAuth):
    outcome = await auth.verify_code(body.phone, body.otp)
    if outcome.event == "login":
        return success({"event": "login", "tokens": outcome.tokens.as_dict()})
    return success(
        {"event": "register", "session_id": outcome.session_id},
        description="registration required",
    )


@router.post("/auth/login/password", response_model=Envelope[PasswordLoginOut])
async def post_password_login(body: PasswordLoginIn, auth: DispatcherAuth):
    tokens = await auth.login_with_password(body.phone, body.password)
    return success({"event": "login", "tokens": tokens.as_dict()})


@router.post(
    "/auth/reset-password/request", response_model=Envelope[SessionTicketOut]
)
async def post_password_reset_request(body: PhoneIn, auth: DispatcherAuth):
    ticket = await auth.request_password_reset(body.phone)
    return success(
        {"session_id": ticket.session_id, "ttl_seconds": ticket.ttl_seconds},
        description="otp sent",
    )


@router.post("/auth/reset-password/confirm", response_model=Envelope[EmptyOut])
async def post_password_reset_confirm(
    body: PasswordResetConfirmIn, auth: DispatcherAuth
):
    await auth.confirm_password_reset(body.session_id, body.otp, body.new_password)
    return success({}, description="password updated")


@router.post("/auth/refresh", response_model=Envelope[TokensData])
async def post_refresh(body: RefreshIn, auth: DispatcherAuth):
    tokens = await auth.refresh(body.refresh_token)
    return success({"tokens": tokens.as_dict()})


@router.post("/auth/logout", response_model=Envelope[EmptyOut])
async def post_logout(body: RefreshIn, auth: DispatcherAuth):
    await auth.logout(body.refresh_token)
    return success({}, description="logged out")


@router.post(
    "/registration/complete", response_model=Envelope[DispatcherRegistrationOut]
)
async def post_complete_registration(
    body: DispatcherRegistrationIn, auth: DispatcherAuth
):
    profile = RegistrationProfile(
        name=body.name,
        password=body.password,
        passport_series=body.passport_series,
        passport_number=body.passport_number,
        pinfl=body.pinfl,
        photo=body.photo,
    )
    outcome = await auth.complete_registration(body.session_id, profile)
    return success(
        {
            "event": outcome.event,
            "tokens": outcome.tokens.as_dict(),
            "dispatcher": outcome.identity.public_view(),
        },
        description=outcome.event,
    )


@router.post(
    "/profile/phone-change/request", response_model=Envelope[SessionTicketOut]
)
async def post_phone_change_request(
    body: PhoneChangeRequestIn, auth: DispatcherAuth, current: CurrentDispatcher
):
    ticket = await auth.request_phone_change(current.subject_id, body.new_phone)
    return success(
        {"session_id": ticket.session_id, "ttl_seconds": ticket.ttl_seconds},
        description="otp sent",
    )


@router.post(
    "/profile/phone-change/verify", response_model=Envelope[DispatcherData]
)
async def post_phone_change_verify(
    body: PhoneChangeVerifyIn, auth: DispatcherAuth, current: CurrentDispatcher
):
    dispatcher = await auth.verify_phone_change(
        current.subject_id, body.session_id, body.otp
    )
    return success(
        {"dispatcher": dispatcher.public_view()}, description="phone changed"
    )


@router.put("/profile/password", response_model=Envelope[EmptyOut])
async def put_password(
    body: PasswordChangeIn, auth: DispatcherAuth, current: CurrentDispatcher
):
    await auth.change_password(
        current.subject_id, body.current_password, body.new_password
    )
    return success({}, description="password updated")
