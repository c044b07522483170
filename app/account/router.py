"""Account domain router.

Routes for the caller's own account: verification status, handle claims,
local password management and password reset.
"""

from fastapi import APIRouter

from app.account.models import Account
from app.account.schemas import (
    AccountMessage,
    AccountPublic,
    ChangePasswordRequest,
    ClaimHandleRequest,
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
    SetPasswordRequest,
    SubmitSolutionRequest,
)
from app.auth.dependencies import CurrentAccountDep
from app.core.constants import CommonResponses, Routes
from app.verification.dependencies import PasswordResetDep, StateMachineDep

router = APIRouter(
    prefix=Routes.USER.prefix,
    tags=[Routes.USER.tag],
    responses={
        **CommonResponses.BAD_REQUEST,
        **CommonResponses.SERVICE_UNAVAILABLE,
    },
)

_AUTHED = {**CommonResponses.UNAUTHORIZED, **CommonResponses.NOT_FOUND}
_TRANSITION = {**_AUTHED, **CommonResponses.CONFLICT}


def _reply(message: str, account: Account) -> AccountMessage:
    return AccountMessage(
        message=message, account=AccountPublic.model_validate(account)
    )


@router.get("/status", response_model=AccountPublic, responses=_AUTHED)
async def get_status(account: CurrentAccountDep):
    """Current verification status of the caller's account."""
    return account


@router.post("/claim-handle", response_model=AccountMessage, responses=_TRANSITION)
async def claim_handle(
    payload: ClaimHandleRequest,
    account: CurrentAccountDep,
    machine: StateMachineDep,
):
    """Claim an external handle and receive a verification token.

    The token must appear in a public submission made from that handle.
    """
    updated = machine.claim(account.id, payload.handle)
    return _reply(
        "Handle claimed. Include the verification token in a public submission.",
        updated,
    )


@router.post("/submit-solution", response_model=AccountMessage, responses=_TRANSITION)
async def submit_solution(
    payload: SubmitSolutionRequest,
    account: CurrentAccountDep,
    machine: StateMachineDep,
):
    updated = machine.submit(account.id, payload.submission_reference)
    return _reply("Submission recorded. Waiting for administrator review.", updated)


@router.post("/set-password", response_model=AccountMessage, responses=_TRANSITION)
async def set_password(
    payload: SetPasswordRequest,
    account: CurrentAccountDep,
    machine: StateMachineDep,
):
    """Set a local password. Requires an approved handle."""
    updated = machine.set_credential(account.id, payload.password)
    return _reply("Password set successfully", updated)


@router.post("/change-password", response_model=AccountMessage, responses=_TRANSITION)
async def change_password(
    payload: ChangePasswordRequest,
    account: CurrentAccountDep,
    machine: StateMachineDep,
):
    updated = machine.change_credential(
        account.id, payload.current_password, payload.new_password
    )
    return _reply("Password changed successfully", updated)


@router.post("/delink-handle", response_model=AccountMessage, responses=_TRANSITION)
async def delink_handle(account: CurrentAccountDep, machine: StateMachineDep):
    """Drop an unapproved handle claim."""
    updated = machine.delink(account.id)
    return _reply("Handle unlinked", updated)


@router.post(
    "/reset-verification", response_model=AccountMessage, responses=_TRANSITION
)
async def reset_verification(account: CurrentAccountDep, machine: StateMachineDep):
    """Start verification over after a rejection."""
    updated = machine.reset_verification(account.id)
    return _reply("Verification reset", updated)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(payload: ForgotPasswordRequest, resets: PasswordResetDep):
    """Request a password reset link.

    Returns the same message whether or not the email belongs to an account.
    """
    message = resets.request_reset(payload.email)
    return MessageResponse(message=message)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(payload: ResetPasswordRequest, resets: PasswordResetDep):
    resets.complete_reset(payload.email, payload.token, payload.new_password)
    return MessageResponse(message="Password has been reset successfully")
