"""Verification domain dependencies."""

from typing import Annotated

from fastapi import Depends

from app.account.dependencies import AccountStoreDep
from app.auth.hashing import CredentialHasher, get_credential_hasher
from app.core.settings import get_settings
from app.verification.machine import VerificationStateMachine
from app.verification.password_reset import (
    EmailResetDelivery,
    PasswordResetService,
    ResetDelivery,
)

HasherDep = Annotated[CredentialHasher, Depends(get_credential_hasher)]


def get_reset_delivery() -> ResetDelivery:
    return EmailResetDelivery()


def get_state_machine(
    store: AccountStoreDep, hasher: HasherDep
) -> VerificationStateMachine:
    return VerificationStateMachine(store, hasher)


def get_password_reset_service(
    store: AccountStoreDep,
    hasher: HasherDep,
    delivery: Annotated[ResetDelivery, Depends(get_reset_delivery)],
) -> PasswordResetService:
    return PasswordResetService(
        store, hasher, delivery, ttl=get_settings().reset_token_ttl
    )


StateMachineDep = Annotated[VerificationStateMachine, Depends(get_state_machine)]
PasswordResetDep = Annotated[PasswordResetService, Depends(get_password_reset_service)]
