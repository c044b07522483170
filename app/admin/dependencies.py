"""Admin domain dependencies."""

from typing import Annotated

from fastapi import Depends

from app.account.dependencies import AccountStoreDep
from app.admin.service import AdminService
from app.admin.throttle import LoginThrottle, get_login_throttle


def get_admin_service(store: AccountStoreDep) -> AdminService:
    return AdminService(store)


AdminServiceDep = Annotated[AdminService, Depends(get_admin_service)]
LoginThrottleDep = Annotated[LoginThrottle, Depends(get_login_throttle)]
