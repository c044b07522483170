"""Account domain dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlmodel import Session

from app.account.repository import AccountStore
from app.db.engine import get_session


def get_account_store(session: Annotated[Session, Depends(get_session)]) -> AccountStore:
    """Account store bound to the request's database session."""
    return AccountStore(session)


AccountStoreDep = Annotated[AccountStore, Depends(get_account_store)]
