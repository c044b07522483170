"""Health domain router.

Health check endpoint for monitoring and load balancers.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.constants import Routes
from app.core.deps import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix=Routes.HEALTH.prefix, tags=[Routes.HEALTH.tag])


@router.get("")
async def health(session: SessionDep):
    """Health check endpoint with account store connectivity verification."""
    try:
        session.exec(text("SELECT 1"))  # type: ignore[call-overload]
        return {"status": "ok", "database": "ok"}
    except SQLAlchemyError as e:
        logger.warning("Health check failed: %s", type(e).__name__)
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "error"},
        )
