"""Health check endpoints."""

from fastapi import Depends, Response
from fastapi.routing import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.api import deps
from ledgerline.core.logging import logger

router = APIRouter()


@router.get("")
async def health_check() -> dict[str, str]:
    """Check if the API is healthy.

    Returns:
    --------
        dict: A dictionary containing the status of the API.
    """
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(response: Response, db: AsyncSession = Depends(deps.get_db)) -> dict[str, str]:
    """Readiness probe: Postgres must answer before the ledger takes traffic."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Readiness check failed: {e}")
        response.status_code = 503
        return {"status": "not_ready"}
    return {"status": "ready"}
