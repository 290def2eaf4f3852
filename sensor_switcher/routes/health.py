"""
Health check endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sensor_switcher.database import get_db
from sensor_switcher.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check with database connectivity.
    No authentication required.

    Returns:
        dict: {
            "ok": true,
            "timestamp": "2024-01-01T12:00:00+00:00",
            "services": {"database": true}
        }
    """
    try:
        await db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.warning("health_database_unreachable", error=str(e))
        db_ok = False

    return {
        "ok": db_ok,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {"database": db_ok}
    }
