import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db, ping_db
from utils.responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(db: AsyncSession = Depends(get_db)):
    """Liveness plus a store connectivity probe."""
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        await ping_db(db)
    except Exception as e:
        logger.error(f"Health check: database unreachable: {e}")
        return success_response(
            {"status": "degraded", "database": "unreachable", "timestamp": timestamp},
            status=503,
        )
    return success_response({"status": "ok", "database": "ok", "timestamp": timestamp})
