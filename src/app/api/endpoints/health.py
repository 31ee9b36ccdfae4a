import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import text

from app.db.session import get_db
from app.core.scheduler import job_status, next_outbreak_scan_time, scheduler
from app.services.outbreak_service import OutbreakDetectionService, get_outbreak_service

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get(
    "/health",
    summary="Checks the database, the scan scheduler and the result cache"
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    service: OutbreakDetectionService = Depends(get_outbreak_service),
):
    """
    Returns:
    - status: "ok", or "degraded" when the database does not answer
      (scans then run on empty reads)
    - scheduler: whether periodic scans run, the next run and the last result
    - outbreak_cache: resident entries and their TTL
    """

    try:
        await db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception as e:
        logger.error(f"Health check: database connection failed: {e}")
        db_status = "error"

    next_run = next_outbreak_scan_time()

    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "database_status": db_status,
        "scheduler_status": "running" if scheduler.running else "stopped",
        "next_outbreak_scan": next_run.isoformat() if next_run else None,
        "last_outbreak_scan": job_status,
        "outbreak_cache": {
            "entries": len(service.cache),
            "ttl_seconds": service.cache.ttl_seconds,
            "enabled": service.cache.enabled,
        },
    }
