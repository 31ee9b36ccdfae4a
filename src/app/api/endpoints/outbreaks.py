import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from app.schemas.outbreaks import OutbreakScanResponse, ScanErrorResponse, ThresholdRulePublic
from app.services.outbreak_service import (
    InvalidScanFilterError,
    OutbreakDetectionError,
    OutbreakDetectionService,
    ScanFilters,
    get_outbreak_service,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/detect",
    response_model=OutbreakScanResponse,
    responses={500: {"model": ScanErrorResponse}},
    summary="Detects disease outbreaks against the configured thresholds"
)
async def detect_outbreaks(
    disease_type: Optional[str] = Query(None, description="Only evaluate rules for this disease type"),
    geographic_unit_id: Optional[int] = Query(None, description="Only report alerts for this geographic unit"),
    auto_notify: bool = Query(False, description="Notify active administrators about new alerts"),
    service: OutbreakDetectionService = Depends(get_outbreak_service),
):
    """
    Runs an outbreak scan, or returns the cached result of an identical scan
    computed within the cache TTL. Cached results never trigger notifications.
    """
    try:
        filters = ScanFilters.from_raw(disease_type, geographic_unit_id)
    except InvalidScanFilterError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        return await service.run_scan(filters, auto_notify=auto_notify)
    except OutbreakDetectionError as e:
        logger.error(f"Outbreak detection request failed: {e}")
        return JSONResponse(
            status_code=500,
            content=ScanErrorResponse(error="Failed to detect outbreaks", details=str(e)).model_dump(),
        )


@router.get("/thresholds", response_model=List[ThresholdRulePublic], summary="Lists the configured outbreak thresholds")
async def read_thresholds(service: OutbreakDetectionService = Depends(get_outbreak_service)):
    return [ThresholdRulePublic.model_validate(rule) for rule in service.rules]


@router.post("/cache/clear", summary="Clears cached outbreak scan results")
async def clear_cache(service: OutbreakDetectionService = Depends(get_outbreak_service)):
    cleared = len(service.cache)
    service.cache.clear()
    logger.info(f"Outbreak result cache cleared ({cleared} entries).")
    return {"message": "Outbreak cache cleared.", "cleared": cleared}
