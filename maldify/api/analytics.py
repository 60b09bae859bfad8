"""
Dashboard Analytics API

Return-risk report and ROI for the merchant dashboard.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, HTTPException

from maldify.api.deps import get_analytics_service
from maldify.config import get_settings
from maldify.services.analytics_service import AnalyticsService
from maldify.utils.logger import log
from maldify.utils.response_cache import response_cache

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/churn_risk")
async def get_churn_risk(
    days: Optional[int] = Query(None, ge=1, le=365, description="Lookback days (defaults to ANALYSIS_DAYS)"),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Top products by return risk, plus risk-level counts."""
    days = days or service.settings.analysis_days
    try:
        return await response_cache.get_or_compute(
            f"analytics:churn_risk:{days}",
            lambda: service.get_churn_risk(days),
            ttl=get_settings().analytics_cache_ttl,
        )
    except Exception as e:
        log.error(f"Error computing churn risk: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/roi")
async def get_roi(
    days: Optional[int] = Query(None, ge=1, le=365, description="Lookback days (defaults to ANALYSIS_DAYS)"),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Revenue versus subscription cost."""
    days = days or service.settings.analysis_days
    try:
        return await response_cache.get_or_compute(
            f"analytics:roi:{days}",
            lambda: service.get_roi(days),
            ttl=get_settings().analytics_cache_ttl,
        )
    except Exception as e:
        log.error(f"Error computing ROI: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
