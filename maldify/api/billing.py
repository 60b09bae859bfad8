"""
Billing API

Plan listing and the Pro subscription flow.
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse
from typing import Optional

from maldify.api.deps import get_billing_service
from maldify.config import get_settings
from maldify.exceptions import BillingConfigurationError, ShopifyApiError
from maldify.services.billing_service import BillingService, classify_billing_error, list_plans
from maldify.utils.logger import log

router = APIRouter(prefix="/api/billing", tags=["billing"])
redirect_router = APIRouter(tags=["billing"])


@router.get("/plans")
async def get_plans():
    """Available subscription plans."""
    return {"plans": list_plans()}


@router.post("/setup")
async def setup_billing(service: BillingService = Depends(get_billing_service)):
    """Create the Pro recurring charge and return Shopify's approval URL."""
    try:
        return await service.setup_billing()
    except BillingConfigurationError as e:
        return JSONResponse(
            status_code=500,
            content={
                "error": str(e),
                "missing_variables": e.missing_variables,
                "details": "Required: SHOPIFY_APP_URL, SHOP_PLAN_ID",
            },
        )
    except ShopifyApiError as e:
        log.error(f"Error setting up billing: {str(e)}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Failed to get billing confirmation URL",
                "error_code": e.error_code,
                "details": str(e),
            },
        )
    except Exception as e:
        log.error(f"Error setting up billing: {str(e)}")
        message, code = classify_billing_error(e)
        return JSONResponse(
            status_code=500,
            content={
                "error": message,
                "error_code": code,
                "details": str(e),
                "timestamp": datetime.utcnow().isoformat(),
                "shop": get_settings().shopify_shop_url or "unknown",
            },
        )


@router.get("/check")
async def check_billing(service: BillingService = Depends(get_billing_service)):
    """Whether the shop has an active Pro subscription."""
    try:
        return await service.check_billing()
    except Exception as e:
        log.error(f"Error checking billing status: {str(e)}")
        message, code = classify_billing_error(e)
        if code not in ("UNAUTHORIZED", "NETWORK_ERROR"):
            message = "Failed to check billing status"
        return JSONResponse(
            status_code=500,
            content={
                "error": message,
                "details": str(e),
                "timestamp": datetime.utcnow().isoformat(),
            },
        )


@redirect_router.get("/billing-redirect")
async def billing_redirect(
    charge_id: Optional[str] = Query(None),
    service: BillingService = Depends(get_billing_service),
):
    """Shopify sends the merchant here after approving the charge."""
    target = await service.confirm_billing(charge_id)
    return RedirectResponse(url=target, status_code=302)
