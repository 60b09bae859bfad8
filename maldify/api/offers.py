"""
Post-purchase Offer API

Public endpoint the upsell extension calls with the shopper's cart.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Optional

from maldify.api.deps import get_offer_service
from maldify.exceptions import CartNotFoundError, PlanLimitReachedError
from maldify.services.offer_service import OfferService
from maldify.utils.logger import log

router = APIRouter(prefix="/api/public", tags=["offers"])


class OfferRequest(BaseModel):
    cart_id: Optional[str] = None
    customer_id: Optional[str] = None


@router.post("/get-offer")
async def get_offer(
    request: OfferRequest,
    service: OfferService = Depends(get_offer_service),
):
    """Pick the upsell offer for a cart, subject to the shop's plan quota."""
    if not request.cart_id or not request.customer_id:
        return JSONResponse(
            status_code=400,
            content={"error": "Missing required parameters: cart_id and customer_id are required"},
        )

    try:
        return await service.get_offer(request.cart_id, request.customer_id)
    except PlanLimitReachedError as e:
        return JSONResponse(
            status_code=403,
            content={
                "error": "PLAN_LIMIT_REACHED",
                "message": str(e),
                "current_usage": e.current_usage,
                "limit": e.limit,
                "upgrade_url": "/billing/setup",
            },
        )
    except CartNotFoundError:
        return JSONResponse(status_code=404, content={"error": "Cart not found"})
    except Exception as e:
        log.error(f"Error generating Maldify offer: {str(e)}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error while generating offer"},
        )
