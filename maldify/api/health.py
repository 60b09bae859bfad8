"""
Liveness and configuration status
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import text

from maldify import __version__
from maldify.api.deps import get_shopify_connector
from maldify.config import get_settings
from maldify.connectors.shopify_connector import ShopifyConnector
from maldify.models.base import engine
from maldify.utils.logger import log

router = APIRouter()


def _database_state() -> str:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "ok"
    except Exception as e:
        log.error(f"Database health check failed: {str(e)}")
        return "unavailable"


@router.get("/health")
async def health_check():
    """Degraded when the usage counter database is unreachable"""
    database = _database_state()
    return {
        "status": "healthy" if database == "ok" else "degraded",
        "database": database,
        "version": __version__,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/status")
async def get_status(connector: ShopifyConnector = Depends(get_shopify_connector)):
    """Which shop, catalog and quota this instance is running with"""
    settings = get_settings()
    return {
        "app_name": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "shop": settings.shopify_shop_url or None,
        "shopify": connector.get_status(),
        "billing_configured": bool(settings.shopify_app_url and settings.shop_plan_id),
        "offer_catalog": {
            "premium_product_id": settings.premium_product_id,
            "complementary_product_id": settings.complementary_product_id,
            "item_threshold": settings.offer_item_threshold,
            "discount_percent": settings.premium_discount_percent,
        },
        "free_plan_monthly_limit": settings.free_plan_monthly_limit,
    }
