"""
Maldify
FastAPI application: upsell offers, checkout recommendations, dashboard
analytics and Pro plan billing for one Shopify store.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from maldify import __version__
from maldify.api import analytics, billing, checkout, health, offers
from maldify.config import get_settings
from maldify.models.base import init_db
from maldify.utils.logger import log

settings = get_settings()


def _missing_settings() -> list:
    required = {
        "SHOPIFY_SHOP_URL": settings.shopify_shop_url,
        "SHOPIFY_ACCESS_TOKEN": settings.shopify_access_token,
        "SHOPIFY_APP_URL": settings.shopify_app_url,
        "SHOP_PLAN_ID": settings.shop_plan_id,
    }
    return [name for name, value in required.items() if not value]


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info(f"Starting {settings.app_name} v{__version__} ({settings.environment})")

    missing = _missing_settings()
    if missing:
        log.warning(f"Not configured: {', '.join(missing)}; the affected endpoints will return errors")

    try:
        init_db()
        log.info("Usage counter tables ready")
    except Exception as e:
        # Offers fail per request until the database is reachable
        log.error(f"Database initialization error: {str(e)}")

    yield

    log.info(f"Stopping {settings.app_name}")


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="Post-purchase upsell offers, checkout recommendations, return-risk and ROI "
                "analytics, and Pro plan billing for Shopify merchants.",
    lifespan=lifespan
)

# The checkout and post-purchase extensions call from Shopify's domains
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["health"])
app.include_router(offers.router)
app.include_router(checkout.router)
app.include_router(analytics.router)
app.include_router(billing.router)
app.include_router(billing.redirect_router)


@app.get("/")
async def root():
    """API index"""
    return {
        "app": settings.app_name,
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "health": "GET /health",
            "status": "GET /status",
            "get_offer": "POST /api/public/get-offer",
            "checkout_recommendation": "POST /api/checkout/recommendation",
            "churn_risk": "GET /api/analytics/churn_risk",
            "roi": "GET /api/analytics/roi",
            "billing_plans": "GET /api/billing/plans",
            "billing_setup": "POST /api/billing/setup",
            "billing_check": "GET /api/billing/check",
            "billing_redirect": "GET /billing-redirect"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("maldify.main:app", host=settings.api_host, port=settings.api_port, reload=settings.debug)
