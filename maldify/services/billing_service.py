"""
Billing Service

Plan catalog plus the Shopify recurring-charge flow: create the charge, send
the merchant to Shopify to approve it, activate it on the way back. Charge
state itself lives in Shopify; nothing is stored locally.
"""
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from maldify.config import get_settings
from maldify.exceptions import BillingConfigurationError, ShopifyApiError
from maldify.utils.logger import log


# (substrings, message, code) checked in order against the lowercased error
_BILLING_ERROR_RULES = [
    (("unauthorized", "401"), "Unauthorized: Check your API credentials", "UNAUTHORIZED"),
    (("invalid", "400"), "Invalid billing configuration", "INVALID_CONFIG"),
    (("plan", "billing"), "Billing plan configuration error", "PLAN_ERROR"),
    (("network", "timeout"), "Network error: Unable to connect to Shopify", "NETWORK_ERROR"),
]


def classify_billing_error(error: Exception) -> Tuple[str, str]:
    """Map a billing failure to a merchant-facing message and error code"""
    text = str(error).lower()
    for needles, message, code in _BILLING_ERROR_RULES:
        if any(n in text for n in needles):
            return message, code
    return "Failed to create billing subscription", "BILLING_SETUP_ERROR"


def list_plans(settings=None) -> List[Dict[str, Any]]:
    """Plans shown on the plan selection page (limit 0 means unlimited)"""
    settings = settings or get_settings()
    return [
        {
            "id": "free",
            "name": settings.free_plan_name,
            "price_monthly": 0,
            "limit": settings.free_plan_monthly_limit,
            "currency": settings.plan_currency,
            "features": [
                f"Up to {settings.free_plan_monthly_limit} upsell offers per month",
                "Cart-size based offer selection",
                "Checkout recommendations",
            ],
        },
        {
            "id": "pro",
            "name": settings.pro_plan_name,
            "price_monthly": settings.pro_plan_price,
            "limit": 0,
            "currency": settings.plan_currency,
            "features": [
                "Unlimited upsell offers",
                "Return-risk report for your top products",
                "ROI dashboard",
                "Priority support",
            ],
        },
    ]


class BillingService:
    """Recurring-charge lifecycle for the Pro plan"""

    def __init__(self, connector, settings=None):
        self.connector = connector
        self.settings = settings or get_settings()

    @property
    def plan_price(self) -> str:
        return f"{self.settings.pro_plan_price:.2f}"

    def _missing_configuration(self) -> List[str]:
        required = {
            "SHOPIFY_APP_URL": self.settings.shopify_app_url,
            "SHOP_PLAN_ID": self.settings.shop_plan_id,
        }
        return [name for name, value in required.items() if not value]

    async def setup_billing(self) -> Dict[str, Any]:
        """
        Create the Pro recurring charge.

        Raises:
            BillingConfigurationError: app url or plan id not configured
            ShopifyApiError: Shopify returned no confirmation url
        """
        missing = self._missing_configuration()
        if missing:
            log.error(f"Missing required environment variables: {', '.join(missing)}")
            raise BillingConfigurationError(missing)

        app_url = self.settings.shopify_app_url.rstrip("/")
        return_url = f"{app_url}/billing-redirect"
        plan_name = self.settings.shop_plan_name

        log.info(f"Creating billing subscription for shop: {self.settings.shopify_shop_url}")
        log.info(f"Plan: {plan_name} - ${self.plan_price}/month, return url {return_url}")

        charge = await self.connector.create_recurring_charge(
            name=plan_name,
            price=self.plan_price,
            return_url=return_url,
            test=self.settings.is_test_charge,
        )

        confirmation_url = charge.get("confirmation_url")
        if not confirmation_url:
            log.error("No confirmation URL received from Shopify")
            raise ShopifyApiError(
                "Shopify did not return a confirmation URL",
                error_code="MISSING_CONFIRMATION_URL",
            )

        return {
            "success": True,
            "billing_url": confirmation_url,
            "confirmationUrl": confirmation_url,
            "subscription_id": charge.get("id"),
            "plan_name": plan_name,
            "plan_price": self.plan_price,
            "plan_id": self.settings.shop_plan_id,
            "currency": self.settings.plan_currency,
            "shop": self.settings.shopify_shop_url,
            "test_mode": self.settings.is_test_charge,
            "status": charge.get("status"),
        }

    async def check_billing(self) -> Dict[str, Any]:
        """Current subscription state as reported by Shopify"""
        active = await self.connector.list_active_charges()
        plan = active[0] if active else None

        return {
            "has_subscription": plan is not None,
            "plan_name": plan.get("name") if plan else None,
            "plan_price": plan.get("price") if plan else None,
            "currency": self.settings.plan_currency,
            "status": plan.get("status") if plan else "inactive",
            "shop": self.settings.shopify_shop_url,
        }

    async def confirm_billing(self, charge_id: Optional[str]) -> str:
        """Activate the approved charge and return where to send the merchant"""
        app_url = (self.settings.shopify_app_url or "").rstrip("/")

        if not charge_id:
            log.error("Missing charge_id parameter in billing redirect")
            return f"{app_url}/?billing=error&reason=missing_charge_id"

        try:
            charge = await self.connector.activate_charge(charge_id)
        except Exception as e:
            log.error(f"Error confirming billing: {str(e)}")
            return f"{app_url}/?billing=error&reason={quote(str(e), safe='')}"

        log.info(f"Billing activated for shop {self.settings.shopify_shop_url}: charge {charge_id}")
        plan_name = charge.get("name") or self.settings.shop_plan_name
        return f"{app_url}/?billing=success&plan={quote(plan_name, safe='')}"
