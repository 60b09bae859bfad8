"""
Post-purchase offer service

Gates the offer on the shop's plan and monthly quota, counts the cart, and
runs the offer selector.
"""
from typing import Any, Dict, Optional

from maldify.config import get_settings
from maldify.exceptions import CartNotFoundError, PlanLimitReachedError
from maldify.ml.offer_selector import OfferCatalog, select_offer
from maldify.services.subscription_service import SubscriptionStatusProvider, UsageCounter
from maldify.utils.logger import log


class OfferService:
    """Builds the upsell offer payload for one cart"""

    def __init__(
        self,
        connector,
        subscription_provider: SubscriptionStatusProvider,
        usage_counter: UsageCounter,
        catalog: Optional[OfferCatalog] = None,
        settings=None
    ):
        self.settings = settings or get_settings()
        self.connector = connector
        self.subscription_provider = subscription_provider
        self.usage_counter = usage_counter
        self.catalog = catalog or OfferCatalog.from_settings(self.settings)

    @property
    def shop(self) -> str:
        return self.settings.shopify_shop_url or "unknown"

    async def get_offer(self, cart_id: str, customer_id: str) -> Dict[str, Any]:
        """
        Generate the offer for a cart.

        Raises:
            PlanLimitReachedError: free-plan shop is out of monthly offers
            CartNotFoundError: Shopify has no such cart
        """
        status = await self.subscription_provider.get_status()
        limit = self.settings.free_plan_monthly_limit

        current_usage = 0
        if not status.is_pro_plan:
            current_usage = self.usage_counter.current_usage(self.shop)
            if current_usage >= limit:
                log.warning(f"Free plan limit reached for {self.shop}: {current_usage}/{limit}")
                raise PlanLimitReachedError(current_usage=current_usage, limit=limit)

        total_items = await self.connector.get_cart_item_count(cart_id)
        if total_items is None:
            raise CartNotFoundError(f"Cart not found: {cart_id}")

        offer = select_offer(total_items, self.catalog)

        # Only served offers count against the quota
        usage_count = None
        if not status.is_pro_plan:
            usage_count = self.usage_counter.try_consume(self.shop, limit)
            if usage_count is None:
                # Concurrent requests used up the last slots after the first check
                log.warning(f"Free plan limit reached for {self.shop} while serving cart {cart_id}")
                raise PlanLimitReachedError(current_usage=limit, limit=limit)

        log.info(
            f"Maldify offer generated for customer {customer_id}: cart={cart_id} "
            f"items={total_items} offer={offer.to_dict()} plan={status.plan_name} "
            f"usage={'unlimited' if status.is_pro_plan else usage_count}"
        )

        return {
            **offer.to_dict(),
            "subscription_info": {
                "plan": status.plan_name,
                "is_pro": status.is_pro_plan,
                "usage_count": usage_count,
                "usage_limit": None if status.is_pro_plan else limit,
            },
        }
