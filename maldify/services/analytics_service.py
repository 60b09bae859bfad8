"""
Merchant dashboard analytics

Return-risk report and subscription ROI over a trailing window of days.
"""
from typing import Any, Dict, Iterable, Optional

from maldify.config import get_settings
from maldify.exceptions import ShopifyApiError
from maldify.ml.churn_risk import compute_risk_from_raw
from maldify.ml.records import parse_orders
from maldify.models.commerce import Order
from maldify.utils.helpers import analysis_window, format_currency, round_money, safe_divide
from maldify.utils.logger import log

BILLING_CYCLE_DAYS = 30


def order_revenue(order: Order) -> float:
    """Order total, falling back to the sum of its line items"""
    if order.total_price is not None:
        return order.total_price
    return sum(item.quantity * item.unit_price for item in order.line_items)


def compute_roi(orders: Iterable[Order], subscription_cost: float, days: int) -> Dict[str, Any]:
    """
    Revenue generated versus what the subscription cost over the period.

    roi_percentage is 0 when there is no cost to compare against.
    """
    orders = list(orders)
    revenue = sum(order_revenue(o) for o in orders)
    roi = revenue - subscription_cost

    return {
        "period_days": days,
        "revenue": round_money(revenue),
        "order_count": len(orders),
        "average_order_value": round_money(safe_divide(revenue, len(orders))),
        "cost": round_money(subscription_cost),
        "roi": round_money(roi),
        "roi_percentage": round_money(safe_divide(roi, subscription_cost) * 100),
    }


class AnalyticsService:
    """Fetches the analysis window from Shopify and runs the dashboard reports"""

    def __init__(self, connector, settings=None):
        self.connector = connector
        self.settings = settings or get_settings()

    async def _fetch_window(self, days: int) -> Dict[str, Any]:
        start_date, end_date = analysis_window(days)
        result = await self.connector.sync(start_date, end_date)
        if not result.success:
            raise ShopifyApiError(f"Failed to fetch Shopify data: {result.error}")

        data = result.data or {}
        return {
            "start_date": start_date,
            "end_date": end_date,
            "orders": data.get("orders") or [],
            "refunds": data.get("refunds") or [],
        }

    async def get_churn_risk(self, days: Optional[int] = None) -> Dict[str, Any]:
        """Top risky products plus risk summary for the window"""
        days = days or self.settings.analysis_days
        window = await self._fetch_window(days)

        report = compute_risk_from_raw(
            window["orders"],
            window["refunds"],
            top_n=self.settings.risk_top_n,
            dedupe_orders=self.settings.risk_dedupe_orders,
        )

        return {
            "analysis_period": {
                "start_date": window["start_date"].date().isoformat(),
                "end_date": window["end_date"].date().isoformat(),
                "days": days,
            },
            **report.to_dict(),
        }

    async def get_roi(self, days: Optional[int] = None) -> Dict[str, Any]:
        """Revenue versus prorated Pro plan cost for the window"""
        days = days or self.settings.analysis_days
        window = await self._fetch_window(days)

        parsed = parse_orders(window["orders"])
        cost = self.settings.pro_plan_price * days / BILLING_CYCLE_DAYS
        roi = compute_roi(parsed.records, cost, days)

        log.info(
            f"ROI over {days} days: revenue {format_currency(roi['revenue'], self.settings.plan_currency)}, "
            f"cost {format_currency(roi['cost'], self.settings.plan_currency)}"
        )
        return roi
