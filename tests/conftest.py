"""
Shared test setup.

Environment is pinned before any maldify import so the cached Settings, the
logger sinks and the database engine never touch a developer's real config.
"""
import asyncio
import os
import tempfile
from datetime import datetime
from typing import Dict, List, Optional

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="maldify-test-logs-")
os.environ["SHOPIFY_SHOP_URL"] = "test-shop.myshopify.com"
os.environ["SHOPIFY_ACCESS_TOKEN"] = "shpat_test"

import pytest  # noqa: E402

from maldify.config import Settings  # noqa: E402
from maldify.connectors.base_connector import SyncResult  # noqa: E402
from maldify.services.subscription_service import UsageCounter, current_period  # noqa: E402


def run(coro):
    """Run an async coroutine in a sync test."""
    return asyncio.run(coro)


def make_settings(**overrides) -> Settings:
    """Settings isolated from .env files"""
    values = {"shopify_shop_url": "test-shop.myshopify.com", "environment": "test"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeShopifyConnector:
    """Stands in for ShopifyConnector; records calls instead of hitting the API"""

    def __init__(
        self,
        cart_counts: Optional[Dict[str, int]] = None,
        orders: Optional[List[Dict]] = None,
        refunds: Optional[List[Dict]] = None,
        active_charges: Optional[List[Dict]] = None,
        sync_error: Optional[str] = None,
        cart_error: Optional[Exception] = None,
        charge: Optional[Dict] = None,
        charge_error: Optional[Exception] = None,
        activate_error: Optional[Exception] = None,
    ):
        self.cart_counts = cart_counts or {}
        self.orders = orders or []
        self.refunds = refunds or []
        self.active_charges = active_charges or []
        self.sync_error = sync_error
        self.cart_error = cart_error
        self.charge = charge
        self.charge_error = charge_error
        self.activate_error = activate_error

        self.cart_calls = []
        self.sync_calls = []
        self.charge_calls = []
        self.activated = []

    async def get_cart_item_count(self, cart_id):
        self.cart_calls.append(cart_id)
        if self.cart_error:
            raise self.cart_error
        return self.cart_counts.get(cart_id)

    async def sync(self, start_date, end_date):
        self.sync_calls.append((start_date, end_date))
        if self.sync_error:
            return SyncResult(success=False, source="Shopify", error=self.sync_error)
        return SyncResult(success=True, source="Shopify", data={"orders": self.orders, "refunds": self.refunds})

    async def list_active_charges(self):
        return list(self.active_charges)

    async def create_recurring_charge(self, name, price, return_url, test=True):
        self.charge_calls.append({"name": name, "price": price, "return_url": return_url, "test": test})
        if self.charge_error:
            raise self.charge_error
        return self.charge or {}

    async def activate_charge(self, charge_id):
        if self.activate_error:
            raise self.activate_error
        self.activated.append(charge_id)
        return {"id": charge_id, "name": "Maldify Pro Subscription", "status": "active"}


class InMemoryUsageCounter(UsageCounter):
    """Dict-backed UsageCounter"""

    def __init__(self, initial: Optional[Dict] = None):
        self.counts = dict(initial or {})

    def current_usage(self, shop: str, now: Optional[datetime] = None) -> int:
        return self.counts.get((shop, current_period(now)), 0)

    def try_consume(self, shop: str, limit: Optional[int] = None, now: Optional[datetime] = None) -> Optional[int]:
        key = (shop, current_period(now))
        if limit is not None and self.counts.get(key, 0) >= limit:
            return None
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def usage_counter():
    return InMemoryUsageCounter()
