"""
Request-scoped collaborators

Every router gets its Shopify connector, subscription/usage collaborators and
services through these dependencies, so tests can swap them with
app.dependency_overrides.
"""
from functools import lru_cache

from fastapi import Depends

from maldify.config import get_settings
from maldify.connectors.shopify_connector import ShopifyConnector
from maldify.ml.recommendation_engine import Recommender, RuleBasedRecommender
from maldify.models.base import SessionLocal
from maldify.services.analytics_service import AnalyticsService
from maldify.services.billing_service import BillingService
from maldify.services.offer_service import OfferService
from maldify.services.subscription_service import (
    ShopifySubscriptionStatusProvider,
    SqlUsageCounter,
    SubscriptionStatusProvider,
    UsageCounter,
)


@lru_cache()
def get_shopify_connector() -> ShopifyConnector:
    return ShopifyConnector()


def get_subscription_provider(
    connector: ShopifyConnector = Depends(get_shopify_connector),
) -> SubscriptionStatusProvider:
    return ShopifySubscriptionStatusProvider(connector, settings=get_settings())


def get_usage_counter() -> UsageCounter:
    return SqlUsageCounter(SessionLocal)


@lru_cache()
def get_recommender() -> Recommender:
    return RuleBasedRecommender()


def get_offer_service(
    connector: ShopifyConnector = Depends(get_shopify_connector),
    subscription_provider: SubscriptionStatusProvider = Depends(get_subscription_provider),
    usage_counter: UsageCounter = Depends(get_usage_counter),
) -> OfferService:
    return OfferService(connector, subscription_provider, usage_counter, settings=get_settings())


def get_analytics_service(
    connector: ShopifyConnector = Depends(get_shopify_connector),
) -> AnalyticsService:
    return AnalyticsService(connector, settings=get_settings())


def get_billing_service(
    connector: ShopifyConnector = Depends(get_shopify_connector),
) -> BillingService:
    return BillingService(connector, settings=get_settings())
