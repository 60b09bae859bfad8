"""
Dashboard analytics service tests (return-risk report and ROI).
"""
from datetime import timedelta

import pytest

from maldify.exceptions import ShopifyApiError
from maldify.models.commerce import Order, OrderLineItem
from maldify.services.analytics_service import AnalyticsService, compute_roi, order_revenue

from conftest import FakeShopifyConnector, make_settings, run

ORDERS = [
    {"id": 1, "total_price": "200.00", "line_items": [
        {"product_id": "1", "quantity": 10, "price": "20.00", "title": "Widget"},
    ]},
    {"id": 2, "total_price": "100.00", "line_items": [
        {"product_id": "2", "quantity": 4, "price": "25.00", "title": "Gadget"},
    ]},
]

REFUNDS = [
    {"id": 10, "order_id": 1, "refund_line_items": [
        {"product_id": "1", "quantity": 5, "price": "20.00"},
    ]},
]


# ---------------------------------------------------------------------------
# Return-risk report
# ---------------------------------------------------------------------------

def test_churn_risk_payload():
    connector = FakeShopifyConnector(orders=ORDERS, refunds=REFUNDS)
    result = run(AnalyticsService(connector, settings=make_settings()).get_churn_risk(30))

    assert set(result) == {"analysis_period", "summary", "top_risky_products", "skipped_line_items"}
    assert result["analysis_period"]["days"] == 30
    assert result["summary"]["total_products_analyzed"] == 2
    assert result["summary"]["high_risk_products"] == 1
    assert result["summary"]["low_risk_products"] == 1
    assert result["summary"]["overall_return_rate"] == 25.00

    top = result["top_risky_products"]
    assert [p["product_id"] for p in top] == ["1", "2"]
    assert top[0]["product_title"] == "Widget"
    assert top[0]["risk_level"] == "HIGH"


def test_churn_risk_window_matches_days():
    connector = FakeShopifyConnector()
    result = run(AnalyticsService(connector, settings=make_settings()).get_churn_risk(7))

    [(start, end)] = connector.sync_calls
    assert end - start == timedelta(days=7)
    assert result["analysis_period"]["start_date"] == start.date().isoformat()
    assert result["analysis_period"]["end_date"] == end.date().isoformat()


def test_churn_risk_defaults_to_configured_days():
    connector = FakeShopifyConnector()
    service = AnalyticsService(connector, settings=make_settings(analysis_days=14))
    assert run(service.get_churn_risk())["analysis_period"]["days"] == 14


def test_churn_risk_respects_top_n_setting():
    orders = [{"id": i, "line_items": [{"product_id": str(i), "quantity": 1, "price": 1}]} for i in range(4)]
    service = AnalyticsService(FakeShopifyConnector(orders=orders), settings=make_settings(risk_top_n=2))
    result = run(service.get_churn_risk(30))
    assert len(result["top_risky_products"]) == 2
    assert result["summary"]["total_products_analyzed"] == 4


def test_churn_risk_legacy_order_count():
    orders = [{"id": 1, "line_items": [
        {"product_id": "a", "quantity": 1, "price": 1},
        {"product_id": "a", "quantity": 1, "price": 1},
    ]}]
    deduped = AnalyticsService(FakeShopifyConnector(orders=orders), settings=make_settings())
    legacy = AnalyticsService(FakeShopifyConnector(orders=orders), settings=make_settings(risk_dedupe_orders=False))

    assert run(deduped.get_churn_risk(30))["top_risky_products"][0]["orders_count"] == 1
    assert run(legacy.get_churn_risk(30))["top_risky_products"][0]["orders_count"] == 2


def test_churn_risk_sync_failure_raises():
    connector = FakeShopifyConnector(sync_error="401 Unauthorized")
    with pytest.raises(ShopifyApiError, match="401 Unauthorized"):
        run(AnalyticsService(connector, settings=make_settings()).get_churn_risk(30))


# ---------------------------------------------------------------------------
# ROI
# ---------------------------------------------------------------------------

def test_order_revenue_prefers_total_price():
    assert order_revenue(Order("1", [OrderLineItem("a", 2, 5.0)], total_price=12.5)) == 12.5
    assert order_revenue(Order("1", [OrderLineItem("a", 2, 5.0), OrderLineItem("b", 1, 3.0)])) == 13.0


def test_compute_roi():
    orders = [Order("1", total_price=200.0), Order("2", total_price=100.0)]
    assert compute_roi(orders, subscription_cost=29.99, days=30) == {
        "period_days": 30,
        "revenue": 300.00,
        "order_count": 2,
        "average_order_value": 150.00,
        "cost": 29.99,
        "roi": 270.01,
        "roi_percentage": 900.37,
    }


def test_compute_roi_without_orders_or_cost():
    result = compute_roi([], subscription_cost=0, days=30)
    assert result["revenue"] == 0
    assert result["average_order_value"] == 0
    assert result["roi_percentage"] == 0


def test_roi_prorates_plan_price():
    service = AnalyticsService(FakeShopifyConnector(orders=ORDERS), settings=make_settings(pro_plan_price=30.0))
    result = run(service.get_roi(15))

    assert result["period_days"] == 15
    assert result["cost"] == 15.00
    assert result["revenue"] == 300.00
    assert result["order_count"] == 2
    assert result["roi"] == 285.00
    assert result["roi_percentage"] == 1900.00


def test_roi_sync_failure_raises():
    service = AnalyticsService(FakeShopifyConnector(sync_error="timeout"), settings=make_settings())
    with pytest.raises(ShopifyApiError):
        run(service.get_roi(30))
