"""
Shopify connector tests.

The Shopify SDK is patched at the module boundary; no network calls are made.
"""
import json
from datetime import datetime

import pytest
import pytz

from maldify.connectors import shopify_connector
from maldify.connectors.base_connector import BaseConnector
from maldify.connectors.shopify_connector import ShopifyConnector
from maldify.exceptions import ShopifyApiError
from maldify.utils.retry import RetryPolicy, is_retryable_error, retry_after_seconds

from conftest import run


class _Record:
    def __init__(self, data):
        self._data = data
        self.status = data.get("status")

    def to_dict(self):
        return dict(self._data)


class _Page(list):
    def __init__(self, items, next_page=None):
        super().__init__(items)
        self._next = next_page

    def has_next_page(self):
        return self._next is not None

    def next_page(self):
        return self._next


def _connected():
    connector = ShopifyConnector(shop_url="https://test-shop.myshopify.com", access_token="token")
    connector.session = object()
    return connector


def _graphql_returning(payload, calls=None):
    class _GraphQL:
        def execute(self, query, variables=None):
            if calls is not None:
                calls.append(variables)
            return json.dumps(payload)
    return _GraphQL


# ---------------------------------------------------------------------------
# Construction and time handling
# ---------------------------------------------------------------------------

def test_shop_url_scheme_is_stripped():
    assert ShopifyConnector(shop_url="https://a.myshopify.com", access_token="t").shop_url == "a.myshopify.com"


def test_naive_datetimes_are_treated_as_utc():
    connector = _connected()
    assert connector._to_utc_iso(datetime(2026, 5, 1, 12, 0)) == "2026-05-01T12:00:00+00:00"


def test_parse_datetime():
    connector = _connected()
    parsed = connector._parse_datetime("2026-05-01T10:00:00-04:00")
    assert parsed.astimezone(pytz.UTC) == pytz.UTC.localize(datetime(2026, 5, 1, 14, 0))
    assert connector._parse_datetime("garbage") is None
    assert connector._parse_datetime(None) is None


# ---------------------------------------------------------------------------
# Cart lookup
# ---------------------------------------------------------------------------

def test_cart_item_count_sums_quantities(monkeypatch):
    calls = []
    payload = {"data": {"cart": {"id": "c1", "lines": {"edges": [
        {"node": {"id": "l1", "quantity": 2}},
        {"node": {"id": "l2", "quantity": 1}},
    ]}}}}
    monkeypatch.setattr(shopify_connector.shopify, "GraphQL", _graphql_returning(payload, calls))

    assert run(_connected().get_cart_item_count("gid://shopify/Cart/c1")) == 3
    assert calls == [{"id": "gid://shopify/Cart/c1"}]


def test_missing_cart_returns_none(monkeypatch):
    monkeypatch.setattr(shopify_connector.shopify, "GraphQL", _graphql_returning({"data": {"cart": None}}))
    assert run(_connected().get_cart_item_count("nope")) is None


def test_cart_query_errors_raise(monkeypatch):
    payload = {"errors": [{"message": "Field 'cart' is missing required arguments"}]}
    monkeypatch.setattr(shopify_connector.shopify, "GraphQL", _graphql_returning(payload))
    with pytest.raises(ShopifyApiError):
        run(_connected().get_cart_item_count("c1"))


# ---------------------------------------------------------------------------
# Orders and refunds
# ---------------------------------------------------------------------------

def test_fetch_data_pages_orders_and_filters_refunds(monkeypatch):
    orders_page_2 = _Page([
        _Record({"id": 2, "created_at": "2026-05-03", "total_price": "10.00", "cancelled_at": "2026-05-04",
                 "line_items": []}),
    ])
    orders_page_1 = _Page([
        _Record({"id": 1, "created_at": "2026-05-02", "total_price": "40.00", "line_items": [
            {"product_id": 7, "quantity": 2, "price": "20.00", "title": "Lamp", "sku": "L-1"},
        ]}),
    ], next_page=orders_page_2)
    refund_orders = _Page([
        _Record({"id": 1, "refunds": [
            {"id": 50, "created_at": "2026-05-05T00:00:00Z", "refund_line_items": [
                {"quantity": 1, "line_item": {"product_id": 7, "price": "20.00"}},
            ]},
            {"id": 51, "created_at": "2026-01-01T00:00:00Z", "refund_line_items": []},
        ]}),
    ])

    class _Order:
        calls = []

        @classmethod
        def find(cls, **params):
            cls.calls.append(params)
            return refund_orders if "fields" in params else orders_page_1

    monkeypatch.setattr(shopify_connector.shopify, "Order", _Order)

    data = run(_connected().fetch_data(datetime(2026, 5, 1), datetime(2026, 5, 31)))

    assert data["orders"] == [{
        "id": 1,
        "created_at": "2026-05-02",
        "total_price": "40.00",
        "line_items": [{"product_id": 7, "quantity": 2, "price": "20.00", "title": "Lamp"}],
    }]
    assert data["refunds"] == [{
        "id": 50,
        "order_id": 1,
        "created_at": "2026-05-05T00:00:00Z",
        "refund_line_items": [{"product_id": 7, "quantity": 1, "price": "20.00"}],
    }]
    assert _Order.calls[0]["created_at_min"] == "2026-05-01T00:00:00+00:00"
    assert _Order.calls[1]["updated_at_max"] == "2026-05-31T00:00:00+00:00"


# ---------------------------------------------------------------------------
# Sync and retry
# ---------------------------------------------------------------------------

class _FlakyConnector(BaseConnector):
    retry_policy = RetryPolicy(base_delay=0, jitter=False)

    def __init__(self, failures):
        super().__init__("Flaky")
        self.failures = list(failures)

    async def connect(self):
        return True

    async def validate_connection(self):
        return True

    async def fetch_data(self, start_date, end_date):
        if self.failures:
            raise self.failures.pop(0)
        return {"orders": [], "refunds": []}


def test_sync_retries_transient_errors():
    connector = _FlakyConnector([ConnectionError("connection reset")])
    result = run(connector.sync(datetime(2026, 5, 1), datetime(2026, 5, 2)))

    assert result.success is True
    assert result.data == {"orders": [], "refunds": []}
    assert result.retry_stats.retries == 1
    assert connector.get_status()["sync_count"] == 1


def test_sync_does_not_retry_permanent_errors():
    connector = _FlakyConnector([ValueError("bad request body"), ValueError("unreachable")])
    result = run(connector.sync(datetime(2026, 5, 1), datetime(2026, 5, 2)))

    assert result.success is False
    assert result.error == "bad request body"
    assert result.retry_stats.retries == 0
    assert connector.error_count == 1


def test_sync_gives_up_after_max_attempts():
    connector = _FlakyConnector([TimeoutError("timed out")] * 3)
    result = run(connector.sync(datetime(2026, 5, 1), datetime(2026, 5, 2)))

    assert result.success is False
    assert result.retry_stats.retries == 2
    assert len(result.retry_stats.errors) == 3


def test_throttled_cart_query_is_retried(monkeypatch):
    responses = [
        {"errors": [{"message": "Throttled", "extensions": {"code": "THROTTLED"}}]},
        {"data": {"cart": {"id": "c1", "lines": {"edges": [{"node": {"id": "l1", "quantity": 4}}]}}}},
    ]

    class _GraphQL:
        def execute(self, query, variables=None):
            return json.dumps(responses.pop(0))

    monkeypatch.setattr(shopify_connector.shopify, "GraphQL", _GraphQL)
    connector = _connected()
    connector.retry_policy = RetryPolicy(base_delay=0, jitter=False)

    assert run(connector.get_cart_item_count("c1")) == 4
    assert responses == []


# ---------------------------------------------------------------------------
# Retry classification
# ---------------------------------------------------------------------------

class _Response:
    def __init__(self, code, headers=None):
        self.code = code
        self.headers = headers or {}


class _HttpError(Exception):
    def __init__(self, code, headers=None):
        super().__init__(f"Response({code})")
        self.response = _Response(code, headers)


def test_rate_limited_response_is_retryable():
    error = _HttpError(429, {"Retry-After": "2.0"})
    assert is_retryable_error(error)
    assert retry_after_seconds(error) == 2.0


def test_client_errors_are_not_retryable():
    assert not is_retryable_error(_HttpError(422))
    assert not is_retryable_error(ValueError("bad request body"))


def test_retry_after_caps_backoff():
    policy = RetryPolicy(max_delay=5.0, jitter=False)
    assert policy.backoff(1, retry_after=30) == 5.0
    assert policy.backoff(1) == 2.0
    assert policy.backoff(3) == 5.0
