"""
Helper and response cache tests.
"""
from datetime import datetime, timedelta

import pytest
import pytz

from maldify.models.base import resolve_database_url
from maldify.utils.helpers import analysis_window, format_currency, round_money, safe_divide
from maldify.utils.response_cache import ResponseCache

from conftest import run


# ---------------------------------------------------------------------------
# Money and ratios
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("value,expected", [
    (49.995, 50.00),
    (99.99 * 0.5, 50.00),
    (1.005, 1.01),
    (2.675, 2.68),
    (10, 10.00),
    ("3.14159", 3.14),
])
def test_round_money_is_half_up(value, expected):
    assert round_money(value) == expected


def test_safe_divide():
    assert safe_divide(1, 4) == 0.25
    assert safe_divide(5, 0) == 0.0
    assert safe_divide(5, 0, default=-1) == -1


def test_format_currency():
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(9.99, "GBP") == "£9.99"
    assert format_currency(9.99, "JPY") == "9.99 JPY"


# ---------------------------------------------------------------------------
# Dates and URLs
# ---------------------------------------------------------------------------

def test_analysis_window_is_utc_aware():
    start, end = analysis_window(30, now=datetime(2026, 6, 30, 12, 0))
    assert end == pytz.UTC.localize(datetime(2026, 6, 30, 12, 0))
    assert end - start == timedelta(days=30)


def test_analysis_window_defaults_to_now():
    start, end = analysis_window(1)
    assert end.tzinfo is not None
    assert end - start == timedelta(days=1)


def test_relative_sqlite_paths_become_absolute():
    resolved = resolve_database_url("sqlite:///./maldify.db")
    assert resolved.startswith("sqlite:////")
    assert resolved.endswith("/maldify.db")
    assert resolve_database_url("sqlite:///:memory:") == "sqlite:///:memory:"
    assert resolve_database_url("postgresql://u@h/db") == "postgresql://u@h/db"


# ---------------------------------------------------------------------------
# Response cache
# ---------------------------------------------------------------------------

class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_cache_expires_entries():
    clock = _Clock()
    cache = ResponseCache(clock=clock)
    cache.set("analytics:roi:30", {"roi": 1}, ttl=60)

    assert cache.get("analytics:roi:30") == {"roi": 1}
    clock.now += 60
    assert cache.get("analytics:roi:30") is None


def test_cache_skips_non_positive_ttl():
    cache = ResponseCache()
    cache.set("k", 1, ttl=0)
    assert cache.get("k") is None


def test_cache_evicts_soonest_expiring_when_full():
    cache = ResponseCache(max_entries=2, clock=_Clock())
    cache.set("a", 1, ttl=10)
    cache.set("b", 2, ttl=100)
    cache.set("c", 3, ttl=100)
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert len(cache) == 2


def test_cache_invalidate_by_prefix():
    cache = ResponseCache()
    cache.set("analytics:roi:30", 1, ttl=60)
    cache.set("analytics:roi:7", 2, ttl=60)
    cache.set("analytics:churn_risk:30", 3, ttl=60)
    assert cache.invalidate("analytics:roi:") == 2
    assert cache.get("analytics:churn_risk:30") == 3


def test_get_or_compute_computes_once():
    cache = ResponseCache()
    calls = []

    async def compute():
        calls.append(1)
        return {"ok": True}

    assert run(cache.get_or_compute("k", compute, ttl=60)) == {"ok": True}
    assert run(cache.get_or_compute("k", compute, ttl=60)) == {"ok": True}
    assert len(calls) == 1


def test_get_or_compute_does_not_cache_errors():
    cache = ResponseCache()

    async def failing():
        raise RuntimeError("Shopify down")

    with pytest.raises(RuntimeError):
        run(cache.get_or_compute("k", failing, ttl=60))
    assert cache.get("k") is None
