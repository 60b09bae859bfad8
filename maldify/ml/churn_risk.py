"""
Product Return-Risk Scoring

Aggregates per-product sales against refunds and scores each product:

    return_rate       = refunded units / sold units * 100
    revenue_loss_rate = refunded amount / sales revenue * 100
    risk_score        = return_rate * 0.7 + revenue_loss_rate * 0.3

HIGH above 20, MEDIUM above 10, LOW otherwise. Deterministic, no I/O.
"""
from typing import Dict, Iterable, List, Optional, Tuple

from maldify.ml.records import parse_orders, parse_refunds
from maldify.models.commerce import (
    Order,
    ProductRefundAggregate,
    ProductSalesAggregate,
    Refund,
    RiskRecord,
    RiskReport,
    RiskSummary,
)
from maldify.utils.helpers import round_money, safe_divide
from maldify.utils.logger import log

RETURN_RATE_WEIGHT = 0.7
REVENUE_LOSS_WEIGHT = 0.3

HIGH_RISK_THRESHOLD = 20
MEDIUM_RISK_THRESHOLD = 10

DEFAULT_TOP_N = 5


def classify_risk(risk_score: float) -> str:
    """Map a risk score to HIGH / MEDIUM / LOW"""
    if risk_score > HIGH_RISK_THRESHOLD:
        return "HIGH"
    if risk_score > MEDIUM_RISK_THRESHOLD:
        return "MEDIUM"
    return "LOW"


def _record_key(record_id: Optional[str], position: int) -> Tuple[str, object]:
    # Records without a platform id are still distinct from each other
    return ("id", record_id) if record_id is not None else ("pos", position)


def aggregate_sales(
    orders: Iterable[Order],
    dedupe_orders: bool = True
) -> Dict[str, ProductSalesAggregate]:
    """
    Fold order line items into per-product sales aggregates.

    With dedupe_orders, orders_count counts each order once per product even
    when the order holds several lines for it. Without it, every line item
    counts (legacy behaviour).
    """
    sales: Dict[str, ProductSalesAggregate] = {}
    seen = set()

    for position, order in enumerate(orders):
        order_key = _record_key(order.order_id, position)
        for item in order.line_items:
            agg = sales.get(item.product_id)
            if agg is None:
                agg = ProductSalesAggregate(product_id=item.product_id, title=item.title)
                sales[item.product_id] = agg
            elif not agg.title and item.title:
                agg.title = item.title

            agg.total_quantity += item.quantity
            agg.total_revenue += item.quantity * item.unit_price

            if dedupe_orders:
                if (order_key, item.product_id) in seen:
                    continue
                seen.add((order_key, item.product_id))
            agg.orders_count += 1

    return sales


def aggregate_refunds(
    refunds: Iterable[Refund],
    dedupe_orders: bool = True
) -> Dict[str, ProductRefundAggregate]:
    """Fold refund line items into per-product refund aggregates"""
    refunded: Dict[str, ProductRefundAggregate] = {}
    seen = set()

    for position, refund in enumerate(refunds):
        refund_key = _record_key(refund.refund_id, position)
        for item in refund.line_items:
            agg = refunded.get(item.product_id)
            if agg is None:
                agg = ProductRefundAggregate(product_id=item.product_id)
                refunded[item.product_id] = agg

            agg.total_quantity += item.quantity
            agg.total_amount += item.quantity * item.unit_price

            if dedupe_orders:
                if (refund_key, item.product_id) in seen:
                    continue
                seen.add((refund_key, item.product_id))
            agg.refunds_count += 1

    return refunded


def score_product(
    sales: ProductSalesAggregate,
    refunds: Optional[ProductRefundAggregate] = None
) -> RiskRecord:
    """Build the RiskRecord for one product"""
    refunds = refunds or ProductRefundAggregate(product_id=sales.product_id)

    return_rate = safe_divide(refunds.total_quantity, sales.total_quantity) * 100
    revenue_loss_rate = safe_divide(refunds.total_amount, sales.total_revenue) * 100
    risk_score = round_money(
        return_rate * RETURN_RATE_WEIGHT + revenue_loss_rate * REVENUE_LOSS_WEIGHT
    )

    return RiskRecord(
        product_id=sales.product_id,
        title=sales.title,
        total_sales=sales.total_quantity,
        total_revenue=round_money(sales.total_revenue),
        total_refunds=refunds.total_quantity,
        refund_amount=round_money(refunds.total_amount),
        return_rate=round_money(return_rate),
        revenue_loss_rate=round_money(revenue_loss_rate),
        risk_score=risk_score,
        risk_level=classify_risk(risk_score),
        orders_count=sales.orders_count,
        refunds_count=refunds.refunds_count,
    )


def summarize(records: List[RiskRecord]) -> RiskSummary:
    """Risk-level counts and mean return rate across all scored products"""
    if not records:
        return RiskSummary()

    levels = [r.risk_level for r in records]
    return RiskSummary(
        total_products_analyzed=len(records),
        high_risk_products=levels.count("HIGH"),
        medium_risk_products=levels.count("MEDIUM"),
        low_risk_products=levels.count("LOW"),
        overall_return_rate=round_money(sum(r.return_rate for r in records) / len(records)),
    )


def compute_risk(
    orders: Iterable[Order],
    refunds: Iterable[Refund],
    top_n: int = DEFAULT_TOP_N,
    dedupe_orders: bool = True,
    skipped_line_items: int = 0
) -> RiskReport:
    """
    Score every sold product and return the riskiest ones.

    Args:
        orders: Parsed orders in the analysis window
        refunds: Parsed refunds in the same window
        top_n: How many records to return (summary always covers all)
        dedupe_orders: Count each order once per product in orders_count
        skipped_line_items: Malformed inputs already dropped upstream

    Returns:
        RiskReport sorted by risk_score descending, ties by product_id
    """
    sales = aggregate_sales(orders, dedupe_orders=dedupe_orders)
    refunded = aggregate_refunds(refunds, dedupe_orders=dedupe_orders)

    # Refund-only products have no sales baseline and are not scored
    records = [score_product(agg, refunded.get(pid)) for pid, agg in sales.items()]
    records.sort(key=lambda r: (-r.risk_score, r.product_id))

    summary = summarize(records)

    log.info(
        f"Risk analysis: {summary.total_products_analyzed} products, "
        f"{summary.high_risk_products} high / {summary.medium_risk_products} medium / "
        f"{summary.low_risk_products} low, overall return rate {summary.overall_return_rate}%"
    )

    return RiskReport(
        records=records[:max(top_n, 0)],
        summary=summary,
        skipped_line_items=skipped_line_items,
    )


def compute_risk_from_raw(
    raw_orders: Iterable[Dict],
    raw_refunds: Iterable[Dict],
    top_n: int = DEFAULT_TOP_N,
    dedupe_orders: bool = True
) -> RiskReport:
    """Parse platform dicts (skipping malformed entries) and score them"""
    parsed_orders = parse_orders(raw_orders)
    parsed_refunds = parse_refunds(raw_refunds)
    skipped = parsed_orders.skipped + parsed_refunds.skipped

    if skipped:
        log.warning(f"Risk analysis skipped {skipped} malformed order/refund entries")

    return compute_risk(
        parsed_orders.records,
        parsed_refunds.records,
        top_n=top_n,
        dedupe_orders=dedupe_orders,
        skipped_line_items=skipped,
    )
