"""
Commerce domain records

Plain dataclasses for the decision core. Line items are frozen snapshots of
what the platform returned; aggregates are folded per request and never
persisted.
"""
from dataclasses import dataclass, field, asdict
from typing import List, Optional


@dataclass(frozen=True)
class OrderLineItem:
    product_id: str
    quantity: int
    unit_price: float
    title: str = ""


@dataclass(frozen=True)
class Order:
    order_id: Optional[str]
    line_items: List[OrderLineItem] = field(default_factory=list)
    total_price: Optional[float] = None


@dataclass(frozen=True)
class RefundLineItem:
    product_id: str
    quantity: int
    unit_price: float


@dataclass(frozen=True)
class Refund:
    refund_id: Optional[str]
    line_items: List[RefundLineItem] = field(default_factory=list)


@dataclass
class ProductSalesAggregate:
    product_id: str
    title: str = ""
    total_quantity: int = 0
    total_revenue: float = 0.0
    orders_count: int = 0


@dataclass
class ProductRefundAggregate:
    product_id: str
    total_quantity: int = 0
    total_amount: float = 0.0
    refunds_count: int = 0


@dataclass(frozen=True)
class RiskRecord:
    product_id: str
    title: str
    total_sales: int
    total_revenue: float
    total_refunds: int
    refund_amount: float
    return_rate: float
    revenue_loss_rate: float
    risk_score: float
    risk_level: str
    orders_count: int = 0
    refunds_count: int = 0

    def to_dict(self) -> dict:
        """Wire shape used by the dashboard (title is exposed as product_title)"""
        return {
            "product_id": self.product_id,
            "product_title": self.title,
            "total_sales": self.total_sales,
            "total_revenue": self.total_revenue,
            "total_refunds": self.total_refunds,
            "refund_amount": self.refund_amount,
            "return_rate": self.return_rate,
            "revenue_loss_rate": self.revenue_loss_rate,
            "risk_score": self.risk_score,
            "orders_count": self.orders_count,
            "refunds_count": self.refunds_count,
            "risk_level": self.risk_level,
        }


@dataclass(frozen=True)
class RiskSummary:
    total_products_analyzed: int = 0
    high_risk_products: int = 0
    medium_risk_products: int = 0
    low_risk_products: int = 0
    overall_return_rate: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RiskReport:
    records: List[RiskRecord]
    summary: RiskSummary
    skipped_line_items: int = 0

    def to_dict(self) -> dict:
        return {
            "summary": self.summary.to_dict(),
            "top_risky_products": [r.to_dict() for r in self.records],
            "skipped_line_items": self.skipped_line_items,
        }


@dataclass(frozen=True)
class OfferProduct:
    product_id: str
    base_price: float


@dataclass(frozen=True)
class CartOffer:
    offer_product_id: str
    offer_price: float
    discount_percent: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Recommendation:
    product_id: str
    message: str
    confidence: float
    category: str
    original_product_id: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)
