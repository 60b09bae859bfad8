"""Database and domain models for Maldify"""

from maldify.models.usage import OfferUsage

from maldify.models.commerce import (
    Order,
    OrderLineItem,
    Refund,
    RefundLineItem,
    ProductSalesAggregate,
    ProductRefundAggregate,
    RiskRecord,
    RiskSummary,
    RiskReport,
    OfferProduct,
    CartOffer,
    Recommendation
)
