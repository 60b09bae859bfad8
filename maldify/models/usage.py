"""
Offer usage tracking

Counts upsell offers served per shop per calendar month, which is what the
free plan's monthly quota is measured against.
"""
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from datetime import datetime

from maldify.models.base import Base


class OfferUsage(Base):
    """Monthly offer counter for one shop"""
    __tablename__ = "offer_usage"
    __table_args__ = (
        UniqueConstraint("shop", "period", name="uq_offer_usage_shop_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    shop = Column(String, nullable=False, index=True)  # e.g. my-store.myshopify.com
    period = Column(String(7), nullable=False, index=True)  # YYYY-MM
    count = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
