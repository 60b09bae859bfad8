"""
Subscription status and offer usage collaborators

The offer endpoint asks two questions before serving an upsell: is this shop
on the Pro plan, and how many offers has it served this month? Both are
injected so the request layer never owns billing or counter state.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from maldify.config import get_settings
from maldify.models.usage import OfferUsage
from maldify.utils.logger import log


@dataclass(frozen=True)
class SubscriptionStatus:
    is_pro_plan: bool
    plan_name: str


def current_period(now: Optional[datetime] = None) -> str:
    """Usage bucket key (YYYY-MM)"""
    return (now or datetime.utcnow()).strftime("%Y-%m")


class SubscriptionStatusProvider(ABC):
    """Answers whether the shop currently pays for the Pro plan"""

    @abstractmethod
    async def get_status(self) -> SubscriptionStatus:
        pass


class ShopifySubscriptionStatusProvider(SubscriptionStatusProvider):
    """Pro if Shopify reports an active recurring application charge"""

    def __init__(self, connector, settings=None):
        self.connector = connector
        self.settings = settings or get_settings()

    async def get_status(self) -> SubscriptionStatus:
        active = await self.connector.list_active_charges()
        if active:
            return SubscriptionStatus(
                is_pro_plan=True,
                plan_name=active[0].get("name") or self.settings.pro_plan_name,
            )
        return SubscriptionStatus(is_pro_plan=False, plan_name=self.settings.free_plan_name)


class StaticSubscriptionStatusProvider(SubscriptionStatusProvider):
    """Fixed answer, for development shops and tests"""

    def __init__(self, is_pro_plan: bool = False, settings=None):
        settings = settings or get_settings()
        self.status = SubscriptionStatus(
            is_pro_plan=is_pro_plan,
            plan_name=settings.pro_plan_name if is_pro_plan else settings.free_plan_name,
        )

    async def get_status(self) -> SubscriptionStatus:
        return self.status


class UsageCounter(ABC):
    """Monthly count of offers served per shop"""

    @abstractmethod
    def current_usage(self, shop: str, now: Optional[datetime] = None) -> int:
        pass

    @abstractmethod
    def try_consume(self, shop: str, limit: Optional[int] = None, now: Optional[datetime] = None) -> Optional[int]:
        """
        Record one served offer unless the shop is already at `limit`.

        Returns:
            The new count, or None when the limit was already reached
        """
        pass

    def increment(self, shop: str, now: Optional[datetime] = None) -> int:
        """Record one served offer with no limit and return the new count"""
        return self.try_consume(shop, None, now)


class SqlUsageCounter(UsageCounter):
    """
    UsageCounter backed by the offer_usage table.

    The limit check and the increment are a single conditional UPDATE, so
    concurrent requests can neither lose counts nor overshoot the limit.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def current_usage(self, shop: str, now: Optional[datetime] = None) -> int:
        db = self.session_factory()
        try:
            row = db.query(OfferUsage).filter(
                OfferUsage.shop == shop,
                OfferUsage.period == current_period(now)
            ).first()
            return row.count if row else 0
        finally:
            db.close()

    def _ensure_row(self, db: Session, shop: str, period: str):
        exists = db.query(OfferUsage.id).filter(
            OfferUsage.shop == shop,
            OfferUsage.period == period
        ).first()
        if exists:
            return
        try:
            db.add(OfferUsage(shop=shop, period=period, count=0))
            db.commit()
        except IntegrityError:
            # Another request created this month's row first
            db.rollback()

    def try_consume(self, shop: str, limit: Optional[int] = None, now: Optional[datetime] = None) -> Optional[int]:
        period = current_period(now)
        db = self.session_factory()
        try:
            self._ensure_row(db, shop, period)

            stmt = update(OfferUsage).where(
                OfferUsage.shop == shop,
                OfferUsage.period == period
            )
            if limit is not None:
                stmt = stmt.where(OfferUsage.count < limit)
            stmt = stmt.values(count=OfferUsage.count + 1, updated_at=datetime.utcnow())
            result = db.execute(stmt.execution_options(synchronize_session=False))

            if result.rowcount == 0:
                db.rollback()
                log.warning(f"Usage limit {limit} already reached for shop {shop} in {period}")
                return None

            # Read inside the same transaction, which still holds the row lock
            count = db.query(OfferUsage.count).filter(
                OfferUsage.shop == shop,
                OfferUsage.period == period
            ).scalar()
            db.commit()
            log.info(f"Usage counter incremented for shop {shop}: {count} offers in {period}")
            return count
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
