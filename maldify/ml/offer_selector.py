"""
Upsell Offer Selector

Picks between the merchant's two configured offers based on cart size:
larger carts get the premium accessory at a discount, everything else gets
the complementary item at full price. The catalog (ids, prices) is
configuration; this module only owns the selection rule.
"""
from dataclasses import dataclass

from maldify.models.commerce import CartOffer, OfferProduct
from maldify.utils.helpers import round_money


@dataclass(frozen=True)
class OfferCatalog:
    """Merchant-configured product mapping for the upsell widget"""
    premium: OfferProduct
    complementary: OfferProduct
    item_threshold: int = 2
    discount_percent: int = 50

    def __post_init__(self):
        if self.premium.product_id == self.complementary.product_id:
            raise ValueError("Premium and Complementary products must be different")
        for product in (self.premium, self.complementary):
            if product.base_price <= 0:
                raise ValueError(f"Base price for product {product.product_id} must be positive")
        if not 0 < self.discount_percent <= 100:
            raise ValueError("discount_percent must be between 1 and 100")
        if self.item_threshold < 0:
            raise ValueError("item_threshold must be non-negative")

    @classmethod
    def from_settings(cls, settings) -> "OfferCatalog":
        return cls(
            premium=OfferProduct(
                product_id=str(settings.premium_product_id),
                base_price=settings.premium_product_price,
            ),
            complementary=OfferProduct(
                product_id=str(settings.complementary_product_id),
                base_price=settings.complementary_product_price,
            ),
            item_threshold=settings.offer_item_threshold,
            discount_percent=settings.premium_discount_percent,
        )


def select_offer(cart_item_count: int, catalog: OfferCatalog) -> CartOffer:
    """
    Choose the upsell offer for a cart.

    Args:
        cart_item_count: Sum of line-item quantities in the cart
        catalog: Merchant offer catalog

    Returns:
        CartOffer with the discounted premium product when the cart holds
        more than ``catalog.item_threshold`` items, otherwise the
        complementary product at full price (discount_percent None)
    """
    if isinstance(cart_item_count, bool) or not isinstance(cart_item_count, int):
        raise ValueError(f"cart_item_count must be an integer, got {cart_item_count!r}")
    if cart_item_count < 0:
        raise ValueError(f"cart_item_count must be non-negative, got {cart_item_count}")

    if cart_item_count > catalog.item_threshold:
        factor = (100 - catalog.discount_percent) / 100
        return CartOffer(
            offer_product_id=catalog.premium.product_id,
            offer_price=round_money(catalog.premium.base_price * factor),
            discount_percent=catalog.discount_percent,
        )

    return CartOffer(
        offer_product_id=catalog.complementary.product_id,
        offer_price=round_money(catalog.complementary.base_price),
        discount_percent=None,
    )
