"""
Order / refund record parsing

Turns the plain dicts returned by the Shopify connector into the frozen
records the risk engine folds over. A malformed line item is skipped and
counted; it never aborts the batch, because partial data should still
produce a risk report.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from maldify.exceptions import InvalidInputError
from maldify.models.commerce import Order, OrderLineItem, Refund, RefundLineItem
from maldify.utils.logger import log


@dataclass
class ParseResult:
    """Parsed records plus how many raw entries had to be dropped."""
    records: List[Any] = field(default_factory=list)
    skipped: int = 0


def _require_product_id(raw: Dict) -> str:
    product_id = raw.get("product_id")
    if product_id is None and isinstance(raw.get("line_item"), dict):
        # Shopify refund_line_items nest the original line under "line_item"
        product_id = raw["line_item"].get("product_id")
    if product_id is None or str(product_id).strip() == "":
        raise InvalidInputError("line item has no product_id")
    return str(product_id)


def _require_quantity(raw: Dict) -> int:
    value = raw.get("quantity")
    if value is None or isinstance(value, bool):
        raise InvalidInputError("line item has no quantity")
    try:
        quantity = int(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidInputError(f"quantity is not an integer: {value!r}") from e
    if quantity != float(value) or quantity < 0:
        raise InvalidInputError(f"quantity must be a non-negative integer: {value!r}")
    return quantity


def _require_price(raw: Dict) -> float:
    value = raw.get("price")
    if value is None and isinstance(raw.get("line_item"), dict):
        value = raw["line_item"].get("price")
    if value is None or isinstance(value, bool):
        raise InvalidInputError("line item has no price")
    try:
        price = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"price is not numeric: {value!r}") from e
    if not math.isfinite(price) or price < 0:
        raise InvalidInputError(f"price must be a finite non-negative number: {value!r}")
    return price


def _optional_id(raw: Dict) -> Optional[str]:
    value = raw.get("id")
    return str(value) if value is not None else None


def _line_items(raw: Any, key: str) -> Tuple[Optional[str], list]:
    if not isinstance(raw, dict):
        raise InvalidInputError(f"record is not a mapping: {type(raw).__name__}")
    items = raw.get(key, [])
    if items is None:
        items = []
    if not isinstance(items, (list, tuple)):
        raise InvalidInputError(f"{key} is not a list")
    return _optional_id(raw), list(items)


def parse_order_line_item(raw: Dict) -> OrderLineItem:
    """Build one OrderLineItem or raise InvalidInputError."""
    if not isinstance(raw, dict):
        raise InvalidInputError("line item is not a mapping")
    return OrderLineItem(
        product_id=_require_product_id(raw),
        quantity=_require_quantity(raw),
        unit_price=_require_price(raw),
        title=str(raw.get("title") or ""),
    )


def parse_refund_line_item(raw: Dict) -> RefundLineItem:
    """Build one RefundLineItem or raise InvalidInputError."""
    if not isinstance(raw, dict):
        raise InvalidInputError("refund line item is not a mapping")
    return RefundLineItem(
        product_id=_require_product_id(raw),
        quantity=_require_quantity(raw),
        unit_price=_require_price(raw),
    )


def parse_orders(raw_orders: Iterable[Any]) -> ParseResult:
    """Parse raw order dicts, skipping malformed orders and line items."""
    result = ParseResult()
    for raw in raw_orders or []:
        try:
            order_id, raw_items = _line_items(raw, "line_items")
        except InvalidInputError as e:
            log.warning(f"Skipping malformed order: {e}")
            result.skipped += 1
            continue

        items = []
        for raw_item in raw_items:
            try:
                items.append(parse_order_line_item(raw_item))
            except InvalidInputError as e:
                log.warning(f"Skipping line item in order {order_id}: {e}")
                result.skipped += 1

        total = raw.get("total_price")
        try:
            total_price = float(total) if total is not None else None
        except (TypeError, ValueError):
            total_price = None
        if total_price is not None and not math.isfinite(total_price):
            total_price = None

        result.records.append(Order(order_id=order_id, line_items=items, total_price=total_price))
    return result


def parse_refunds(raw_refunds: Iterable[Any]) -> ParseResult:
    """Parse raw refund dicts, skipping malformed refunds and line items."""
    result = ParseResult()
    for raw in raw_refunds or []:
        try:
            key = "refund_line_items" if isinstance(raw, dict) and "refund_line_items" in raw else "line_items"
            refund_id, raw_items = _line_items(raw, key)
        except InvalidInputError as e:
            log.warning(f"Skipping malformed refund: {e}")
            result.skipped += 1
            continue

        items = []
        for raw_item in raw_items:
            try:
                items.append(parse_refund_line_item(raw_item))
            except InvalidInputError as e:
                log.warning(f"Skipping line item in refund {refund_id}: {e}")
                result.skipped += 1

        result.records.append(Refund(refund_id=refund_id, line_items=items))
    return result
