"""
Shopify data connector
Fetches orders, refunds, carts and recurring charges from Shopify
"""
from typing import Any, Dict, List, Optional
from datetime import datetime
import json
import pytz
import shopify
from dateutil import parser as date_parser
from maldify.connectors.base_connector import BaseConnector
from maldify.config import get_settings
from maldify.exceptions import ShopifyApiError
from maldify.utils.logger import log
from maldify.utils.retry import call_with_retry

settings = get_settings()

CART_QUERY = """
query getCart($id: ID!) {
  cart(id: $id) {
    id
    lines(first: 100) {
      edges {
        node {
          id
          quantity
        }
      }
    }
  }
}
"""


class ShopifyConnector(BaseConnector):
    """Connector for the Shopify Admin API"""

    def __init__(
        self,
        shop_url: Optional[str] = None,
        access_token: Optional[str] = None,
        api_version: Optional[str] = None
    ):
        super().__init__("Shopify")
        self.shop_url = (shop_url or settings.shopify_shop_url).replace("https://", "").replace("http://", "")
        self.access_token = access_token or settings.shopify_access_token
        self.api_version = api_version or settings.shopify_api_version
        self.session = None

    async def connect(self) -> bool:
        """Establish connection to Shopify"""
        try:
            self.session = shopify.Session(self.shop_url, self.api_version, self.access_token)
            shopify.ShopifyResource.activate_session(self.session)
            log.info(f"Connected to Shopify: {self.shop_url}")
            return True
        except Exception as e:
            log.error(f"Failed to connect to Shopify: {str(e)}")
            return False

    async def validate_connection(self) -> bool:
        """Validate Shopify connection"""
        if not self.session:
            await self.connect()
        shop = shopify.Shop.current()
        return shop is not None

    async def _ensure_session(self):
        if not self.session and not await self.connect():
            raise ShopifyApiError("Unable to open a Shopify session", error_code="UNAUTHORIZED")

    def _to_utc_iso(self, dt: datetime) -> str:
        """ISO timestamp in UTC, as the Admin API expects"""
        if dt.tzinfo is None:
            dt = pytz.UTC.localize(dt)
        return dt.astimezone(pytz.UTC).isoformat()

    def _parse_datetime(self, val) -> Optional[datetime]:
        """Parse datetime from string or return datetime object as-is"""
        if val is None:
            return None
        if isinstance(val, datetime):
            parsed = val
        else:
            try:
                parsed = date_parser.parse(val)
            except (ValueError, OverflowError):
                return None
        if parsed.tzinfo is None:
            parsed = pytz.UTC.localize(parsed)
        return parsed

    async def fetch_data(self, start_date: datetime, end_date: datetime) -> Dict[str, Any]:
        """
        Fetch orders and refunds for the analysis window.

        Orders are those created in the window. Refunds come from orders
        updated in the window (so refunds on older orders are included) and
        are kept only if the refund itself was created in the window.
        """
        await self._ensure_session()

        log.info(f"Fetching Shopify orders/refunds from {self._to_utc_iso(start_date)} to {self._to_utc_iso(end_date)}")

        orders = await self._fetch_orders(start_date, end_date)
        refunds = await self._fetch_refunds(start_date, end_date)

        log.info(f"Shopify fetch complete: {len(orders)} orders, {len(refunds)} refunds")
        return {"orders": orders, "refunds": refunds}

    def _paginate(self, resource, **params) -> List:
        """Walk cursor pagination for a REST resource"""
        results = []
        page = resource.find(limit=250, **params)
        page_number = 1
        while page:
            log.debug(f"Fetched {resource.__name__} page {page_number}: {len(page)} records")
            results.extend(page)
            if page.has_next_page():
                page = page.next_page()
                page_number += 1
            else:
                break
        return results

    async def _fetch_orders(self, start_date: datetime, end_date: datetime) -> List[Dict]:
        """Fetch all orders created within the date range"""
        raw_orders = self._paginate(
            shopify.Order,
            status="any",
            created_at_min=self._to_utc_iso(start_date),
            created_at_max=self._to_utc_iso(end_date),
        )

        orders = []
        for order in raw_orders:
            data = order.to_dict()
            if data.get("cancelled_at") or data.get("financial_status") == "voided":
                continue
            orders.append({
                "id": data.get("id"),
                "created_at": data.get("created_at"),
                "total_price": data.get("total_price"),
                "line_items": self._extract_line_items(data.get("line_items") or []),
            })
        return orders

    def _extract_line_items(self, line_items: List[Dict]) -> List[Dict]:
        """Extract line item details from order"""
        return [
            {
                "product_id": item.get("product_id"),
                "quantity": item.get("quantity"),
                "price": item.get("price"),
                "title": item.get("title"),
            }
            for item in line_items
        ]

    async def _fetch_refunds(self, start_date: datetime, end_date: datetime) -> List[Dict]:
        """Fetch refunds created within the date range"""
        raw_orders = self._paginate(
            shopify.Order,
            status="any",
            updated_at_min=self._to_utc_iso(start_date),
            updated_at_max=self._to_utc_iso(end_date),
            fields="id,refunds",
        )

        start = self._parse_datetime(start_date)
        end = self._parse_datetime(end_date)

        refunds = []
        for order in raw_orders:
            data = order.to_dict()
            for refund in data.get("refunds") or []:
                created_at = self._parse_datetime(refund.get("created_at"))
                if created_at is None or not (start <= created_at <= end):
                    continue
                refunds.append({
                    "id": refund.get("id"),
                    "order_id": data.get("id"),
                    "created_at": refund.get("created_at"),
                    "refund_line_items": [
                        {
                            "product_id": (rli.get("line_item") or {}).get("product_id"),
                            "quantity": rli.get("quantity"),
                            "price": (rli.get("line_item") or {}).get("price"),
                        }
                        for rli in refund.get("refund_line_items") or []
                    ],
                })
        return refunds

    def _execute_graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        raw = shopify.GraphQL().execute(query, variables=variables)
        payload = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        if payload.get("errors"):
            # THROTTLED errors surface here and are retried by message
            raise ShopifyApiError(f"GraphQL query failed: {payload['errors']}")
        return payload

    async def get_cart_item_count(self, cart_id: str) -> Optional[int]:
        """
        Total quantity across a cart's lines.

        Returns:
            Sum of line quantities, or None if the cart does not exist
        """
        await self._ensure_session()

        payload = await call_with_retry(
            lambda: self._execute_graphql(CART_QUERY, {"id": cart_id}),
            self.retry_policy,
            f"{self.name} cart query",
        )

        cart = (payload.get("data") or {}).get("cart")
        if not cart:
            return None

        edges = (cart.get("lines") or {}).get("edges") or []
        return sum(int(edge["node"].get("quantity") or 0) for edge in edges)

    def _charge_to_dict(self, charge) -> Dict[str, Any]:
        data = charge.to_dict()
        return {
            "id": data.get("id"),
            "name": data.get("name"),
            "price": data.get("price"),
            "status": data.get("status"),
            "confirmation_url": data.get("confirmation_url"),
            "test": data.get("test"),
        }

    async def create_recurring_charge(
        self,
        name: str,
        price: str,
        return_url: str,
        test: bool = True
    ) -> Dict[str, Any]:
        """Create a recurring application charge awaiting merchant approval"""
        await self._ensure_session()

        charge = shopify.RecurringApplicationCharge.create({
            "name": name,
            "price": price,
            "return_url": return_url,
            "test": test,
        })
        if charge.errors and charge.errors.full_messages():
            raise ShopifyApiError("; ".join(charge.errors.full_messages()))

        log.info(f"Created recurring charge {charge.id} for {self.shop_url}")
        return self._charge_to_dict(charge)

    async def list_active_charges(self) -> List[Dict[str, Any]]:
        """Recurring charges currently in the active state"""
        await self._ensure_session()

        charges = shopify.RecurringApplicationCharge.find()
        active = [self._charge_to_dict(c) for c in charges or [] if getattr(c, "status", None) == "active"]
        log.info(f"Found {len(active)} active subscriptions for {self.shop_url}")
        return active

    async def activate_charge(self, charge_id: str) -> Dict[str, Any]:
        """Activate an accepted recurring charge"""
        await self._ensure_session()

        charge = shopify.RecurringApplicationCharge.find(charge_id)
        if charge is None:
            raise ShopifyApiError(f"Recurring charge {charge_id} not found")
        charge.activate()

        log.info(f"Activated recurring charge {charge_id} for {self.shop_url}")
        return self._charge_to_dict(charge)
