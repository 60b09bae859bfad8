"""Store platform connectors for Maldify"""

from maldify.connectors.base_connector import BaseConnector, SyncResult
from maldify.connectors.shopify_connector import ShopifyConnector

__all__ = [
    "BaseConnector",
    "SyncResult",
    "ShopifyConnector"
]
