"""
Domain exceptions

API routers translate these into HTTP responses; the decision core only ever
raises InvalidInputError internally and recovers from it.
"""
from typing import List, Optional


class MaldifyError(Exception):
    """Base exception for the project."""


class InvalidInputError(MaldifyError):
    """Raised when an order or refund record is malformed or missing fields."""


class CartNotFoundError(MaldifyError):
    """Raised when the storefront cart cannot be found."""


class PlanLimitReachedError(MaldifyError):
    """Raised when a free-plan shop has used up its monthly offer quota."""

    def __init__(self, current_usage: int, limit: int):
        super().__init__("Free plan usage exhausted for this month.")
        self.current_usage = current_usage
        self.limit = limit


class BillingConfigurationError(MaldifyError):
    """Raised when required billing environment variables are missing."""

    def __init__(self, missing_variables: List[str]):
        super().__init__(
            "Billing plan not configured. Please set the following environment variables:"
        )
        self.missing_variables = missing_variables


class ShopifyApiError(MaldifyError):
    """Raised when a Shopify API call fails or returns an unusable payload."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code or "SHOPIFY_API_ERROR"
