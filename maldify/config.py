"""
Configuration management for Maldify
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Maldify Upsell"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_dir: str = "logs"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 3000

    # Database (offer usage counters only)
    database_url: str = "sqlite:///./maldify.db"

    # Shopify
    shopify_shop_url: str = ""
    shopify_access_token: str = ""
    shopify_api_version: str = "2024-10"
    shopify_app_url: Optional[str] = None
    shop_plan_id: Optional[str] = None
    shop_plan_name: str = "Maldify Pro Subscription"

    # Offer catalog (merchant-configured product mapping)
    premium_product_id: str = "111222333"
    premium_product_price: float = 99.99
    complementary_product_id: str = "444555666"
    complementary_product_price: float = 49.99
    offer_item_threshold: int = 2  # Carts above this get the premium offer
    premium_discount_percent: int = 50

    # Plans
    pro_plan_name: str = "Maldify Pro"
    pro_plan_price: float = 29.99
    free_plan_name: str = "Maldify Free"
    free_plan_monthly_limit: int = 50
    plan_currency: str = "USD"

    # Analytics
    analysis_days: int = 30
    risk_top_n: int = 5
    risk_dedupe_orders: bool = True
    analytics_cache_ttl: int = 300

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower().strip() in {"prod", "production"}

    @property
    def is_test_charge(self) -> bool:
        """Shopify charges are test charges everywhere except production"""
        return not self.is_production


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
