"""Maldify: post-purchase upsell and return-risk analytics for Shopify merchants"""

__version__ = "1.0.0"
