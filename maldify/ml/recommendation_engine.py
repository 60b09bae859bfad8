"""
Recommendation Engine
Maps the products in a shopper's cart to checkout upsell suggestions
"""
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from maldify.models.commerce import Recommendation
from maldify.utils.logger import log


# Shopify storefront ids arrive as GIDs ("gid://shopify/Product/111222333");
# the rule table is keyed by the numeric id.
_GID_PREFIX = "gid://shopify/"

# cart product id -> suggestion
RECOMMENDATION_RULES: Dict[str, Dict] = {
    "111222333": {
        "product_id": "101112131",
        "message": "Keep your new headphones charged on the go with a spare charging cable.",
        "confidence": 0.92,
        "category": "accessory",
    },
    "444555666": {
        "product_id": "777888999",
        "message": "Complete the protection for your phone with a tempered-glass screen protector.",
        "confidence": 0.88,
        "category": "protection",
    },
    "777888999": {
        "product_id": "444555666",
        "message": "Pair your screen protector with a matching phone case.",
        "confidence": 0.85,
        "category": "protection",
    },
    "101112131": {
        "product_id": "141516171",
        "message": "Customers who buy charging cables often add a Bluetooth speaker.",
        "confidence": 0.80,
        "category": "audio",
    },
    "141516171": {
        "product_id": "101112131",
        "message": "Never run out of music: add a charging cable for your speaker.",
        "confidence": 0.82,
        "category": "accessory",
    },
    "181920212": {
        "product_id": "111222333",
        "message": "Upgrade your desk setup with premium wireless headphones.",
        "confidence": 0.78,
        "category": "upgrade",
    },
}

WARRANTY_FALLBACK = {
    "product_id": "999000111",
    "message": "Protect your purchase with an extended warranty.",
    "confidence": 0.75,
    "category": "warranty",
}

GENERAL_FALLBACK = {
    "product_id": "111222333",
    "message": "Treat yourself to our best-selling premium accessory.",
    "confidence": 0.60,
    "category": "general",
}


def normalize_product_id(product_id) -> str:
    """Strip a Shopify GID down to its numeric id"""
    value = str(product_id).strip()
    if value.startswith(_GID_PREFIX):
        return value.rsplit("/", 1)[-1]
    return value


class Recommender(ABC):
    """
    A source of checkout upsell suggestions.

    Implementations must return exactly one Recommendation per input id in
    input order, or a single general fallback for an empty cart.
    """

    @abstractmethod
    def recommend(self, product_ids: Iterable) -> List[Recommendation]:
        pass


class RuleBasedRecommender(Recommender):
    """
    Static lookup-table recommender.

    Stands in for a trained model: swap in another Recommender without
    touching callers.
    """

    def __init__(
        self,
        rules: Optional[Dict[str, Dict]] = None,
        warranty_fallback: Optional[Dict] = None,
        general_fallback: Optional[Dict] = None
    ):
        self.rules = RECOMMENDATION_RULES if rules is None else rules
        self.warranty_fallback = warranty_fallback or WARRANTY_FALLBACK
        self.general_fallback = general_fallback or GENERAL_FALLBACK

    def recommend(self, product_ids: Iterable) -> List[Recommendation]:
        ids = list(product_ids or [])

        if not ids:
            return [Recommendation(original_product_id=None, **self.general_fallback)]

        recommendations = []
        matched = 0
        for product_id in ids:
            rule = self.rules.get(normalize_product_id(product_id))
            if rule is not None:
                matched += 1
            else:
                rule = self.warranty_fallback
            recommendations.append(Recommendation(original_product_id=product_id, **rule))

        log.debug(f"Generated {len(recommendations)} recommendations ({matched} rule matches)")
        return recommendations


_default_recommender = RuleBasedRecommender()


def recommend(product_ids: Iterable, recommender: Optional[Recommender] = None) -> List[Recommendation]:
    """Map cart product ids to recommendations using the given (or default) recommender"""
    return (recommender or _default_recommender).recommend(product_ids)
