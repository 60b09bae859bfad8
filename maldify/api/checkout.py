"""
Checkout Recommendation API
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import List, Union

from maldify.api.deps import get_recommender
from maldify.ml.recommendation_engine import Recommender

router = APIRouter(prefix="/api/checkout", tags=["checkout"])


class RecommendationRequest(BaseModel):
    product_ids: List[Union[str, int]] = Field(default_factory=list)


@router.post("/recommendation")
async def get_recommendations(
    request: RecommendationRequest,
    recommender: Recommender = Depends(get_recommender),
):
    """One suggestion per cart product, in cart order."""
    recommendations = recommender.recommend(request.product_ids)
    return {
        "success": True,
        "count": len(recommendations),
        "recommendations": [r.to_dict() for r in recommendations],
    }
