"""
Business API routes.

Lists imported businesses with reputation metrics computed at request time.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from reputation_monitor.core.database import get_db
from reputation_monitor.services.business_query import (
    BusinessWithMetrics,
    get_business_with_metrics,
    list_businesses_with_metrics,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/businesses", tags=["businesses"])


# --- Response Models ---

class BusinessResponse(BaseModel):
    id: str
    name: str
    city: str
    state: str
    categories: list[str]
    stars: Optional[float]
    review_count: int
    stored_review_count: int
    reputation_status: str
    has_low_rating_spike: bool
    recent_low_rating_count: int


class BusinessDetailResponse(BusinessResponse):
    previous_low_rating_count: int
    low_rating_count_30d: int
    recent_avg_rating: Optional[float]
    lifetime_avg_rating: float


class BusinessListResponse(BaseModel):
    success: bool = True
    count: int
    businesses: list[BusinessResponse]


def _to_response(item: BusinessWithMetrics, detail: bool = False) -> BusinessResponse:
    business = item.business
    metrics = item.metrics
    fields = dict(
        id=business.id,
        name=business.name,
        city=business.city,
        state=business.state,
        categories=business.categories or [],
        stars=float(business.stars) if business.stars is not None else None,
        review_count=business.review_count,
        stored_review_count=item.stored_review_count,
        reputation_status=metrics.status.value,
        has_low_rating_spike=metrics.has_low_rating_spike,
        recent_low_rating_count=metrics.recent_low_rating_count,
    )
    if not detail:
        return BusinessResponse(**fields)
    return BusinessDetailResponse(
        **fields,
        previous_low_rating_count=metrics.previous_low_rating_count,
        low_rating_count_30d=metrics.low_rating_count_30d,
        recent_avg_rating=metrics.recent_avg_rating,
        lifetime_avg_rating=metrics.lifetime_avg_rating,
    )


# --- Endpoints ---

@router.get("/", response_model=BusinessListResponse)
def list_businesses(db: Session = Depends(get_db)):
    """All businesses, most reviewed first, with reputation metrics."""
    try:
        items = list_businesses_with_metrics(db)
    except Exception as e:
        logger.error(f"Error fetching businesses: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to fetch businesses: {str(e)}")

    return BusinessListResponse(
        count=len(items),
        businesses=[_to_response(item) for item in items],
    )


@router.get("/{business_id}", response_model=BusinessDetailResponse)
def get_business(business_id: str, db: Session = Depends(get_db)):
    """A single business with the full set of reputation metrics."""
    try:
        item = get_business_with_metrics(db, business_id)
    except Exception as e:
        logger.error(f"Error fetching business {business_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to fetch business: {str(e)}")

    if item is None:
        raise HTTPException(status_code=404, detail=f"Business not found: {business_id}")
    return _to_response(item, detail=True)
