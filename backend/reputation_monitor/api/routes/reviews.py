"""
Review API routes.

Filterable review listing for the dashboard, with a risk level distribution
over the same filter.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from reputation_monitor.core.database import get_db
from reputation_monitor.models.review import Review
from reputation_monitor.services.review_query import (
    InvalidFilterError,
    ReviewFilter,
    query_reviews,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


# --- Response Models ---

class ReviewBusiness(BaseModel):
    id: str
    name: str
    city: str
    state: str


class ReviewResponse(BaseModel):
    id: str
    business_id: str
    rating: int
    text: str
    date: datetime
    risk_level: str
    business: ReviewBusiness


class ReviewListResponse(BaseModel):
    success: bool = True
    count: int
    reviews: list[ReviewResponse]
    distribution: dict[str, int]


def _row_to_response(row: Review) -> ReviewResponse:
    """Convert a DB row to a response model."""
    return ReviewResponse(
        id=row.id,
        business_id=row.business_id,
        rating=row.rating,
        text=row.text,
        date=row.date,
        risk_level=row.risk_level.value,
        business=ReviewBusiness(
            id=row.business.id,
            name=row.business.name,
            city=row.business.city,
            state=row.business.state,
        ),
    )


# --- Endpoints ---

@router.get("/", response_model=ReviewListResponse)
def list_reviews(
    business_id: Optional[str] = Query(None, alias="businessId", description="Filter by business ID"),
    risk_level: Optional[str] = Query(None, alias="riskLevel", description="HIGH_RISK, MEDIUM_RISK or LOW_RISK"),
    rating: Optional[str] = Query(None, description="Exact rating (1-5)"),
    min_rating: Optional[str] = Query(None, alias="minRating", description="Minimum rating (1-5)"),
    max_rating: Optional[str] = Query(None, alias="maxRating", description="Maximum rating (1-5)"),
    limit: Optional[str] = Query(None, description="Maximum reviews to return (default DEFAULT_REVIEW_LIMIT setting)"),
    needs_attention: Optional[str] = Query(
        None,
        alias="needsAttention",
        description="'true' for HIGH_RISK reviews from the last 30 days; overrides riskLevel",
    ),
    db: Session = Depends(get_db),
):
    """List reviews with optional filters, newest first."""
    try:
        criteria = ReviewFilter.from_params(
            business_id=business_id,
            risk_level=risk_level,
            rating=rating,
            min_rating=min_rating,
            max_rating=max_rating,
            limit=limit,
            needs_attention=needs_attention,
        )
    except InvalidFilterError as e:
        raise HTTPException(status_code=400, detail=e.message)

    try:
        result = query_reviews(db, criteria)
    except Exception as e:
        logger.error(f"Error fetching reviews: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to fetch reviews: {str(e)}")

    return ReviewListResponse(
        count=result.count,
        reviews=[_row_to_response(r) for r in result.reviews],
        distribution=result.distribution,
    )
