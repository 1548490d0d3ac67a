"""
Review query service.

Filters stored reviews for the dashboard and reports the risk level
distribution over the same filter.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from reputation_monitor.core.config import settings
from reputation_monitor.models.review import Review, RiskLevel
from reputation_monitor.services.reputation import RECENT_WINDOW_DAYS
from reputation_monitor.utils.dates import utc_now

logger = logging.getLogger(__name__)


class InvalidFilterError(ValueError):
    """A filter parameter from the client is invalid. Nothing was queried."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ReviewFilter(BaseModel):
    """
    Validated review filter criteria.

    needs_attention selects HIGH_RISK reviews from the last 30 days and
    replaces any risk_level. An exact rating replaces min/max.
    """
    business_id: Optional[str] = None
    risk_level: Optional[RiskLevel] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    min_rating: Optional[int] = Field(None, ge=1, le=5)
    max_rating: Optional[int] = Field(None, ge=1, le=5)
    limit: int = Field(default_factory=lambda: settings.DEFAULT_REVIEW_LIMIT, ge=1)
    needs_attention: bool = False

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _apply_precedence(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("needs_attention") in (True, "true", "True"):
            data["risk_level"] = None
        if data.get("rating") not in (None, ""):
            data["min_rating"] = None
            data["max_rating"] = None
        return data

    @model_validator(mode="after")
    def _check_range(self):
        if (
            self.min_rating is not None
            and self.max_rating is not None
            and self.min_rating > self.max_rating
        ):
            raise ValueError("minRating must not be greater than maxRating")
        return self

    @classmethod
    def from_params(
        cls,
        business_id: Optional[str] = None,
        risk_level: Optional[str] = None,
        rating: Optional[str] = None,
        min_rating: Optional[str] = None,
        max_rating: Optional[str] = None,
        limit: Optional[str] = None,
        needs_attention: Optional[str] = None,
    ) -> "ReviewFilter":
        """
        Build criteria from raw query-string values.

        Empty strings are treated as absent.

        Raises:
            InvalidFilterError: If any parameter is invalid.
        """
        def _blank(value):
            return value is None or (isinstance(value, str) and not value.strip())

        attention = not _blank(needs_attention) and str(needs_attention).strip().lower() == "true"

        if not attention and not _blank(risk_level) and risk_level not in RiskLevel.__members__:
            raise InvalidFilterError(
                "Invalid risk level. Must be HIGH_RISK, MEDIUM_RISK, or LOW_RISK",
                field="riskLevel",
            )

        raw = {
            "business_id": None if _blank(business_id) else business_id,
            "risk_level": None if _blank(risk_level) else risk_level,
            "rating": None if _blank(rating) else rating,
            "min_rating": None if _blank(min_rating) else min_rating,
            "max_rating": None if _blank(max_rating) else max_rating,
            "needs_attention": attention,
        }
        if not _blank(limit):
            raw["limit"] = limit

        try:
            return cls(**raw)
        except ValidationError as e:
            raise _to_filter_error(e) from e


_FIELD_MESSAGES = {
    "rating": ("rating", "Rating must be between 1 and 5"),
    "min_rating": ("minRating", "minRating must be between 1 and 5"),
    "max_rating": ("maxRating", "maxRating must be between 1 and 5"),
    "limit": ("limit", "limit must be a positive integer"),
    "risk_level": ("riskLevel", "Invalid risk level. Must be HIGH_RISK, MEDIUM_RISK, or LOW_RISK"),
}


def _to_filter_error(error: ValidationError) -> InvalidFilterError:
    first = error.errors()[0]
    loc = first.get("loc") or ()
    if loc and loc[0] in _FIELD_MESSAGES:
        field, message = _FIELD_MESSAGES[loc[0]]
        return InvalidFilterError(message, field=field)
    message = str(first.get("msg", "Invalid filter"))
    return InvalidFilterError(message.removeprefix("Value error, "))


@dataclass
class ReviewQueryResult:
    """Filtered reviews plus the risk distribution over the whole filter."""
    reviews: List[Review]
    distribution: Dict[str, int]

    @property
    def count(self) -> int:
        return len(self.reviews)


def _filter_conditions(criteria: ReviewFilter, now: datetime) -> list:
    conditions = []

    if criteria.business_id:
        conditions.append(Review.business_id == criteria.business_id)

    if criteria.needs_attention:
        thirty_days_ago = now - timedelta(days=RECENT_WINDOW_DAYS)
        conditions.append(Review.risk_level == RiskLevel.HIGH_RISK)
        conditions.append(Review.date >= thirty_days_ago)
    elif criteria.risk_level is not None:
        conditions.append(Review.risk_level == criteria.risk_level)

    if criteria.rating is not None:
        conditions.append(Review.rating == criteria.rating)
    else:
        if criteria.min_rating is not None:
            conditions.append(Review.rating >= criteria.min_rating)
        if criteria.max_rating is not None:
            conditions.append(Review.rating <= criteria.max_rating)

    return conditions


def risk_distribution(db: Session, conditions: list) -> Dict[str, int]:
    """Count reviews per risk level; every level is present, zero if none."""
    rows = (
        db.query(Review.risk_level, func.count(Review.id))
        .filter(*conditions)
        .group_by(Review.risk_level)
        .all()
    )
    distribution = {level.value: 0 for level in RiskLevel}
    for level, count in rows:
        distribution[RiskLevel(level).value] = count
    return distribution


def query_reviews(
    db: Session,
    criteria: ReviewFilter,
    now: Optional[datetime] = None,
) -> ReviewQueryResult:
    """
    Fetch reviews matching the criteria, newest first, with their business.

    An empty result is valid; storage errors propagate to the caller.
    """
    conditions = _filter_conditions(criteria, utc_now(now))

    reviews = (
        db.query(Review)
        .options(joinedload(Review.business))
        .filter(*conditions)
        .order_by(Review.date.desc(), Review.id)
        .limit(criteria.limit)
        .all()
    )

    result = ReviewQueryResult(reviews=reviews, distribution=risk_distribution(db, conditions))
    logger.debug(f"Review query {criteria.model_dump(exclude_none=True)} returned {result.count} rows")
    return result
