"""
Review risk classification.

A review's risk level depends only on its star rating:
    1-2 stars -> HIGH_RISK
    3 stars   -> MEDIUM_RISK
    4-5 stars -> LOW_RISK
"""

from datetime import datetime

from reputation_monitor.models.review import Review, RiskLevel

LOW_RATING_MAX = 2
MIN_RATING = 1
MAX_RATING = 5


def is_low_rating(rating: int) -> bool:
    """1-2 star ratings count as low ratings for status and spike detection."""
    return rating <= LOW_RATING_MAX


def classify_risk(rating: int) -> RiskLevel:
    """Map a star rating to its risk level."""
    if rating <= LOW_RATING_MAX:
        return RiskLevel.HIGH_RISK
    if rating == 3:
        return RiskLevel.MEDIUM_RISK
    return RiskLevel.LOW_RISK


def build_review(
    review_id: str,
    business_id: str,
    rating: int,
    text: str,
    date: datetime,
) -> Review:
    """
    Create a Review row with its risk level derived from the rating.

    Raises:
        ValueError: If rating is not an integer in 1..5.
    """
    if isinstance(rating, bool) or not isinstance(rating, int) or not (MIN_RATING <= rating <= MAX_RATING):
        raise ValueError(f"Invalid rating: {rating!r}. Must be an integer 1-5")

    return Review(
        id=review_id,
        business_id=business_id,
        rating=rating,
        text=text or "",
        date=date,
        risk_level=classify_risk(rating),
    )
