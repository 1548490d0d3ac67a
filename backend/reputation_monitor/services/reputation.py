"""
Reputation Engine

Computes a business's reputation metrics from its stored reviews at query
time. Nothing here is persisted or cached.

Reputation status (first match wins):
- AT_RISK: >=3 low ratings (1-2 stars) in 30d OR 30d avg >=0.7 below lifetime avg
- WATCH: >=1 low rating in 30d OR 30d avg >=0.4 below lifetime avg
- HEALTHY: otherwise

Spike: low ratings in the last 7d doubled OR grew by >=2 versus the previous 7d.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from reputation_monitor.models.review import Review
from reputation_monitor.services.risk import is_low_rating
from reputation_monitor.utils.dates import utc_now, to_naive_utc

logger = logging.getLogger(__name__)

RECENT_WINDOW_DAYS = 30
SPIKE_WINDOW_DAYS = 7

AT_RISK_LOW_RATING_COUNT = 3
AT_RISK_RATING_DROP = 0.7
WATCH_LOW_RATING_COUNT = 1
WATCH_RATING_DROP = 0.4

SPIKE_MIN_INCREASE = 2
SPIKE_MULTIPLIER = 2


class ReputationStatus(str, Enum):
    """Time-windowed reputation of a business."""
    HEALTHY = "HEALTHY"
    WATCH = "WATCH"
    AT_RISK = "AT_RISK"


@dataclass(frozen=True)
class ReputationMetrics:
    """Reputation metrics for one business, computed fresh per query."""
    status: ReputationStatus
    has_low_rating_spike: bool
    recent_low_rating_count: int  # last 7 days
    previous_low_rating_count: int  # 7-14 days ago
    recent_avg_rating: Optional[float]  # last 30 days, None if no reviews in window
    lifetime_avg_rating: float  # 0 if no reviews at all
    low_rating_count_30d: int = 0
    total_reviews: int = 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data


def _mean(ratings: list) -> Optional[float]:
    if not ratings:
        return None
    return sum(ratings) / len(ratings)


def decide_status(low_rating_count_30d: int, rating_drop: float) -> ReputationStatus:
    """Apply the status thresholds in order; the first matching tier wins."""
    if low_rating_count_30d >= AT_RISK_LOW_RATING_COUNT or rating_drop >= AT_RISK_RATING_DROP:
        return ReputationStatus.AT_RISK
    if low_rating_count_30d >= WATCH_LOW_RATING_COUNT or rating_drop >= WATCH_RATING_DROP:
        return ReputationStatus.WATCH
    return ReputationStatus.HEALTHY


def detect_spike(recent_count: int, previous_count: int) -> bool:
    """
    Week-over-week low-rating spike.

    A previous count of 0 never satisfies the doubling rule, only the
    absolute increase rule.
    """
    doubled = previous_count > 0 and recent_count >= previous_count * SPIKE_MULTIPLIER
    increased = recent_count - previous_count >= SPIKE_MIN_INCREASE
    return doubled or increased


def compute_metrics(
    reviews: Iterable[Tuple[int, datetime]],
    now: datetime,
) -> ReputationMetrics:
    """
    Compute reputation metrics from (rating, date) pairs.

    Pure and deterministic: the same reviews and the same `now` always give
    the same result.

    Args:
        reviews: (rating, date) pairs for a single business
        now: Reference time for the rolling windows

    Returns:
        ReputationMetrics
    """
    now = to_naive_utc(now)
    pairs = [(rating, to_naive_utc(date)) for rating, date in reviews]

    thirty_days_ago = now - timedelta(days=RECENT_WINDOW_DAYS)
    seven_days_ago = now - timedelta(days=SPIKE_WINDOW_DAYS)
    fourteen_days_ago = now - timedelta(days=SPIKE_WINDOW_DAYS * 2)

    lifetime_avg = _mean([rating for rating, _ in pairs]) or 0.0

    recent = [rating for rating, date in pairs if date >= thirty_days_ago]
    low_rating_count_30d = sum(1 for rating in recent if is_low_rating(rating))
    recent_avg = _mean(recent)

    recent_low = sum(
        1 for rating, date in pairs
        if date >= seven_days_ago and is_low_rating(rating)
    )
    previous_low = sum(
        1 for rating, date in pairs
        if fourteen_days_ago <= date < seven_days_ago and is_low_rating(rating)
    )

    rating_drop = lifetime_avg - recent_avg if recent_avg is not None else 0.0

    return ReputationMetrics(
        status=decide_status(low_rating_count_30d, rating_drop),
        has_low_rating_spike=detect_spike(recent_low, previous_low),
        recent_low_rating_count=recent_low,
        previous_low_rating_count=previous_low,
        recent_avg_rating=recent_avg,
        lifetime_avg_rating=lifetime_avg,
        low_rating_count_30d=low_rating_count_30d,
        total_reviews=len(pairs),
    )


def compute_reputation_metrics(
    db: Session,
    business_id: str,
    now: Optional[datetime] = None,
) -> ReputationMetrics:
    """Load a business's reviews (rating and date only) and compute its metrics."""
    rows = (
        db.query(Review.rating, Review.date)
        .filter(Review.business_id == business_id)
        .all()
    )
    metrics = compute_metrics(((r.rating, r.date) for r in rows), utc_now(now))
    logger.debug(f"Metrics for {business_id}: {metrics.status.value} from {metrics.total_reviews} reviews")
    return metrics
