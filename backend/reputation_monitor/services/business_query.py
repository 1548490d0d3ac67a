"""
Business listing with reputation metrics attached.

Metrics are computed per business from its own reviews; no business's
result depends on another's, and the list is only assembled once every
business has been computed.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from reputation_monitor.models.business import Business
from reputation_monitor.models.review import Review
from reputation_monitor.services.reputation import (
    ReputationMetrics,
    compute_metrics,
    compute_reputation_metrics,
)
from reputation_monitor.utils.dates import utc_now

logger = logging.getLogger(__name__)


@dataclass
class BusinessWithMetrics:
    business: Business
    stored_review_count: int
    metrics: ReputationMetrics


def _reviews_by_business(db: Session, business_ids: List[str]) -> Dict[str, List[Tuple[int, datetime]]]:
    """Load (rating, date) for the given businesses in one round trip."""
    grouped: Dict[str, List[Tuple[int, datetime]]] = defaultdict(list)
    if not business_ids:
        return grouped
    rows = (
        db.query(Review.business_id, Review.rating, Review.date)
        .filter(Review.business_id.in_(business_ids))
        .all()
    )
    for business_id, rating, date in rows:
        grouped[business_id].append((rating, date))
    return grouped


def list_businesses_with_metrics(
    db: Session,
    now: Optional[datetime] = None,
) -> List[BusinessWithMetrics]:
    """All businesses, most reviewed first (by source review count), with metrics."""
    now = utc_now(now)
    businesses = db.query(Business).order_by(Business.review_count.desc(), Business.id).all()
    reviews = _reviews_by_business(db, [b.id for b in businesses])

    results = [
        BusinessWithMetrics(
            business=business,
            stored_review_count=len(reviews.get(business.id, [])),
            metrics=compute_metrics(reviews.get(business.id, []), now),
        )
        for business in businesses
    ]
    logger.info(f"Computed reputation metrics for {len(results)} businesses")
    return results


def get_business_with_metrics(
    db: Session,
    business_id: str,
    now: Optional[datetime] = None,
) -> Optional[BusinessWithMetrics]:
    """A single business with metrics, or None if it was never imported."""
    business = db.get(Business, business_id)
    if business is None:
        return None
    metrics = compute_reputation_metrics(db, business_id, now)
    return BusinessWithMetrics(
        business=business,
        stored_review_count=metrics.total_reviews,
        metrics=metrics,
    )
