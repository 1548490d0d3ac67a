from reputation_monitor.services.risk import classify_risk, build_review
from reputation_monitor.services.reputation import compute_metrics, compute_reputation_metrics
from reputation_monitor.services.data_import import run_import, SourceFileNotFoundError
from reputation_monitor.services.review_query import ReviewFilter, InvalidFilterError, query_reviews
from reputation_monitor.services.business_query import list_businesses_with_metrics, get_business_with_metrics

__all__ = [
    "classify_risk",
    "build_review",
    "compute_metrics",
    "compute_reputation_metrics",
    "run_import",
    "SourceFileNotFoundError",
    "ReviewFilter",
    "InvalidFilterError",
    "query_reviews",
    "list_businesses_with_metrics",
    "get_business_with_metrics",
]
