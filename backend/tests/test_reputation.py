"""
Unit tests for the reputation engine.

compute_metrics is pure, so most tests feed (rating, date) pairs directly
with a fixed reference time.
"""

from datetime import timedelta, timezone

import pytest

from reputation_monitor.services.reputation import (
    ReputationStatus,
    compute_metrics,
    compute_reputation_metrics,
    decide_status,
    detect_spike,
)
from tests.factories import NOW, add_business, add_review


def days_ago(days, **extra):
    return NOW - timedelta(days=days, **extra)


def reviews(*pairs):
    """(rating, days ago) -> (rating, date)"""
    return [(rating, days_ago(days)) for rating, days in pairs]


def test_empty_review_set():
    metrics = compute_metrics([], NOW)

    assert metrics.lifetime_avg_rating == 0
    assert metrics.recent_avg_rating is None
    assert metrics.has_low_rating_spike is False
    assert metrics.status == ReputationStatus.HEALTHY
    assert metrics.recent_low_rating_count == 0
    assert metrics.previous_low_rating_count == 0
    assert metrics.total_reviews == 0


def test_three_one_star_reviews_today_is_at_risk():
    metrics = compute_metrics(reviews((1, 0), (1, 0), (1, 0)), NOW)

    assert metrics.low_rating_count_30d == 3
    assert metrics.status == ReputationStatus.AT_RISK
    assert metrics.recent_avg_rating == 1.0
    assert metrics.lifetime_avg_rating == 1.0


def test_single_low_rating_in_30_days_is_watch():
    metrics = compute_metrics(reviews((2, 20), (5, 5), (5, 3), (5, 1)), NOW)

    assert metrics.low_rating_count_30d == 1
    assert metrics.status == ReputationStatus.WATCH


def test_moderate_rating_drop_is_watch():
    # lifetime 28/6 = 4.67, recent 4.0 -> drop 0.67
    metrics = compute_metrics(
        reviews((5, 90), (5, 80), (5, 70), (5, 60), (4, 10), (4, 2)),
        NOW,
    )

    assert metrics.low_rating_count_30d == 0
    assert metrics.recent_avg_rating == 4.0
    assert metrics.status == ReputationStatus.WATCH


def test_large_rating_drop_is_at_risk():
    # lifetime 28/6 = 4.67, recent 3.0 -> drop 1.67
    metrics = compute_metrics(
        reviews((5, 90), (5, 80), (5, 70), (5, 60), (5, 50), (3, 3)),
        NOW,
    )

    assert metrics.low_rating_count_30d == 0
    assert metrics.status == ReputationStatus.AT_RISK


def test_old_low_ratings_do_not_affect_status():
    metrics = compute_metrics(reviews((1, 40), (1, 45), (1, 60)), NOW)

    assert metrics.low_rating_count_30d == 0
    assert metrics.recent_avg_rating is None
    assert metrics.lifetime_avg_rating == 1.0
    assert metrics.status == ReputationStatus.HEALTHY


def test_recent_improvement_is_healthy():
    metrics = compute_metrics(reviews((3, 100), (3, 90), (5, 2)), NOW)

    assert metrics.recent_avg_rating == 5.0
    assert metrics.status == ReputationStatus.HEALTHY


def test_review_exactly_30_days_old_is_recent():
    metrics = compute_metrics([(2, days_ago(30))], NOW)
    assert metrics.low_rating_count_30d == 1


def test_review_just_over_30_days_old_is_not_recent():
    metrics = compute_metrics([(2, days_ago(30, seconds=1))], NOW)
    assert metrics.low_rating_count_30d == 0
    assert metrics.recent_avg_rating is None


def test_review_exactly_7_days_old_counts_as_recent_week():
    metrics = compute_metrics([(1, days_ago(7))], NOW)

    assert metrics.recent_low_rating_count == 1
    assert metrics.previous_low_rating_count == 0


def test_review_just_over_7_days_old_counts_as_previous_week():
    metrics = compute_metrics([(1, days_ago(7, seconds=1))], NOW)

    assert metrics.recent_low_rating_count == 0
    assert metrics.previous_low_rating_count == 1


def test_previous_week_window_bounds():
    metrics = compute_metrics(
        [(1, days_ago(14)), (1, days_ago(14, seconds=1))],
        NOW,
    )
    assert metrics.previous_low_rating_count == 1


def test_spike_when_low_ratings_double():
    # previous week 1, this week 3
    metrics = compute_metrics(reviews((1, 10), (1, 1), (2, 2), (1, 3)), NOW)

    assert metrics.previous_low_rating_count == 1
    assert metrics.recent_low_rating_count == 3
    assert metrics.has_low_rating_spike is True


def test_no_spike_for_single_low_rating_without_baseline():
    metrics = compute_metrics(reviews((1, 1), (5, 10)), NOW)

    assert metrics.previous_low_rating_count == 0
    assert metrics.recent_low_rating_count == 1
    assert metrics.has_low_rating_spike is False


@pytest.mark.parametrize("recent,previous,expected", [
    (0, 0, False),
    (1, 0, False),
    (2, 0, True),
    (2, 1, True),
    (3, 2, False),
    (4, 2, True),
    (5, 3, True),
    (1, 3, False),
])
def test_detect_spike(recent, previous, expected):
    assert detect_spike(recent, previous) is expected


@pytest.mark.parametrize("low_count,drop,expected", [
    (0, 0.0, ReputationStatus.HEALTHY),
    (0, 0.39, ReputationStatus.HEALTHY),
    (0, 0.4, ReputationStatus.WATCH),
    (1, 0.0, ReputationStatus.WATCH),
    (2, 0.69, ReputationStatus.WATCH),
    (3, 0.0, ReputationStatus.AT_RISK),
    (0, 0.7, ReputationStatus.AT_RISK),
    (0, -1.5, ReputationStatus.HEALTHY),
])
def test_decide_status_thresholds(low_count, drop, expected):
    assert decide_status(low_count, drop) == expected


@pytest.mark.parametrize("base", [
    [(1, 0), (1, 0), (1, 0)],
    [(5, 90), (5, 80), (5, 70), (5, 60), (5, 50), (3, 3)],
    [(2, 29), (2, 15), (1, 1), (5, 0), (5, 0), (5, 0)],
])
def test_adding_one_star_today_never_lowers_at_risk(base):
    before = compute_metrics(reviews(*base), NOW)
    after = compute_metrics(reviews(*base, (1, 0)), NOW)

    assert before.status == ReputationStatus.AT_RISK
    assert after.status == ReputationStatus.AT_RISK


def test_deterministic_for_same_inputs():
    data = reviews((1, 1), (4, 9), (2, 12), (5, 45))
    assert compute_metrics(data, NOW) == compute_metrics(data, NOW)


def test_aware_now_is_treated_as_utc():
    data = reviews((1, 7))
    aware_now = NOW.replace(tzinfo=timezone.utc)

    assert compute_metrics(data, aware_now) == compute_metrics(data, NOW)


def test_to_dict_uses_plain_status():
    data = compute_metrics(reviews((1, 0)), NOW).to_dict()

    assert data["status"] == "WATCH"
    assert data["recent_low_rating_count"] == 1


def test_compute_reputation_metrics_reads_only_that_business(db):
    add_business(db, "b1")
    add_business(db, "b2")
    for i in range(3):
        add_review(db, f"b1-r{i}", "b1", 1, days_ago=i)
    add_review(db, "b2-r0", "b2", 5, days_ago=1)

    at_risk = compute_reputation_metrics(db, "b1", now=NOW)
    healthy = compute_reputation_metrics(db, "b2", now=NOW)

    assert at_risk.status == ReputationStatus.AT_RISK
    assert at_risk.total_reviews == 3
    assert healthy.status == ReputationStatus.HEALTHY
    assert healthy.lifetime_avg_rating == 5.0


def test_compute_reputation_metrics_unknown_business(db):
    metrics = compute_reputation_metrics(db, "missing", now=NOW)

    assert metrics.status == ReputationStatus.HEALTHY
    assert metrics.lifetime_avg_rating == 0
