"""
Yelp Dataset Import Service

Streams the Yelp academic dataset (newline-delimited JSON) into the
businesses and reviews tables.

Features:
- Constant-memory line-by-line parsing; malformed lines are logged and skipped
- Bounded selection: at most MAX_BUSINESSES businesses and
  MAX_REVIEWS_PER_BUSINESS reviews per business
- Idempotent upserts keyed by the Yelp identifiers
- Risk level assigned to each review from its star rating at write time
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from reputation_monitor.models.business import Business
from reputation_monitor.models.review import Review, RiskLevel
from reputation_monitor.services.risk import build_review
from reputation_monitor.utils.dates import parse_review_date

logger = logging.getLogger(__name__)

BUSINESS_PROGRESS_EVERY = 10
REVIEW_PROGRESS_EVERY = 100
TOP_BUSINESSES_IN_SUMMARY = 5


class SourceFileNotFoundError(FileNotFoundError):
    """A dataset file is missing; the import aborts before doing any work."""


@dataclass
class BusinessImportStats:
    """Statistics from the business pass."""
    imported: int = 0
    skipped: int = 0
    errors: int = 0


@dataclass
class ReviewImportStats:
    """Statistics from the review pass."""
    imported: int = 0
    skipped: int = 0
    errors: int = 0
    by_risk_level: Dict[str, int] = field(
        default_factory=lambda: {level.value: 0 for level in RiskLevel}
    )


@dataclass
class ImportSummary:
    """Outcome of a full import run."""
    businesses: BusinessImportStats
    reviews: ReviewImportStats
    database: Dict[str, Any]


def read_json_lines(file_path: Path) -> Iterator[Dict[str, Any]]:
    """
    Stream-read a newline-delimited JSON file one record at a time.

    Blank lines are ignored. Lines that are not valid UTF-8, fail to parse,
    or are not JSON objects are logged and skipped.
    """
    with open(file_path, "rb") as f:
        for line_number, raw_line in enumerate(f, start=1):
            try:
                line = raw_line.decode("utf-8").strip()
            except UnicodeDecodeError as e:
                logger.error(f"Skipping undecodable line {line_number} of {file_path.name}: {e}")
                continue
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                logger.error(f"Failed to parse line {line_number} of {file_path.name}: {line[:100]}...")
                continue
            if not isinstance(record, dict):
                logger.error(f"Skipping non-object line {line_number} of {file_path.name}: {line[:100]}...")
                continue
            yield record


def parse_categories(raw: Optional[str]) -> List[str]:
    """Split Yelp's comma-joined category string into an ordered list."""
    if not raw or not isinstance(raw, str):
        return []
    return [c.strip() for c in raw.split(",") if c.strip()]


def _safe_int(value: Any) -> Optional[int]:
    """Integers and integral floats (Yelp writes stars as 5.0) only."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _is_candidate_business(record: Dict[str, Any]) -> bool:
    review_count = _safe_int(record.get("review_count"))
    business_id = record.get("business_id")
    return bool(
        isinstance(business_id, str)
        and business_id
        and review_count is not None
        and review_count > 0
        and record.get("name")
        and record.get("city")
        and record.get("state")
    )


def select_businesses(records: Iterable[Dict[str, Any]], max_businesses: int) -> List[Dict[str, Any]]:
    """
    Pick the businesses to import.

    Keeps records with a positive review count and a name, city and state,
    stops consuming `records` once `max_businesses` are kept, then orders the
    selection by review count, most reviewed first (ties keep input order).
    """
    selected: List[Dict[str, Any]] = []
    if max_businesses <= 0:
        return selected

    for record in records:
        if not _is_candidate_business(record):
            continue
        selected.append(record)
        if len(selected) >= max_businesses:
            break

    selected.sort(key=lambda r: _safe_int(r.get("review_count")), reverse=True)
    return selected


def upsert_business(db: Session, record: Dict[str, Any]) -> bool:
    """
    Create the business if it does not exist yet; existing rows are left as is.

    Returns:
        True if a new row was created, False if it was already present.
    """
    business_id = record["business_id"]
    if db.get(Business, business_id) is not None:
        return False

    db.add(Business(
        id=business_id,
        name=record["name"],
        city=record["city"],
        state=record["state"],
        categories=parse_categories(record.get("categories")),
        stars=record.get("stars"),
        review_count=_safe_int(record.get("review_count")),
    ))
    db.commit()
    return True


def upsert_review(db: Session, review: Review) -> bool:
    """Create the review if it does not exist yet. Returns True if created."""
    if db.get(Review, review.id) is not None:
        return False
    db.add(review)
    db.commit()
    return True


def import_businesses(
    db: Session,
    business_file: Path,
    max_businesses: int,
) -> Tuple[Set[str], BusinessImportStats]:
    """
    Import the business pass.

    Args:
        db: Database session
        business_file: Path to yelp_academic_dataset_business.json
        max_businesses: Upper bound on businesses selected

    Returns:
        (ids of businesses present in the database after this pass, stats)
    """
    logger.info("Importing businesses...")
    stats = BusinessImportStats()
    business_ids: Set[str] = set()

    businesses = select_businesses(read_json_lines(business_file), max_businesses)
    logger.info(f"Found {len(businesses)} businesses to import")

    for record in businesses:
        business_id = record["business_id"]
        try:
            if upsert_business(db, record):
                stats.imported += 1
            else:
                stats.skipped += 1
            business_ids.add(business_id)

            done = stats.imported + stats.skipped
            if done % BUSINESS_PROGRESS_EVERY == 0:
                logger.info(f"Imported {done}/{len(businesses)} businesses")
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to import business {business_id}: {e}")
            stats.errors += 1

    logger.info(f"Business import complete: {stats}")
    return business_ids, stats


def _build_review_from_record(record: Dict[str, Any]) -> Review:
    """
    Validate a raw review record and build its row.

    Raises:
        ValueError: If the record is missing fields or holds invalid values.
    """
    review_id = record.get("review_id")
    if not review_id or not isinstance(review_id, str):
        raise ValueError(f"invalid review_id {review_id!r}")

    rating = _safe_int(record.get("stars"))
    if rating is None:
        raise ValueError(f"invalid stars {record.get('stars')!r}")

    return build_review(
        review_id=review_id,
        business_id=record["business_id"],
        rating=rating,
        text=record.get("text") or "",
        date=parse_review_date(record.get("date")),
    )


def import_reviews(
    db: Session,
    review_file: Path,
    business_ids: Set[str],
    max_reviews_per_business: int,
    max_businesses: int,
) -> ReviewImportStats:
    """
    Import the review pass for the given businesses.

    Reviews of businesses outside `business_ids`, reviews past a business's
    cap, and repeats of a review_id already handled in this pass are
    skipped. The pass stops once max_businesses * max_reviews_per_business
    reviews are in place.
    """
    logger.info("Importing reviews...")
    stats = ReviewImportStats()
    review_count_by_business: Dict[str, int] = {}
    seen_review_ids: Set[str] = set()
    total_limit = max_businesses * max_reviews_per_business

    if total_limit <= 0 or not business_ids:
        logger.info(f"Review import complete: {stats}")
        return stats

    for record in read_json_lines(review_file):
        business_id = record.get("business_id")
        if not isinstance(business_id, str):
            logger.error(f"Skipping review {record.get('review_id')!r} with invalid business_id {business_id!r}")
            stats.skipped += 1
            continue
        if business_id not in business_ids:
            stats.skipped += 1
            continue

        current_count = review_count_by_business.get(business_id, 0)
        if current_count >= max_reviews_per_business:
            stats.skipped += 1
            continue

        try:
            review = _build_review_from_record(record)
        except ValueError as e:
            logger.error(f"Skipping malformed review {record.get('review_id')}: {e}")
            stats.skipped += 1
            continue

        if review.id in seen_review_ids:
            logger.warning(f"Skipping duplicate review {review.id}")
            stats.skipped += 1
            continue

        try:
            upsert_review(db, review)
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to import review {review.id}: {e}")
            stats.errors += 1
            continue

        seen_review_ids.add(review.id)
        review_count_by_business[business_id] = current_count + 1
        stats.imported += 1
        stats.by_risk_level[review.risk_level.value] += 1

        if stats.imported % REVIEW_PROGRESS_EVERY == 0:
            logger.info(f"Imported {stats.imported} reviews (skipped {stats.skipped})")

        if stats.imported >= total_limit:
            logger.info(f"Reached global review limit of {total_limit}")
            break

    logger.info(f"Review import complete: {stats}")
    return stats


def collect_database_stats(db: Session) -> Dict[str, Any]:
    """
    Summarize what is stored: counts, risk level distribution and the most
    reviewed businesses.
    """
    business_count = db.query(func.count(Business.id)).scalar() or 0
    review_count = db.query(func.count(Review.id)).scalar() or 0

    counts = dict(
        db.query(Review.risk_level, func.count(Review.id))
        .group_by(Review.risk_level)
        .all()
    )
    risk_distribution = {}
    for level in RiskLevel:
        count = counts.get(level, 0)
        percent = round(count / review_count * 100) if review_count else 0
        risk_distribution[level.value] = {"count": count, "percent": percent}

    top_rows = (
        db.query(Business.name, func.count(Review.id))
        .outerjoin(Review, Review.business_id == Business.id)
        .group_by(Business.id, Business.name, Business.review_count)
        .order_by(Business.review_count.desc())
        .limit(TOP_BUSINESSES_IN_SUMMARY)
        .all()
    )

    return {
        "businesses": business_count,
        "reviews": review_count,
        "risk_distribution": risk_distribution,
        "top_businesses": [{"name": name, "reviews": count} for name, count in top_rows],
    }


def run_import(
    db: Session,
    business_file: Path,
    review_file: Path,
    max_businesses: int,
    max_reviews_per_business: int,
) -> ImportSummary:
    """
    Run the full import: businesses first, then their reviews.

    Raises:
        SourceFileNotFoundError: If either source file is missing. Checked
            before anything is read or written.
    """
    business_file = Path(business_file)
    review_file = Path(review_file)

    for path in (business_file, review_file):
        if not path.exists():
            raise SourceFileNotFoundError(f"Source file not found: {path}")

    logger.info(
        f"Starting Yelp import (max {max_businesses} businesses, "
        f"{max_reviews_per_business} reviews each)"
    )

    business_ids, business_stats = import_businesses(db, business_file, max_businesses)
    review_stats = import_reviews(
        db,
        review_file,
        business_ids,
        max_reviews_per_business=max_reviews_per_business,
        max_businesses=max_businesses,
    )

    summary = ImportSummary(
        businesses=business_stats,
        reviews=review_stats,
        database=collect_database_stats(db),
    )
    logger.info(f"Import complete: {summary.database['businesses']} businesses, {summary.database['reviews']} reviews")
    return summary
