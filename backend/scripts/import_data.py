#!/usr/bin/env python3
"""
Script to import the Yelp academic dataset into the database.

Usage:
    python scripts/import_data.py                          # Use configured paths and limits
    python scripts/import_data.py --data-dir "Yelp JSON/yelp_dataset"
    python scripts/import_data.py --max-businesses 20 --max-reviews-per-business 10
    python scripts/import_data.py --create-tables          # Create tables first
"""

import sys
import argparse
import logging
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from reputation_monitor.core.config import settings
from reputation_monitor.core.database import get_session_local, create_tables
from reputation_monitor.services.data_import import run_import, SourceFileNotFoundError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import Yelp businesses and reviews")
    parser.add_argument("--data-dir", type=str, default=str(settings.YELP_DATA_DIR),
                        help="Directory holding the Yelp JSON files")
    parser.add_argument("--business-file", type=str, default=settings.BUSINESS_FILE_NAME,
                        help="Business file name inside --data-dir")
    parser.add_argument("--review-file", type=str, default=settings.REVIEW_FILE_NAME,
                        help="Review file name inside --data-dir")
    parser.add_argument("--max-businesses", type=int, default=settings.MAX_BUSINESSES,
                        help=f"Businesses to import (default: {settings.MAX_BUSINESSES})")
    parser.add_argument("--max-reviews-per-business", type=int, default=settings.MAX_REVIEWS_PER_BUSINESS,
                        help=f"Reviews per business (default: {settings.MAX_REVIEWS_PER_BUSINESS})")
    parser.add_argument("--create-tables", action="store_true", help="Create tables before importing")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (default: INFO)")
    return parser


def print_summary(summary) -> None:
    db_stats = summary.database

    print("\n=== Import Summary ===")
    print(f"  Businesses: {summary.businesses.imported} imported, "
          f"{summary.businesses.skipped} already present, {summary.businesses.errors} errors")
    print(f"  Reviews: {summary.reviews.imported} imported, "
          f"{summary.reviews.skipped} skipped, {summary.reviews.errors} errors")

    print("\nReview distribution:")
    for business in db_stats["top_businesses"]:
        print(f"  {business['name']}: {business['reviews']} reviews")

    print("\nDatabase stats:")
    print(f"  Businesses: {db_stats['businesses']}")
    print(f"  Reviews: {db_stats['reviews']}")
    print("  Risk level distribution:")
    labels = {"HIGH_RISK": "High Risk (1-2★)", "MEDIUM_RISK": "Medium Risk (3★)", "LOW_RISK": "Low Risk (4-5★)"}
    for level, label in labels.items():
        entry = db_stats["risk_distribution"][level]
        print(f"    {label}: {entry['count']} ({entry['percent']}%)")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    logger = logging.getLogger("import_data")

    if args.max_businesses <= 0 or args.max_reviews_per_business <= 0:
        print("Error: limits must be positive integers")
        return 1

    data_dir = Path(args.data_dir)
    business_file = data_dir / args.business_file
    review_file = data_dir / args.review_file

    for path in (business_file, review_file):
        if not path.exists():
            print(f"Error: Source file not found: {path}")
            return 1

    if args.create_tables:
        create_tables()

    db = get_session_local()()

    try:
        print(f"Importing Yelp dataset from {data_dir}...")
        summary = run_import(
            db,
            business_file=business_file,
            review_file=review_file,
            max_businesses=args.max_businesses,
            max_reviews_per_business=args.max_reviews_per_business,
        )
        print_summary(summary)
        return 0

    except SourceFileNotFoundError as e:
        print(f"Error: {e}")
        return 1

    except Exception as e:
        logger.error(f"Import failed: {e}", exc_info=True)
        print(f"Error: Import failed: {e}")
        return 1

    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
