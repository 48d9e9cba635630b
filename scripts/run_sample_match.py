#!/usr/bin/env python3
"""Sample match harness for end-to-end validation.

Seeds a SQLite database from a YAML catalog, matches one profile against it
and prints the ranked results plus per-category statistics. No network
access is needed unless --narrate is given.

Usage:
    # Default fixture catalog and profile
    python scripts/run_sample_match.py

    # Custom inputs
    python scripts/run_sample_match.py --catalog my_catalog.yaml --profile me.json

    # Print the AI prompt block instead of the table
    python scripts/run_sample_match.py --prompt
"""

import argparse
import json
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from resource_matcher.config.models import AppConfig
from resource_matcher.domain.profile import parse_profile
from resource_matcher.gateway.sql import SqlListingGateway
from resource_matcher.logging.config import configure_logging
from resource_matcher.matching.engine import ResourceMatcher
from resource_matcher.matching.utils import format_matches_for_prompt
from resource_matcher.persistence.catalog import load_catalog_file
from resource_matcher.persistence.database import close_database, get_session, init_database
from resource_matcher.persistence.repositories import ListingRepository


def print_header(title: str):
    """Print a formatted section header."""
    width = 80
    print("\n" + "=" * width)
    print(f" {title}")
    print("=" * width + "\n")


def print_matches(result):
    """Print ranked listings per category."""
    print_header("Ranked Matches")
    if not result.matches:
        print("No matches.")
        return

    for category, items in result.matches.items():
        print(f"[{category}]")
        for rank, item in enumerate(items, start=1):
            reasons = "; ".join(item.match_reasons) or "-"
            print(f"  {rank}. {item.listing.name:<36} score={item.match_score:<3} {reasons}")
        print()


def print_stats(result):
    """Print per-category run statistics."""
    print_header("Category Statistics")
    header = f"{'Category':<20} {'Strategy':<22} {'Cand':>5} {'Scored':>7} {'Ret':>4} {'Fallback':>9}"
    print(header)
    print("-" * len(header))
    for stats in result.category_stats:
        print(
            f"{stats.category:<20} {stats.strategy:<22} {stats.candidates:>5} "
            f"{stats.scored:>7} {stats.returned:>4} {'yes' if stats.used_fallback else 'no':>9}"
        )
        if stats.error:
            print(f"  Error: {stats.error}")
    print(f"\nDuration: {result.total_duration_seconds:.3f}s  run_id={result.run_id}")


def main():
    """Main entry point for the sample match harness."""
    parser = argparse.ArgumentParser(
        description="Run a sample match for end-to-end validation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--catalog",
        type=Path,
        default=Path("tests/fixtures/catalog.yaml"),
        help="YAML catalog to seed (default: tests/fixtures/catalog.yaml)",
    )
    parser.add_argument(
        "--profile",
        type=Path,
        default=Path("tests/fixtures/profile_austin.json"),
        help="Profile JSON (default: tests/fixtures/profile_austin.json)",
    )
    parser.add_argument(
        "--database",
        type=Path,
        default=Path("data/sample_match.db"),
        help="Path to SQLite database (default: data/sample_match.db)",
    )
    parser.add_argument(
        "--categories", default=None, help="Comma-separated categories (default: core four)"
    )
    parser.add_argument("--prompt", action="store_true", help="Print the AI prompt block")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: WARNING)",
    )
    args = parser.parse_args()

    load_dotenv()
    configure_logging(level=args.log_level, format_type="key-value", environment="validation")

    for path in (args.catalog, args.profile):
        if not path.exists():
            print(f"Error: file not found: {path}")
            return 1

    database_url = f"sqlite:///{args.database.absolute()}"
    init_database(database_url)

    try:
        listings = load_catalog_file(args.catalog)
        with get_session() as session:
            repo = ListingRepository(session)
            for listing in listings:
                repo.upsert(listing)
        print(f"Seeded {len(listings)} listings into {args.database}")

        with open(args.profile, "r", encoding="utf-8") as f:
            profile = parse_profile(json.load(f))

        matcher = ResourceMatcher.from_config(AppConfig(), SqlListingGateway())
        categories = args.categories.split(",") if args.categories else None
        result = matcher.match(profile, categories=categories)

        if args.prompt:
            print(format_matches_for_prompt(result.matches))
        else:
            print_matches(result)
            print_stats(result)

        return 1 if result.had_errors else 0

    finally:
        close_database()


if __name__ == "__main__":
    sys.exit(main())
