"""
Regenerate availability for every active business.

Needed after the slot generation rules or provider calendars change in bulk:
each business's table is replaced with a fresh window starting tomorrow
(business-local).

Usage:
    python scripts/regenerate_all_availability.py
    python scripts/regenerate_all_availability.py --days 45
    python scripts/regenerate_all_availability.py --dry-run
    python scripts/regenerate_all_availability.py --yes
"""
import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def regenerate(days: int = 0, dry_run: bool = False, assume_yes: bool = False) -> int:
    """Returns the number of businesses that failed."""
    from src.database import async_session_factory
    from src.services.rollover import seed_business_availability
    from src.services.roster import list_active_businesses
    from src.utils.timezone import is_valid_timezone

    async with async_session_factory() as db:
        businesses = await list_active_businesses(db)

    if not businesses:
        logger.info("No active businesses found")
        return 0

    logger.info("Found %d active businesses%s", len(businesses), " [DRY RUN]" if dry_run else "")
    for b in businesses:
        logger.info("  %s  %s  (%s)", str(b.id)[:8], b.name, b.time_zone)

    if dry_run:
        return 0

    if not assume_yes:
        answer = input(f"Replace availability for ALL {len(businesses)} businesses? (y/N): ")
        if answer.strip().lower() not in ("y", "yes"):
            logger.info("Cancelled")
            return 0

    now = datetime.now(timezone.utc)
    failures = 0
    for index, business in enumerate(businesses, start=1):
        if not is_valid_timezone(business.time_zone):
            logger.error("[%d/%d] %s: invalid timezone %r, skipped", index, len(businesses), business.name, business.time_zone)
            failures += 1
            continue
        try:
            dates = await seed_business_availability(business, now, days=days or None)
            logger.info("[%d/%d] %s: %d dates (%s to %s)", index, len(businesses), business.name, len(dates), dates[0], dates[-1])
        except Exception as e:
            logger.error("[%d/%d] %s: failed: %s", index, len(businesses), business.name, str(e))
            failures += 1

    logger.info("Done: %d succeeded, %d failed", len(businesses) - failures, failures)
    return failures


def main():
    parser = argparse.ArgumentParser(description="Regenerate availability for all businesses")
    parser.add_argument(
        "--days", type=int, default=0,
        help="Number of days to generate (0 = AVAILABILITY_WINDOW_DAYS)",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="List affected businesses without writing anything",
    )
    parser.add_argument(
        "--yes", action="store_true",
        help="Skip the confirmation prompt",
    )
    args = parser.parse_args()

    failures = asyncio.run(regenerate(days=args.days, dry_run=args.dry_run, assume_yes=args.yes))
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
