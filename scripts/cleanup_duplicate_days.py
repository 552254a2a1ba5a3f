"""
Find and remove duplicate days (several days woken on one calendar date).

Dry run by default; pass --cleanup to actually delete. For each duplicated
date the most recent day is kept, unless another day of that date has more
entries. Deleting a day deletes its entries.

Usage:
    python scripts/cleanup_duplicate_days.py            # report only
    python scripts/cleanup_duplicate_days.py --cleanup  # delete
"""
from __future__ import annotations

import argparse
import sys

from signal_app.core.logging import get_logger
from signal_app.db.base import SessionLocal
from signal_app.services.days import cleanup_duplicate_days, find_duplicate_days

logger = get_logger("cleanup_duplicate_days")


def _describe(db) -> int:
    groups = find_duplicate_days(db)
    if not groups:
        print("No duplicate days found.")
        return 0

    print(f"Found {len(groups)} date(s) with duplicate days:\n")
    for group in groups:
        print(f"{group.date} ({len(group.days)} days):")
        for idx, day in enumerate(group.days, start=1):
            state = "OPEN  " if day.is_open else "CLOSED"
            sleep = day.sleep_time.strftime("%H:%M") if day.sleep_time else "ongoing"
            print(
                f"  {idx}. {state} | id={day.id} | {day.wake_time:%H:%M} -> {sleep}"
                f" | entries={len(day.entries)} signal={day.signal_total}min"
                f" wasted={day.wasted_total}min"
            )
        print()
    return len(groups)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument(
        "--cleanup",
        action="store_true",
        help="Delete the duplicates instead of only reporting them.",
    )
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        if _describe(db) == 0:
            return 0

        dry_run = not args.cleanup
        print("DRY RUN - no changes will be made\n" if dry_run else "CLEANING UP DUPLICATES\n")
        for action in cleanup_duplicate_days(db, dry_run=dry_run):
            print(f"{action.date}: keep {action.kept_day_id}, delete {action.deleted_day_ids}")

        if dry_run:
            print("\nThis was a dry run. Run with --cleanup to actually delete.")
        else:
            print("\nCleanup complete.")
        return 0
    except Exception:
        logger.exception("duplicate-day cleanup failed")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
