"""
Insert the sample filming locations (and pending submissions) into a database
for local development.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from moviemap.config import get_settings
from moviemap.db import SqlDatabase, SqlLocationStore, SqlSubmissionStore
from moviemap.sample_data import SAMPLE_LOCATIONS, SAMPLE_SUBMISSIONS, seed_sample_data

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed MovieMap sample data")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Override DATABASE_URL",
    )
    parser.add_argument(
        "--skip-submissions",
        action="store_true",
        help="Only insert approved locations",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print what would be inserted and exit",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )

    if args.dry_run:
        for fields in SAMPLE_LOCATIONS:
            logger.info("location: %s (%s)", fields["title"], fields["location_name"])
        if not args.skip_submissions:
            for fields in SAMPLE_SUBMISSIONS:
                logger.info("submission: %s (%s)", fields["title"], fields["location_name"])
        return 0

    settings = get_settings()
    database_url = args.database_url or settings.database_url
    if not database_url:
        logger.error("DATABASE_URL is not set and --database-url was not given")
        return 1

    database = SqlDatabase(database_url, timeout_seconds=settings.store_timeout_seconds)
    added_locations, added_submissions = seed_sample_data(
        SqlLocationStore(database),
        SqlSubmissionStore(database),
        include_submissions=not args.skip_submissions,
    )
    logger.info(
        "Added %d sample locations and %d sample submissions",
        added_locations,
        added_submissions,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
