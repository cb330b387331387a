"""
Grant moderator rights to a Firebase user id.
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
from moviemap.db import SqlDatabase, SqlModeratorStore

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Add a MovieMap moderator")
    parser.add_argument("uid", help="Firebase Authentication user id")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Override DATABASE_URL",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )

    settings = get_settings()
    database_url = args.database_url or settings.database_url
    if not database_url:
        logger.error("DATABASE_URL is not set and --database-url was not given")
        return 1

    store = SqlModeratorStore(
        SqlDatabase(database_url, timeout_seconds=settings.store_timeout_seconds)
    )
    if store.is_moderator(args.uid):
        logger.info("%s is already a moderator", args.uid)
        return 0
    store.add_moderator(args.uid)
    logger.info("Added moderator %s", args.uid)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
