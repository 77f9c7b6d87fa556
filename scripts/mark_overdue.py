# scripts/mark_overdue.py
"""
Flag open credit notes whose due date has passed. Meant to run daily
(cron or a scheduler), e.g.:

    python -m scripts.mark_overdue
    python -m scripts.mark_overdue --as-of 2024-06-15
"""

import argparse
import logging
from datetime import date

from pos.config import get_settings
from pos.credits.maintenance import mark_overdue_notes
from pos.credits.weeks import now_local
from pos.db.engine import get_engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="ISO date (YYYY-MM-DD); defaults to today in the store timezone",
    )
    args = parser.parse_args(argv)
    as_of = args.as_of or now_local(get_settings()).date()

    with get_engine().begin() as conn:
        marked = mark_overdue_notes(conn, as_of)

    logger.info("Credit notes marked overdue as of %s: %s", as_of, marked)
    return marked


if __name__ == "__main__":
    main()
