# scripts/backfill_credits.py
"""
Normalize legacy credit rows whose outstanding amount was never recorded.
Idempotent; safe to run more than once.
"""

import logging

from pos.credits.maintenance import backfill_outstanding_amounts
from pos.db.engine import get_engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    with get_engine().begin() as conn:
        filled = backfill_outstanding_amounts(conn)
    logger.info("Legacy credit notes backfilled: %s", filled)


if __name__ == "__main__":
    main()
