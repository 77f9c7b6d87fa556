# scripts/reconcile_balances.py
"""
Compare each customer's stored balance with the sum of their open and
overdue credit notes and correct any drift.
"""

import logging

from pos.credits.maintenance import reconcile_balances
from pos.db.engine import get_engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    with get_engine().begin() as conn:
        drifts = reconcile_balances(conn)

    logger.info("Customer balances corrected: %s", len(drifts))
    return drifts


if __name__ == "__main__":
    main()
