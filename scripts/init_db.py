import logging

from pos.credits.maintenance import backfill_outstanding_amounts
from pos.db.engine import get_engine
from pos.db.schema import metadata

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    engine = get_engine()
    metadata.create_all(engine)
    with engine.begin() as conn:
        backfill_outstanding_amounts(conn)
    logger.info("DB schema ready at %s", engine.url)


if __name__ == "__main__":
    main()
