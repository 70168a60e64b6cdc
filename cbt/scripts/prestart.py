# cbt/scripts/prestart.py
import logging
import sys
import time
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from cbt.core.config import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

max_tries = 60
wait_seconds = 2


def main() -> int:
    db_uri_censored = str(settings.DATABASE_URI).replace(settings.POSTGRES_PASSWORD, "******")
    logger.info(f"Waiting for database at: {db_uri_censored}")

    engine = create_engine(str(settings.DATABASE_URI))
    for i in range(1, max_tries + 1):
        try:
            with engine.connect():
                logger.info("Database connection established")
                return 0
        except SQLAlchemyError as e:
            logger.warning(f"Attempt {i}/{max_tries}: database not ready, retrying...")
            logger.debug(f"Connection error: {e}")
            time.sleep(wait_seconds)

    logger.error("Could not connect to the database, giving up")
    return 1


if __name__ == "__main__":
    sys.exit(main())
