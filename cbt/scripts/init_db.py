"""
Creates all tables and the default system settings row.

Run with:
    python -m cbt.scripts.init_db
"""
import logging

from cbt.crud.crud_settings import get_system_settings
from cbt.db.models_registry import Base
from cbt.db.session import engine, SessionLocal

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        row = get_system_settings(db)
        logger.info(
            f"Settings ready: shuffle_questions={row.shuffle_questions}, show_results={row.show_results}"
        )
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
