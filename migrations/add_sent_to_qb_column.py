"""
Add sent_to_qb column to schedules
Databases created before days could be sent to QuickBooks Time lack it.
Run with: python -m migrations.add_sent_to_qb_column
"""

import logging
import sys

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from workschedule.config import get_settings
from workschedule.database import create_db_engine

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def add_sent_to_qb_column(engine: Engine) -> bool:
    """Add the column if missing. Returns True when the table was altered."""
    inspector = inspect(engine)
    if not inspector.has_table("schedules"):
        logger.info("⚠️  No schedules table yet - it will be created with the column on startup")
        return False

    columns = {c["name"] for c in inspector.get_columns("schedules")}
    if "sent_to_qb" in columns:
        logger.info("✅ schedules.sent_to_qb already exists")
        return False

    with engine.begin() as conn:
        conn.execute(text("ALTER TABLE schedules ADD COLUMN sent_to_qb BOOLEAN NOT NULL DEFAULT FALSE"))
    logger.info("✅ Added schedules.sent_to_qb")
    return True


def main():
    engine = create_db_engine(get_settings())
    try:
        add_sent_to_qb_column(engine)
    except Exception as e:
        logger.error(f"❌ Migration failed: {e}")
        sys.exit(1)
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
