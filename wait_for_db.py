"""Block until the configured database accepts connections (used before migrations in containers)."""
import logging
import os
import time

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError

from skytour.core.config import settings
from skytour.core.logging import setup_logging

logger = logging.getLogger("wait_for_db")


def wait(timeout_s: int | None = None) -> None:
    if settings.DATABASE_URL.startswith("sqlite"):
        return
    timeout_s = timeout_s if timeout_s is not None else int(os.getenv("DB_WAIT_TIMEOUT", "60"))
    engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)
    start = time.time()
    logger.info("Waiting for database %s (timeout=%ss)", engine.url.render_as_string(hide_password=True), timeout_s)
    try:
        while True:
            try:
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                logger.info("Database is ready.")
                return
            except OperationalError as e:
                if time.time() - start > timeout_s:
                    logger.error("Timed out waiting for DB. Last error: %s", e)
                    raise
                time.sleep(1)
    finally:
        engine.dispose()


if __name__ == "__main__":
    setup_logging()
    wait()
