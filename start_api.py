#!/usr/bin/env python3
"""
Wait for the DB, run migrations, seed courses and slots, then exec uvicorn.
"""
import os
import sys

from alembic import command
from alembic.config import Config

from skytour.core.config import settings
from skytour.core.logging import setup_logging
from wait_for_db import wait


def main() -> None:
    setup_logging()
    wait()

    alembic_cfg = Config(os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    command.upgrade(alembic_cfg, "head")

    # Seed with a session created after migrations
    from skytour.seed import run as run_seed
    run_seed()

    port = os.getenv("PORT", "8000")
    os.execv(
        sys.executable,
        [sys.executable, "-m", "uvicorn", "skytour.main:app", "--host", "0.0.0.0", "--port", port],
    )


if __name__ == "__main__":
    main()
