from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool, create_engine

from skytour.core.config import settings
from skytour.db.session import Base

# Import all models so Alembic sees them in metadata
from skytour.models.heliport import Heliport  # noqa: F401
from skytour.models.course import Course  # noqa: F401
from skytour.models.slot import Slot  # noqa: F401
from skytour.models.customer import Customer  # noqa: F401
from skytour.models.reservation import Reservation  # noqa: F401
from skytour.models.payment import Payment  # noqa: F401
from skytour.models.audit_log import AuditLog  # noqa: F401
from skytour.models.notification_log import NotificationLog  # noqa: F401
from skytour.models.setting import Setting  # noqa: F401


# Alembic Config object
config = context.config

# alembic.ini only holds a placeholder; the runtime URL comes from settings
if not settings.DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set")
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

# Logging config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Target metadata for autogenerate
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    url = config.get_main_option("sqlalchemy.url")

    connectable = create_engine(url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
