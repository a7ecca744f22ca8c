import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from gardengear.core.database import Base
from gardengear.workshop.customers import models as customer_models  # noqa: F401
from gardengear.workshop.jobs import models as job_models  # noqa: F401
from gardengear.workshop.products import models as product_models  # noqa: F401
from gardengear.workshop.users import models as user_models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    # Migrations connect as the owning role; the app uses its own non-owner role.
    return os.getenv("MIGRATIONS_DATABASE_URL") or os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url") or ""


def run_migrations_offline() -> None:
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _database_url()
    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
