"""Alembic environment for the Suba schema.

The database URL comes from ``sqlalchemy.url`` in alembic.ini when set,
otherwise from the application settings (``DATABASE_URL`` / ``.env``).
"""

from sqlalchemy import create_engine, pool

from alembic import context

from suba.config import get_settings
from suba.infrastructure.db import models  # noqa: F401  (registers tables on Base.metadata)
from suba.infrastructure.db.session import Base

target_metadata = Base.metadata


def get_url() -> str:
    """Resolve the database URL from the Alembic config or the app settings."""
    url = context.config.get_main_option("sqlalchemy.url")
    if url:
        return url
    return get_settings().get_sqlalchemy_url()


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (emit SQL without a live connection)."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode (with a live database connection)."""
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
