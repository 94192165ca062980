from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from app.core.config import settings
from app.db.session import Base

# Registers the tables on Base.metadata for autogenerate
from app.models import booking, payment, user  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

DATABASE_URL = settings.DATABASE_URL
config.set_main_option("sqlalchemy.url", DATABASE_URL)

target_metadata = Base.metadata

configure_options = {
    "target_metadata": target_metadata,
    "compare_type": True,
    "compare_server_default": True,
    # SQLite can only ALTER through table rebuilds
    "render_as_batch": DATABASE_URL.startswith("sqlite"),
}


def run_migrations_offline():
    """Emit SQL to stdout instead of touching the database."""
    context.configure(url=DATABASE_URL, literal_binds=True, **configure_options)

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = create_engine(DATABASE_URL, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, **configure_options)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
