"""
Alembic migration environment.

Purpose:
- Configure automatic migration detection using SQLAlchemy models
- Support both online (DB connected) and offline (generate SQL) migrations

Usage:
- alembic revision --autogenerate -m "Add column"
- alembic upgrade head
- alembic downgrade -1
"""
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.db import Base
from config.settings import settings
from models import db_models  # noqa: F401 register tables on Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def sync_url() -> str:
    """Migrations run on the sync driver: mysql+aiomysql -> mysql+pymysql, sqlite+aiosqlite -> sqlite."""
    url = settings.DATABASE_URL
    if not url or url.startswith("disabled"):
        raise RuntimeError("DATABASE_URL is not configured; cannot run migrations")
    return url.replace("mysql+aiomysql://", "mysql+pymysql://").replace("sqlite+aiosqlite://", "sqlite://")


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (generate SQL script)."""
    context.configure(
        url=sync_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations online (with active DB connection)."""
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = sync_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
