"""
Async database engine and session management.

Purpose:
- Create SQLAlchemy async engine (MySQL via aiomysql in deployment)
- Provide async session factory for the DB-backed subscription store
- Provide Base declarative class for ORM models

Production notes:
- Use connection pooling with appropriate pool_size and max_overflow
- Use Alembic migrations rather than create_all outside local dev
"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from config.settings import settings
import logging
from typing import Optional

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
	return create_async_engine(url, echo=echo, future=True)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
	return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


# When the DB is disabled, do not create an engine at all.
engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None

if settings.db_enabled:
	engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
	async_session_maker = build_session_maker(engine)
	logger.info("Async DB engine created for %s", engine.url.render_as_string(hide_password=True))
else:
	logger.warning("Database disabled (USE_DB=%s); using the in-memory subscription store.", settings.USE_DB)


async def create_all(target: AsyncEngine):
	"""Create tables for all imported ORM models (dev convenience)."""
	from models import db_models  # noqa: F401 ensure models are imported so tables are registered

	async with target.begin() as conn:
		await conn.run_sync(Base.metadata.create_all)
