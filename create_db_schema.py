import asyncio

from config.settings import settings
from core.db import build_engine, create_all


async def main():
    """
    One-time script to create all tables in the configured database.
    Uses a temporary async engine built from settings.DATABASE_URL.
    """
    db_url = settings.DATABASE_URL
    if not db_url or db_url.startswith("disabled"):
        raise RuntimeError(f"DATABASE_URL is not configured correctly: {db_url}")

    engine = build_engine(db_url)
    await create_all(engine)
    await engine.dispose()
    print("Database schema created/updated successfully.")


if __name__ == "__main__":
    asyncio.run(main())
