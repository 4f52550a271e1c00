"""
create_tables.py
----------------
One-shot script to create all database tables
(clients, templates, offers, admin_allowed_emails, users).
Use this for quick setup. For production migrations, use Alembic instead.

Usage:
    python create_tables.py
"""

import asyncio

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from offerdesk.core.config import settings
from offerdesk.core.logging import configure_logging, get_logger
from offerdesk.models import Base  # Imports all models so metadata is populated

logger = get_logger(__name__)


async def create_all_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def main() -> None:
    engine = create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    try:
        await create_all_tables(engine)
    finally:
        await engine.dispose()
    logger.info("All tables created", tables=sorted(Base.metadata.tables))


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
