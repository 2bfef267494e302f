"""Async engine creation, schema bootstrap and default-category seeding."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

# Model modules register their tables in Base.metadata on import.
import finchat.auth.models  # noqa: F401
import finchat.metrics.models  # noqa: F401
import finchat.nlp.models  # noqa: F401
from finchat.constants import DB_SCHEMA
from finchat.ledger.models import Base

if TYPE_CHECKING:
    from finchat.config.settings import DatabaseSettings

logger = structlog.get_logger()

# Categories every user sees until they create their own.
DEFAULT_CATEGORIES: tuple[tuple[str, str], ...] = (
    ("Alimentação", "expense"),
    ("Transporte", "expense"),
    ("Moradia", "expense"),
    ("Saúde", "expense"),
    ("Educação", "expense"),
    ("Lazer", "expense"),
    ("Compras", "expense"),
    ("Contas", "expense"),
    ("Outros", "expense"),
    ("Salário", "income"),
    ("Freelance", "income"),
    ("Investimentos", "income"),
)


def build_database_url(settings: DatabaseSettings) -> str:
    return (
        f"postgresql+asyncpg://{settings.user}:{settings.password}"
        f"@{settings.host}:{settings.port}/{settings.name}"
    )


async def create_db_engine(settings: DatabaseSettings) -> AsyncEngine:
    """Create an async SQLAlchemy engine from DatabaseSettings."""
    engine = create_async_engine(
        build_database_url(settings),
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        connect_args={"server_settings": {"search_path": f"{settings.schema_}, public"}},
    )
    logger.info("db_engine_created", host=settings.host, database=settings.name)
    return engine


async def ensure_schema(engine: AsyncEngine, schema: str = DB_SCHEMA) -> None:
    """Ensure the target schema exists, create all tables and seed default categories."""
    async with engine.begin() as conn:
        await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema}"))
        await conn.run_sync(Base.metadata.create_all)

        existing = await conn.execute(text(
            f"SELECT count(*) FROM {schema}.categories WHERE user_id IS NULL"
        ))
        if existing.scalar_one() == 0:
            await conn.execute(
                text(f"INSERT INTO {schema}.categories (name, type) VALUES (:name, :type)"),
                [{"name": name, "type": kind} for name, kind in DEFAULT_CATEGORIES],
            )
            logger.info("default_categories_seeded", count=len(DEFAULT_CATEGORIES))

    logger.info("db_schema_ensured", schema=schema)

