"""Shared pytest fixtures for finchat tests.

Provides containerized PostgreSQL for integration tests via two modes:
1. TEST_DATABASE_* env vars present → connect to external PG (CI scenario)
2. Otherwise → testcontainers auto-starts a temporary PG container (local dev)

Safety: refuses to run against any database whose name doesn't contain '_test'.
"""

from __future__ import annotations

import asyncio
import os

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from finchat.constants import DB_SCHEMA
from finchat.ledger.database import Base, ensure_schema

_TRUNCATABLE = (
    "budgets",
    "transactions",
    "installment_payments",
    "installment_plans",
    "payment_methods",
    "payment_method_preferences",
    "learned_patterns",
    "parsing_metrics",
    "authorized_numbers",
    "chat_sessions",
)


def _validate_test_db_name(name: str) -> None:
    """Safety: refuse to truncate a database whose name doesn't contain '_test'."""
    if "_test" not in name.lower():
        raise RuntimeError(
            f"Refusing to run tests against database '{name}': "
            "name must contain '_test' to prevent accidental data loss. "
            "Set TEST_DATABASE_NAME to a test-specific database."
        )


def _build_pg_url_from_env() -> str | None:
    """Build async PG URL from TEST_DATABASE_* env vars, or return None."""
    host = os.getenv("TEST_DATABASE_HOST")
    if host is None:
        return None
    port = os.getenv("TEST_DATABASE_PORT", "5432")
    user = os.getenv("TEST_DATABASE_USER", "postgres")
    password = os.getenv("TEST_DATABASE_PASSWORD", "")
    name = os.getenv("TEST_DATABASE_NAME", "finchat_test")
    _validate_test_db_name(name)
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{name}"


@pytest.fixture(scope="session")
def _pg_container():
    """Manage testcontainers PostgreSQL lifecycle.

    Yields (url, container) where container is None if using external PG.
    """
    url = _build_pg_url_from_env()
    if url is not None:
        yield url, None
        return

    from testcontainers.postgres import PostgresContainer

    container = PostgresContainer("postgres:16", dbname="finchat_test")
    container.start()

    host = container.get_container_host_ip()
    port = container.get_exposed_port(5432)
    user = container.username
    password = container.password
    dbname = container.dbname
    _validate_test_db_name(dbname)

    url = f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{dbname}"

    yield url, container

    container.stop()


@pytest.fixture(scope="session")
def pg_url(_pg_container) -> str:
    """Provide an async PostgreSQL URL for integration tests."""
    url, _ = _pg_container
    return url


@pytest_asyncio.fixture(scope="session")
async def db_engine(pg_url: str):
    """Create async engine, set up schema, tables and default categories. Tear down after session."""
    engine = create_async_engine(pg_url, echo=False)

    await ensure_schema(engine, DB_SCHEMA)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.execute(text(f"DROP SCHEMA IF EXISTS {DB_SCHEMA} CASCADE"))

    await engine.dispose()


@pytest_asyncio.fixture(autouse=True)
async def _integration_cleanup(request):
    """Truncate user data after each integration test for isolation.

    Uses request.getfixturevalue() for lazy resolution: non-integration
    tests never trigger the db_engine → _pg_container fixture chain.
    Default categories (user_id IS NULL) survive between tests.
    """
    yield

    if not any(m.name == "integration" for m in request.node.iter_markers()):
        return
    if not asyncio.iscoroutinefunction(request.node.obj):
        return

    try:
        engine = request.getfixturevalue("db_engine")
    except Exception:
        return  # This test doesn't use the shared db fixture

    async with engine.begin() as conn:
        result = await conn.execute(text(
            "SELECT table_name FROM information_schema.tables"
            f" WHERE table_schema = '{DB_SCHEMA}'"
        ))
        existing = {row[0] for row in result.fetchall()}
        truncatable = [t for t in _TRUNCATABLE if t in existing]
        if truncatable:
            qualified = ", ".join(f"{DB_SCHEMA}.{t}" for t in truncatable)
            await conn.execute(text(f"TRUNCATE {qualified} CASCADE"))
        await conn.execute(text(f"DELETE FROM {DB_SCHEMA}.categories WHERE user_id IS NOT NULL"))
