"""Test configuration and fixtures for filterql."""

from dotenv import load_dotenv
import pytest
import asyncio
import os
import sys
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from tests.models import Base

# Try to load environment variables from .env file
load_dotenv()


@pytest.fixture(scope="session", autouse=True)
def event_loop_policy():
    """Set event loop policy for Windows compatibility."""
    if sys.platform.startswith("win"):
        # Use SelectorEventLoop instead of ProactorEventLoop on Windows
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    yield


@pytest.fixture(scope="function")
async def engine():
    """Create a PostgreSQL engine for each test function.

    Integration tests need a real PostgreSQL server; they are skipped when
    FILTERQL_TEST_DATABASE_URL (e.g. postgresql+asyncpg://user:pw@localhost/filterql_test)
    is not set.
    """
    test_db_url = os.getenv('FILTERQL_TEST_DATABASE_URL')
    if not test_db_url:
        pytest.skip("FILTERQL_TEST_DATABASE_URL is not set")

    engine = create_async_engine(
        test_db_url,
        echo=False,
        # Minimal configuration to avoid connection pool issues in tests
        pool_size=1,
        max_overflow=0,
        pool_pre_ping=False,
        pool_recycle=-1,
    )
    # Ensure a clean slate before tests: drop then create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new database session for each test function."""
    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session


# Import fixtures from fixtures module
from tests.fixtures import (  # noqa: E402,F401
    sample_people,
    sample_buckets,
    sample_marbles,
    sample_pets,
    sample_dishes,
    populated_db,
    fake_session,
)
