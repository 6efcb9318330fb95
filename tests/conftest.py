"""
Shared test configuration and fixtures for OAuth Link tests.

Provides the in-memory account store used by the engine tests, and the PostgreSQL
database setup used by the model and store tests. PostgreSQL tests are skipped when no
server is reachable.
"""

import os
import uuid
from unittest.mock import AsyncMock, Mock
import pytest
import pytest_asyncio
from cryptography.fernet import Fernet
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from social.graze.oauthlink.model.base import Base
from social.graze.oauthlink.reconcile.postgres import PostgresAccountStore
from social.graze.oauthlink.reconcile.service import ReconciliationService
from tests.test_helpers import InMemoryAccountStore


# Test database configuration
TEST_DB_HOST = os.getenv("TEST_DB_HOST", "postgres")
TEST_DB_PORT = os.getenv("TEST_DB_PORT", "5432")
TEST_DB_USER = os.getenv("TEST_DB_USER", "postgres")
TEST_DB_PASSWORD = os.getenv("TEST_DB_PASSWORD", "password")

# Admin URL for database creation/deletion (connects to postgres database)
ADMIN_DATABASE_URL = f"postgresql+asyncpg://{TEST_DB_USER}:{TEST_DB_PASSWORD}@{TEST_DB_HOST}:{TEST_DB_PORT}/postgres"


@pytest.fixture
def memory_store():
    """Provide an empty in-memory account store."""
    return InMemoryAccountStore()


@pytest.fixture
def statsd_client():
    """Provide a mock Telegraf/StatsD client."""
    client = Mock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def service(memory_store, statsd_client):
    """Provide a reconciliation service backed by the in-memory store."""
    return ReconciliationService(memory_store, statsd_client)


async def check_postgres_available():
    """Check if PostgreSQL is available for testing."""
    try:
        admin_engine = create_async_engine(ADMIN_DATABASE_URL, echo=False)
        async with admin_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        await admin_engine.dispose()
        return True
    except Exception:
        return False


@pytest_asyncio.fixture(scope="function")
async def test_database():
    """Create and clean up test database for each test function."""
    if not await check_postgres_available():
        pytest.skip("PostgreSQL database not available for testing")

    # Use a unique database name for each test to avoid conflicts
    unique_db_name = f"oauthlink_test_{uuid.uuid4().hex[:8]}"
    unique_db_url = (
        f"postgresql+asyncpg://{TEST_DB_USER}:{TEST_DB_PASSWORD}@"
        f"{TEST_DB_HOST}:{TEST_DB_PORT}/{unique_db_name}"
    )

    admin_engine = create_async_engine(
        ADMIN_DATABASE_URL, echo=False, isolation_level="AUTOCOMMIT"
    )

    try:
        async with admin_engine.connect() as conn:
            await conn.execute(text(f"CREATE DATABASE {unique_db_name}"))

        yield unique_db_url

    finally:
        async with admin_engine.connect() as conn:
            await conn.execute(text(f"DROP DATABASE IF EXISTS {unique_db_name}"))
        await admin_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def engine(test_database):
    """Create async SQLAlchemy engine for testing with PostgreSQL."""
    engine = create_async_engine(
        test_database,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def database_session_maker(engine):
    """Create async session factory for testing."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(database_session_maker):
    """Create async database session for testing."""
    async with database_session_maker() as session:
        yield session


@pytest.fixture
def encryption_key():
    return Fernet(Fernet.generate_key())


@pytest_asyncio.fixture(scope="function")
async def postgres_store(database_session_maker, encryption_key):
    """Provide a PostgreSQL account store on a fresh test database."""
    return PostgresAccountStore(database_session_maker, encryption_key)
