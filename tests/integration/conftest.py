"""
Shared fixtures for integration tests.

PostgreSQL-backed tests need DATABASE_URL to point at a reachable server
(see .env.example); they are skipped otherwise.
"""

from collections.abc import Generator

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from gatekeep.adapters.repository.postgres import run_migrations
from gatekeep.config.settings import Settings


@pytest.fixture(scope="session")
def database_url() -> str:
    return Settings(_env_file=None).database_url


@pytest.fixture(scope="session")
def pool(database_url: str) -> Generator[ConnectionPool, None, None]:
    """Migrated connection pool, or skip if PostgreSQL is not reachable."""
    try:
        with psycopg.connect(database_url, connect_timeout=2):
            pass
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL not reachable: {e}")

    pool = ConnectionPool(conninfo=database_url, min_size=1, max_size=10, open=True)
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean users table before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM users")
        conn.commit()
    yield
