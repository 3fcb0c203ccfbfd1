import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import asyncpg
import aiosql
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

SCHEMA = "hotelbeds"


def _parse_database_url():
    """Parse DATABASE_URL into individual components."""
    url = os.getenv("DATABASE_URL")
    if not url:
        return None

    parsed = urlparse(url)
    return {
        "host": parsed.hostname,
        "port": parsed.port or 5432,
        "database": parsed.path.lstrip("/"),
        "user": parsed.username,
        "password": parsed.password,
    }


def connection_settings() -> dict:
    """DATABASE_URL first (deployed), then HOTELBEDS_DB_* vars (local dev)."""
    settings = _parse_database_url()
    if settings:
        return settings
    return {
        "host": os.getenv("HOTELBEDS_DB_HOST", "localhost"),
        "port": int(os.getenv("HOTELBEDS_DB_PORT", "5432")),
        "database": os.getenv("HOTELBEDS_DB_NAME", "hotelbeds"),
        "user": os.getenv("HOTELBEDS_DB_USER"),
        "password": os.getenv("HOTELBEDS_DB_PASSWORD"),
    }


# Load queries from SQL files
queries = aiosql.from_path(
    Path(__file__).parent / "queries",
    "asyncpg",
)


async def _init_connection(conn):
    """Initialize each connection with search_path."""
    await conn.execute(f"SET search_path TO {SCHEMA}, public")


class Database:
    """
    Connection pool handle, passed to whatever needs the store.

    Usage:
        db = Database.from_env()
        await db.connect()
        async with db.acquire() as conn:
            ...
        await db.close()
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 5432,
        database: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        min_size: int = 1,
        max_size: int = 10,
        command_timeout: float = 3600,
    ):
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self._pool: Optional[asyncpg.Pool] = None

    @classmethod
    def from_env(cls, **overrides) -> "Database":
        settings = connection_settings()
        settings.update(overrides)
        return cls(**settings)

    @property
    def connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> asyncpg.Pool:
        """Create the pool once."""
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
                min_size=self.min_size,
                max_size=self.max_size,
                # Bulk loads run long
                command_timeout=self.command_timeout,
                max_inactive_connection_lifetime=300,
                statement_cache_size=0,
                init=_init_connection,
            )
        return self._pool

    @asynccontextmanager
    async def acquire(self):
        """Get connection from pool."""
        pool = await self.connect()
        async with pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self):
        """Get connection with transaction context."""
        pool = await self.connect()
        async with pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def close(self):
        """Gracefully close all connections."""
        if self._pool:
            await self._pool.close()
            self._pool = None
