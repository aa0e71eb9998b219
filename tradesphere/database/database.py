# tradesphere/database/database.py
import asyncpg
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional
from ..config import Config
from .repositories import (
    PostgresCartRepository,
    PostgresOrderRepository,
    PostgresProductRepository,
)


class PostgresSession:
    """Repositories bound to one connection and one open transaction"""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn
        self.products = PostgresProductRepository(conn)
        self.carts = PostgresCartRepository(conn)
        self.orders = PostgresOrderRepository(conn)


class Database:
    """PostgreSQL connection management"""

    def __init__(self, dsn: Optional[str] = None, min_size: int = 2, max_size: int = 10):
        self.dsn = dsn or Config.DATABASE_URL
        self.min_size = min_size
        self.max_size = max_size
        self.pool: Optional[asyncpg.Pool] = None
        self.logger = logging.getLogger(__name__)

    async def connect(self):
        """Open the pool and apply pending migrations"""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size
            )

            await self._run_migrations()

            self.logger.info("Database connection established")
        except Exception as e:
            self.logger.error(f"Database connection failed: {e}")
            raise

    async def close(self):
        """Close the pool"""
        if self.pool:
            await self.pool.close()
            self.logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[PostgresSession]:
        """Run the enclosed calls in a single transaction"""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield PostgresSession(conn)

    async def _run_migrations(self):
        """Apply *.sql files from the migrations directory once each"""
        try:
            migrations_path = Path(__file__).parent / "migrations"

            async with self.pool.acquire() as conn:
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS migrations (
                        id SERIAL PRIMARY KEY,
                        name VARCHAR(255) NOT NULL,
                        applied_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                for migration_file in sorted(migrations_path.glob("*.sql")):
                    migration_name = migration_file.name

                    is_applied = await conn.fetchval(
                        "SELECT COUNT(*) FROM migrations WHERE name = $1",
                        migration_name
                    )

                    if not is_applied:
                        async with conn.transaction():
                            await conn.execute(migration_file.read_text())

                            await conn.execute(
                                "INSERT INTO migrations (name) VALUES ($1)",
                                migration_name
                            )

                        self.logger.info(f"Migration {migration_name} applied")

        except Exception as e:
            self.logger.error(f"Migration failed: {e}")
            raise
