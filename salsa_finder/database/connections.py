"""Database connection management for Salsa Finder."""

import json
from typing import Optional, Dict, Any
from contextlib import asynccontextmanager
import asyncpg
import redis.asyncio as redis
import structlog

from salsa_finder.models.config import SalsaFinderConfig


logger = structlog.get_logger(__name__)


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Decode JSON/JSONB columns into Python objects."""
    for type_name in ("json", "jsonb"):
        await conn.set_type_codec(
            type_name,
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )


class DatabaseManager:
    """Owns the PostgreSQL pool and the optional Redis client.

    Opened once at process start with ``initialize()`` and closed at shutdown
    with ``cleanup()``; repositories receive the manager explicitly.
    """

    def __init__(self, config: SalsaFinderConfig):
        """
        Initialize database manager with configuration.

        Args:
            config: Application configuration containing database settings
        """
        self.config = config
        self.logger = logger.bind(component="database_manager")

        self._postgres_pool: Optional[asyncpg.Pool] = None
        self._redis_client: Optional[redis.Redis] = None

        self._postgres_pool_config = {
            "min_size": max(1, config.db_pool_size // 2),
            "max_size": config.db_pool_size,
            "max_inactive_connection_lifetime": 300,
            "timeout": config.db_pool_timeout,
            "command_timeout": 60,
            "init": _init_connection,
            "server_settings": {
                "application_name": "salsa_finder",
                "timezone": "UTC"
            }
        }

        self._redis_pool_config = {
            "max_connections": config.redis_pool_size,
            "retry_on_timeout": True,
            "health_check_interval": 30
        }

    @property
    def redis_enabled(self) -> bool:
        return self._redis_client is not None

    async def initialize(self) -> None:
        """Initialize database connections and pools."""
        try:
            self.logger.info("Initializing database connections")

            await self._initialize_postgres()

            if self.config.redis_url:
                await self._initialize_redis()

            await self._verify_connections()

            self.logger.info(
                "Database connections initialized successfully",
                postgres_pool_size=self._postgres_pool.get_size() if self._postgres_pool else 0,
                redis_connected=self._redis_client is not None
            )

        except Exception as e:
            self.logger.error("Failed to initialize database connections", error=str(e))
            await self.cleanup()
            raise

    async def _initialize_postgres(self) -> None:
        """Initialize PostgreSQL connection pool."""
        self.logger.info("Creating PostgreSQL connection pool",
                       database_url=self._mask_password(self.config.database_url))

        self._postgres_pool = await asyncpg.create_pool(
            self.config.database_url,
            **self._postgres_pool_config
        )

        self.logger.info("PostgreSQL connection pool created successfully")

    async def _initialize_redis(self) -> None:
        """Initialize Redis client with connection pool."""
        self.logger.info("Creating Redis connection", redis_url=self._mask_password(self.config.redis_url))

        self._redis_client = redis.from_url(
            self.config.redis_url,
            **self._redis_pool_config,
            decode_responses=True
        )

    async def _verify_connections(self) -> None:
        """Verify that database connections are working."""
        if self._postgres_pool:
            async with self._postgres_pool.acquire() as conn:
                version = await conn.fetchval("SELECT version()")
                self.logger.info("PostgreSQL connection verified", version=version[:50])

        if self._redis_client:
            await self._redis_client.ping()
            self.logger.info("Redis connection verified")

    async def cleanup(self) -> None:
        """Clean up database connections and pools."""
        self.logger.info("Cleaning up database connections")

        if self._redis_client:
            try:
                await self._redis_client.aclose()
                self.logger.info("Redis client closed")
            except Exception as e:
                self.logger.error("Error closing Redis client", error=str(e))
            finally:
                self._redis_client = None

        if self._postgres_pool:
            try:
                await self._postgres_pool.close()
                self.logger.info("PostgreSQL pool closed")
            except Exception as e:
                self.logger.error("Error closing PostgreSQL pool", error=str(e))
            finally:
                self._postgres_pool = None

    @asynccontextmanager
    async def get_postgres_connection(self):
        """
        Get a PostgreSQL connection from the pool.

        Yields:
            asyncpg.Connection: Database connection
        """
        if not self._postgres_pool:
            raise RuntimeError("PostgreSQL pool not initialized")

        async with self._postgres_pool.acquire() as connection:
            try:
                yield connection
            except Exception as e:
                self.logger.error("Database operation error", error=str(e))
                raise

    @asynccontextmanager
    async def get_postgres_transaction(self):
        """
        Get a PostgreSQL connection with an active transaction.

        The transaction commits when the block exits normally and rolls back
        when it raises; the exception is re-raised unchanged.

        Yields:
            asyncpg.Connection: Database connection with active transaction
        """
        async with self.get_postgres_connection() as conn:
            async with conn.transaction():
                yield conn

    def get_redis_client(self) -> redis.Redis:
        """
        Get the Redis client.

        Returns:
            redis.Redis: Redis client instance

        Raises:
            RuntimeError: If Redis client not initialized
        """
        if not self._redis_client:
            raise RuntimeError("Redis client not initialized")
        return self._redis_client

    async def health_check(self) -> Dict[str, Any]:
        """Perform health check on all database connections."""
        health = {
            "postgres": {"status": "unknown"},
            "redis": {"status": "disabled"},
            "overall": "unknown"
        }

        try:
            if self._postgres_pool:
                async with self.get_postgres_connection() as conn:
                    await conn.fetchval("SELECT 1")
                health["postgres"] = {"status": "healthy"}
            else:
                health["postgres"] = {"status": "not_initialized"}
        except Exception as e:
            health["postgres"] = {"status": "unhealthy", "error": str(e)}

        if self._redis_client:
            try:
                await self._redis_client.ping()
                health["redis"] = {"status": "healthy"}
            except Exception as e:
                health["redis"] = {"status": "unhealthy", "error": str(e)}

        postgres_healthy = health["postgres"]["status"] == "healthy"
        redis_ok = health["redis"]["status"] in ("healthy", "disabled")

        if postgres_healthy and redis_ok:
            health["overall"] = "healthy"
        elif postgres_healthy:
            health["overall"] = "degraded"
        else:
            health["overall"] = "unhealthy"

        return health

    def _mask_password(self, database_url: str) -> str:
        """Mask password in database URL for logging."""
        try:
            if "://" in database_url and "@" in database_url:
                scheme, rest = database_url.split("://", 1)
                if "@" in rest:
                    auth, host_part = rest.split("@", 1)
                    if ":" in auth:
                        user, _ = auth.split(":", 1)
                        return f"{scheme}://{user}:***@{host_part}"
            return database_url
        except Exception:
            return "***"
