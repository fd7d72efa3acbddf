"""
Database gateway: pooled connection, parameterized statements and transactions.
Uses SQLAlchemy async with aiosqlite by default.
"""

import re
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Union

import structlog
from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import AsyncAdaptedQueuePool, QueuePool, StaticPool
from sqlalchemy.sql import Executable

from .exceptions import PersistenceError
from .utils.logger import performance_timer


logger = structlog.get_logger("estate_assistant.database")

Statement = Union[str, Executable]

_PROCEDURE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


@dataclass
class QueryResult:
    """Buffered outcome of one statement."""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0

    def first(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None


def set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    # WAL mode for better concurrency
    cursor.execute("PRAGMA journal_mode=WAL")
    # NORMAL synchronous is safe with WAL and faster than FULL
    cursor.execute("PRAGMA synchronous=NORMAL")
    # Busy timeout - wait up to 5 seconds
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def _execute(
    connection: AsyncConnection,
    statement: Statement,
    params: Optional[Mapping[str, Any]] = None
) -> QueryResult:
    if isinstance(statement, str):
        statement = text(statement)

    if params:
        result = await connection.execute(statement, dict(params))
    else:
        result = await connection.execute(statement)

    if result.returns_rows:
        rows = [dict(row) for row in result.mappings().all()]
        return QueryResult(rows=rows, rowcount=len(rows))
    return QueryResult(rowcount=result.rowcount)


class Transaction:
    """Handle given to callers inside `Database.transaction()`."""

    def __init__(self, connection: AsyncConnection):
        self.connection = connection

    async def execute_query(
        self,
        statement: Statement,
        params: Optional[Mapping[str, Any]] = None,
        operation: str = "query"
    ) -> QueryResult:
        return await _execute(self.connection, statement, params)


class Database:
    """
    Owns the connection pool for one database.

    The engine is created lazily and the connection is verified with a trivial
    round-trip before first use, and again after a detected disconnect.
    Values always travel as bound parameters.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 10,
        max_overflow: int = 0,
        pool_timeout: float = 60.0,
        echo: bool = False
    ):
        self.url = url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.echo = echo

        self._engine: Optional[AsyncEngine] = None
        self._connected = False
        self.last_query_at: Optional[datetime] = None

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(
            settings.DATABASE_URL,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            echo=settings.DB_ECHO,
        )

    @property
    def is_connected(self) -> bool:
        return self._connected and self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    def _create_engine(self) -> AsyncEngine:
        url = make_url(self.url)
        is_sqlite = url.get_backend_name() == "sqlite"

        options: Dict[str, Any] = {"echo": self.echo, "pool_pre_ping": True}
        if is_sqlite and url.database in (None, "", ":memory:"):
            # In-memory SQLite only exists inside a single connection
            options["poolclass"] = StaticPool
        else:
            options.update(
                poolclass=AsyncAdaptedQueuePool,
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_timeout=self.pool_timeout,
            )

        engine = create_async_engine(self.url, **options)
        if is_sqlite:
            event.listen(engine.sync_engine, "connect", set_sqlite_pragma)
        return engine

    @asynccontextmanager
    async def _translate_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except DBAPIError as e:
            if e.connection_invalidated:
                self._connected = False
            raise PersistenceError(
                f"Database {operation} failed",
                {"operation": operation, "error": str(e.orig)}
            ) from e
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Database {operation} failed",
                {"operation": operation, "error": str(e)}
            ) from e
        except OSError as e:
            self._connected = False
            raise PersistenceError(
                f"Database {operation} failed",
                {"operation": operation, "error": str(e)}
            ) from e

    async def connect(self) -> None:
        """Open the pool and verify it with `SELECT 1`. No-op when already connected."""
        if self.is_connected:
            return

        url = make_url(self.url)
        with performance_timer("database-connect", "Database", backend=url.get_backend_name()):
            async with self._translate_errors("connect"):
                async with self.engine.connect() as conn:
                    result = await conn.execute(text("SELECT 1 AS test"))
                    result.scalar_one()

        self._connected = True
        self.last_query_at = utcnow()
        logger.info("Database connection established", backend=url.get_backend_name(), database=url.database)

    async def execute_query(
        self,
        statement: Statement,
        params: Optional[Mapping[str, Any]] = None,
        operation: str = "query"
    ) -> QueryResult:
        """
        Run one statement in its own transaction.

        Args:
            statement: SQLAlchemy Core statement, or SQL text using `:name` binds
            params: Values for the named binds
            operation: Label used in logs and error details
        """
        await self.connect()

        with performance_timer("database-query", "Database", db_operation=operation) as timer:
            async with self._translate_errors(operation):
                async with self.engine.begin() as conn:
                    result = await _execute(conn, statement, params)
            timer["rowcount"] = result.rowcount

        self.last_query_at = utcnow()
        return result

    async def execute_procedure(self, name: str, params: Optional[Mapping[str, Any]] = None) -> QueryResult:
        """Call a stored procedure with named parameters on engines that support CALL."""
        if not _PROCEDURE_NAME.match(name):
            raise PersistenceError(f"Invalid procedure name '{name}'", {"procedure": name})

        params = dict(params or {})
        placeholders = ", ".join(f":{key}" for key in params)
        return await self.execute_query(f"CALL {name}({placeholders})", params, operation=f"procedure:{name}")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Group statements into one unit; commits on success, rolls back on any error."""
        await self.connect()

        async with self._translate_errors("transaction"):
            async with self.engine.begin() as conn:
                yield Transaction(conn)

        self.last_query_at = utcnow()

    async def create_schema(self) -> None:
        """Initialize database tables."""
        from . import models  # noqa: F401  registers the tables on Base.metadata

        await self.connect()
        async with self._translate_errors("create-schema"):
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    def _pool_status(self) -> Dict[str, int]:
        pool = self._engine.pool if self._engine is not None else None
        if not isinstance(pool, QueuePool):
            return {"poolSize": 0, "poolAvailable": 0, "poolPending": 0}
        return {
            "poolSize": pool.size(),
            "poolAvailable": pool.checkedin(),
            # Connections opened beyond pool_size
            "poolPending": max(pool.overflow(), 0),
        }

    async def get_health_status(self) -> Dict[str, Any]:
        url = make_url(self.url)
        health = {
            "connected": self.is_connected,
            **self._pool_status(),
            "backend": url.get_backend_name(),
            "database": url.database,
        }

        if not self.is_connected:
            health["status"] = "disconnected"
            return health

        try:
            await self.execute_query("SELECT CURRENT_TIMESTAMP AS timestamp", operation="health-check")
        except PersistenceError as e:
            health.update(connected=False, status="error", error=e.message)
            return health

        health["lastQuery"] = self.last_query_at.isoformat() if self.last_query_at else None
        health["status"] = "healthy"
        return health

    async def close(self) -> None:
        """Close database connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
        self._connected = False
        logger.info("Database connection closed")
