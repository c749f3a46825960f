import asyncio
import asyncpg
import logging
from typing import Dict, Optional, Tuple
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from .domain import StoreConflictError
from .models import WrappedResult, WrappedInsights, ResultSource

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS wrapped_result (
    username TEXT NOT NULL,
    year INT NOT NULL,
    generated_at TIMESTAMPTZ NOT NULL,
    source JSON NOT NULL,
    insights JSON NOT NULL,
    PRIMARY KEY (username, year)
)
"""

# Connection-level failures only; a unique violation must never be retried.
_retry_connection = retry(
    retry=retry_if_exception_type(
        (asyncpg.exceptions.ConnectionDoesNotExistError, asyncpg.exceptions.InterfaceError)
    ),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    stop=stop_after_attempt(3),
    reraise=True,
)


class PostgresResultRepository:
    """
    Result store backed by PostgreSQL.

    The (username, year) primary key enforces at most one stored result per
    key. The pool is created once by the process entry point via ``init``.
    """

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.pool = None

    async def init(self):
        """Initialize the database connection pool."""
        self.pool = await asyncpg.create_pool(
            self.dsn, min_size=1, max_size=10, command_timeout=60
        )

    async def close(self):
        """Close the database connection pool."""
        if self.pool:
            await self.pool.close()

    @_retry_connection
    async def ensure_schema(self):
        async with self.pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)

    @_retry_connection
    async def find_by_key(self, username: str, year: int) -> Optional[WrappedResult]:
        sql = """
        SELECT username, year, generated_at, source, insights
          FROM wrapped_result
         WHERE username = $1 AND year = $2
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(sql, username, year)

        if row is None:
            return None
        return WrappedResult(
            username=row["username"],
            year=row["year"],
            generated_at=row["generated_at"],
            source=ResultSource.model_validate_json(row["source"]),
            insights=WrappedInsights.model_validate_json(row["insights"]),
        )

    @_retry_connection
    async def insert_unique(self, result: WrappedResult) -> None:
        """
        Insert a result, raising StoreConflictError if the key already exists.
        """
        sql = """
        INSERT INTO wrapped_result (username, year, generated_at, source, insights)
          VALUES ($1, $2, $3, $4::json, $5::json)
        """
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    sql,
                    result.username,
                    result.year,
                    result.generated_at,
                    result.source.model_dump_json(by_alias=True),
                    result.insights.model_dump_json(by_alias=True),
                )
        except asyncpg.exceptions.UniqueViolationError as e:
            raise StoreConflictError(result.username, result.year) from e
        logger.info(f"💾 Stored wrapped result for {result.username} ({result.year})")


class InMemoryResultRepository:
    """Process-local result store with the same unique-key contract."""

    def __init__(self):
        self._results: Dict[Tuple[str, int], WrappedResult] = {}
        self._lock = asyncio.Lock()

    async def init(self):
        pass

    async def close(self):
        pass

    async def ensure_schema(self):
        pass

    async def find_by_key(self, username: str, year: int) -> Optional[WrappedResult]:
        return self._results.get((username, year))

    async def insert_unique(self, result: WrappedResult) -> None:
        key = (result.username, result.year)
        async with self._lock:
            if key in self._results:
                raise StoreConflictError(result.username, result.year)
            self._results[key] = result

    def __len__(self):
        return len(self._results)
