"""
Async database access helpers (raw SQL) using asyncpg.

`Database` owns the connection pool. The app factory constructs one handle
per process and stores it on `app.state` (see `api/main.py`); repositories
receive it explicitly.

Connection strategy:
- "eager": the lifespan startup calls `ensure_ready()`
- "lazy": the first query calls `ensure_ready()`

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Iterator
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

logger = logging.getLogger(__name__)


# Store failures are explicit and separable from programming errors.
class DatabaseError(RuntimeError):
    pass


class DatabaseUnavailableError(DatabaseError):
    pass


class DatabaseQueryError(DatabaseError):
    """The store rejected a statement or its arguments."""


class DuplicateKeyError(DatabaseError):
    def __init__(self, constraint: str | None = None) -> None:
        super().__init__(f"Unique constraint violated: {constraint or 'unknown'}")
        self.constraint = constraint


_CONNECTION_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.PostgresConnectionError,
    asyncpg.CannotConnectNowError,
    asyncpg.ConnectionDoesNotExistError,
)

# Argument encoding failures (asyncpg.DataError) are InterfaceErrors.
_QUERY_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
)


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except asyncpg.UniqueViolationError as exc:
        raise DuplicateKeyError(getattr(exc, "constraint_name", None)) from exc
    except _CONNECTION_ERRORS as exc:
        raise DatabaseUnavailableError(f"Database unavailable: {exc!r}") from exc
    except _QUERY_ERRORS as exc:
        raise DatabaseQueryError(f"Query failed: {exc!r}") from exc


class Database:
    def __init__(
        self,
        url: str,
        *,
        max_size: int = 5,
        connect_timeout_s: float = 8.0,
        command_timeout_s: float = 20.0,
    ) -> None:
        self._url = (url or "").strip()
        self._max_size = max_size
        self._connect_timeout_s = connect_timeout_s
        self._command_timeout_s = command_timeout_s
        self._pool: asyncpg.Pool | None = None
        self._connecting: asyncio.Future[asyncpg.Pool] | None = None

    @property
    def is_ready(self) -> bool:
        return self._pool is not None

    async def _create_pool(self) -> asyncpg.Pool:
        if not self._url:
            raise DatabaseUnavailableError("DATABASE_URL is not set.")
        try:
            pool = await asyncpg.create_pool(
                dsn=_sanitize_database_url(self._url),
                min_size=1,
                max_size=self._max_size,
                timeout=self._connect_timeout_s,
                command_timeout=self._command_timeout_s,
            )
        except _CONNECTION_ERRORS + _QUERY_ERRORS as exc:
            # Bad credentials or a missing database are outages too.
            raise DatabaseUnavailableError(f"Database unavailable: {exc!r}") from exc
        logger.info("db_pool_ready max_size=%s", self._max_size)
        return pool

    async def ensure_ready(self) -> asyncpg.Pool:
        """
        Create the pool once; concurrent callers share the same attempt.

        A failed attempt is dropped so the next call tries again.
        """
        if self._pool is not None:
            return self._pool

        if self._connecting is None:
            self._connecting = asyncio.ensure_future(self._create_pool())
        connecting = self._connecting

        try:
            pool = await asyncio.shield(connecting)
        except Exception:
            if self._connecting is connecting:
                self._connecting = None
            logger.warning("db_unavailable", exc_info=True)
            raise

        self._pool = pool
        self._connecting = None
        return pool

    async def close(self) -> None:
        if self._pool is None:
            return None
        await self._pool.close()
        self._pool = None

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        pool = await self.ensure_ready()
        with _translate_errors():
            row = await pool.fetchrow(sql, *args)
        return _record_to_dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        pool = await self.ensure_ready()
        with _translate_errors():
            rows = await pool.fetch(sql, *args)
        return [_record_to_dict(r) for r in rows]

    async def fetch_val(self, sql: str, *args: Any) -> Any:
        pool = await self.ensure_ready()
        with _translate_errors():
            return await pool.fetchval(sql, *args)

    async def execute(self, sql: str, *args: Any) -> None:
        """
        Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
        """
        pool = await self.ensure_ready()
        with _translate_errors():
            await pool.execute(sql, *args)

    async def ping(self) -> None:
        await self.fetch_val("SELECT 1")
