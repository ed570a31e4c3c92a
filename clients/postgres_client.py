"""
PostgreSQL client with an instance-owned connection pool.

Uses psycopg2 with ThreadedConnectionPool. The pool is created lazily on
first use and belongs to the client instance, so a repository receives its
connection source by injection and tests can hand it a substitute.

Driver failures are translated into two client errors callers care about:
DatabaseUnavailableError (cannot reach the server, pool exhausted) and
DuplicateKeyError (unique constraint violated).

Queries commit one by one unless issued inside transaction(), which runs
them on a single connection and commits once at the end.
"""

import json
import logging
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from decimal import Decimal
from functools import partial
from typing import Any, Dict, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.errors
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

# JSONB numbers come back as Decimal, never float
_json_loads = partial(json.loads, parse_float=Decimal)


def _rollback(conn) -> None:
    """Roll back after a failure; a connection that is already gone has nothing to undo."""
    try:
        conn.rollback()
    except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
        logger.warning("Rollback skipped on lost connection: %s", e)


class DatabaseUnavailableError(Exception):
    """Database could not be reached or no connection was available."""


class DuplicateKeyError(Exception):
    """A unique constraint rejected the write."""

    def __init__(self, constraint: str | None, message: str):
        self.constraint = constraint
        super().__init__(message)


class PostgresClient:
    """
    PostgreSQL client returning rows as dicts.

    Usage:
        db = PostgresClient(database_url)
        rows = db.execute("SELECT * FROM invoices WHERE status = %s", ("Pending",))
        db.close()
    """

    def __init__(
        self,
        database_url: str,
        min_connections: int = 1,
        max_connections: int = 10,
        connect_timeout: int = 10,
    ):
        self._database_url = database_url
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._connect_timeout = connect_timeout
        self._pool: psycopg2.pool.ThreadedConnectionPool | None = None
        self._pool_lock = threading.Lock()
        # Connection pinned by transaction(), per thread and per task
        self._tx_conn: ContextVar = ContextVar(f"postgres_tx_{id(self)}", default=None)

    def _get_pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        """Create connection pool on first use."""
        with self._pool_lock:
            if self._pool is None:
                try:
                    self._pool = psycopg2.pool.ThreadedConnectionPool(
                        minconn=self._min_connections,
                        maxconn=self._max_connections,
                        dsn=self._database_url,
                        connect_timeout=self._connect_timeout,
                    )
                except psycopg2.OperationalError as e:
                    logger.error("Could not create connection pool: %s", e)
                    raise DatabaseUnavailableError("Database connection error") from e
                logger.info("Connection pool created")
            return self._pool

    @contextmanager
    def get_connection(self):
        """Borrow a connection; rolled back on error and always returned to the pool."""
        pool = self._get_pool()
        conn = None

        try:
            try:
                conn = pool.getconn()
            except psycopg2.pool.PoolError as e:
                raise DatabaseUnavailableError("No database connection available") from e
            except psycopg2.OperationalError as e:
                raise DatabaseUnavailableError("Database connection error") from e

            psycopg2.extras.register_default_jsonb(conn, loads=_json_loads)

            with self._translate_errors(conn):
                yield conn

        finally:
            if conn is not None:
                # Broken connections are discarded instead of reused
                pool.putconn(conn, close=bool(conn.closed))

    @contextmanager
    def _translate_errors(self, conn):
        try:
            yield
        except psycopg2.errors.UniqueViolation as e:
            conn.rollback()
            raise DuplicateKeyError(e.diag.constraint_name, str(e)) from e
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
            logger.error("Database connection lost: %s", e)
            raise DatabaseUnavailableError("Database connection lost") from e
        except Exception:
            _rollback(conn)
            raise

    @contextmanager
    def transaction(self):
        """
        Run every query issued inside the block on one connection, committed once.

        Any exception rolls the whole block back. Nested use joins the
        outer transaction.

        Usage:
            with db.transaction():
                db.execute_returning("UPDATE invoices ...")
                db.execute("INSERT INTO audit_log ...")
        """
        if self._tx_conn.get() is not None:
            yield
            return

        with self.get_connection() as conn:
            token = self._tx_conn.set(conn)
            try:
                yield
            finally:
                self._tx_conn.reset(token)
            conn.commit()

    @contextmanager
    def _connection(self):
        """The open transaction's connection, or a pooled one committed on exit."""
        conn = self._tx_conn.get()
        if conn is not None:
            with self._translate_errors(conn):
                yield conn
            return

        with self.get_connection() as conn:
            yield conn
            conn.commit()

    def _convert_params(self, params: Tuple | Dict | None) -> Tuple | Dict | None:
        """Convert UUID objects to strings."""
        if params is None:
            return None

        def convert(value: Any) -> Any:
            if isinstance(value, UUID):
                return str(value)
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, tuple):
                return tuple(convert(v) for v in value)
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(params)

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        params = self._convert_params(params)
        with self._connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                if cur.description:
                    return [dict(row) for row in cur.fetchall()]
                return []

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_scalar(self, query: str, params: Tuple | Dict | None = None) -> Any:
        """Execute query, return first value of first row or None."""
        params = self._convert_params(params)
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                result = cur.fetchone()
                return result[0] if result else None

    def execute_returning(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE with RETURNING, return results."""
        params = self._convert_params(params)
        with self._connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                return [dict(row) for row in cur.fetchall()]

    def ping(self) -> bool:
        """Health check. Raises DatabaseUnavailableError if unreachable."""
        return self.execute_scalar("SELECT 1") == 1

    def close(self) -> None:
        """Close connection pool. A later query creates a fresh one."""
        with self._pool_lock:
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None
                logger.info("Connection pool closed")
