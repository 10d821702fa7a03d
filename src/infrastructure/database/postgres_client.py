"""PostgreSQL database client for local development.

Provides a connection pool and query helpers for running the service against a
local PostgreSQL database instead of Supabase. Tables are created from
``sql/schema.sql``.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

from src.infrastructure.config import PostgresSettings


class PostgresClient:
    """PostgreSQL database client with connection pooling."""

    def __init__(self, settings: PostgresSettings, minconn: int = 1, maxconn: int = 10) -> None:
        try:
            self._pool = pool.SimpleConnectionPool(
                minconn=minconn,
                maxconn=maxconn,
                host=settings.host,
                port=settings.port,
                database=settings.database,
                user=settings.user,
                password=settings.password,
            )
        except psycopg2.Error as exc:  # pragma: no cover - needs a server
            raise RuntimeError(f"Failed to initialize PostgreSQL connection pool: {exc}") from exc

    @contextmanager
    def get_connection(self) -> Generator[Any, None, None]:
        """Borrow a connection; commit on success, roll back on error."""
        conn = self._pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    @contextmanager
    def get_cursor(self, dict_cursor: bool = True) -> Generator[Any, None, None]:
        with self.get_connection() as conn:
            cursor = conn.cursor(cursor_factory=RealDictCursor if dict_cursor else None)
            try:
                yield cursor
            finally:
                cursor.close()

    def execute_one(self, query: str, params: tuple = ()) -> dict[str, Any] | None:
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            result = cursor.fetchone()
            return dict(result) if result else None

    def execute_many(self, query: str, params: tuple = ()) -> list[dict[str, Any]]:
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

    def execute_insert(self, query: str, params: tuple = ()) -> dict[str, Any]:
        """Execute an INSERT/UPDATE ... RETURNING and return the row.

        Raises:
            RuntimeError: If the statement returned no row.
        """
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            result = cursor.fetchone()
            if not result:
                raise RuntimeError("Query did not return a row")
            return dict(result)

    def execute_update(self, query: str, params: tuple = ()) -> int:
        """Execute an UPDATE or DELETE and return the affected row count."""
        with self.get_cursor(dict_cursor=False) as cursor:
            cursor.execute(query, params)
            return cursor.rowcount

    def close(self) -> None:
        self._pool.closeall()


_POSTGRES_CLIENT: PostgresClient | None = None


def get_postgres_client(settings: PostgresSettings) -> PostgresClient:
    global _POSTGRES_CLIENT
    if _POSTGRES_CLIENT is None:
        _POSTGRES_CLIENT = PostgresClient(settings)
    return _POSTGRES_CLIENT
