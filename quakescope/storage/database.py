"""Relational store access through a psycopg connection pool."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Sequence

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from ..errors import UpstreamComputationError, ValidationError


logger = logging.getLogger(__name__)


class DatabaseConfig:
    """Database configuration."""

    def __init__(self, config: Dict[str, Any]) -> None:
        """Initialize database config from the profile's ``database`` block."""
        self.url = config.get("url")
        self.host = config.get("host", "localhost")
        self.port = config.get("port", 5432)
        self.database = config.get("database", "quakescope")
        self.user = config.get("user", "quakescope")
        self.min_size = int(config.get("pool_min_size", 1))
        self.max_size = int(config.get("pool_max_size", 10))

        password_env = config.get("password_env")
        if password_env:
            self.password = os.environ.get(password_env, "")
        else:
            self.password = config.get("password", "")

    @property
    def connection_string(self) -> str:
        """Get psycopg connection string."""
        if self.url:
            return self.url
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


class Database:
    """
    Thin statement runner over a pooled connection.

    Every call checks out a connection, runs one statement (or one batch)
    and commits on exit. Rows come back as dicts. Driver errors are logged
    with their cause and re-raised as engine errors so callers only ever see
    the public taxonomy.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "Database":
        db_config = DatabaseConfig(config)
        pool = ConnectionPool(
            db_config.connection_string,
            min_size=db_config.min_size,
            max_size=db_config.max_size,
            kwargs={"row_factory": dict_row},
            open=False,
        )
        return cls(pool)

    def open(self) -> None:
        self._pool.open()

    def close(self) -> None:
        self._pool.close()

    def _run(self, sql: str, params: Optional[Sequence[Any]], fetch: str) -> Any:
        try:
            with self._pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, params)
                    if fetch == "one":
                        return cur.fetchone()
                    if fetch == "all":
                        return cur.fetchall()
                    return cur.rowcount
        except psycopg.IntegrityError as exc:
            logger.warning("Integrity violation: %s", exc)
            raise ValidationError(
                "Write conflicts with an existing record",
                details=getattr(exc.diag, "constraint_name", None),
            ) from exc
        except psycopg.Error as exc:
            logger.error("Data store statement failed: %s", exc, exc_info=True)
            raise UpstreamComputationError("Data store unavailable") from exc

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> int:
        """Run a statement and return the affected row count."""
        return self._run(sql, params, fetch="none")

    def fetch_one(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        """Run a statement and return the first row, if any."""
        return self._run(sql, params, fetch="one")

    def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Run a statement and return every row."""
        return self._run(sql, params, fetch="all")

    def execute_many(self, sql: str, params_seq: Iterable[Sequence[Any]]) -> None:
        """Run one statement for each parameter tuple inside a single transaction."""
        batch = list(params_seq)
        if not batch:
            return
        try:
            with self._pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.executemany(sql, batch)
        except psycopg.Error as exc:
            logger.error("Data store batch failed (%d rows): %s", len(batch), exc, exc_info=True)
            raise UpstreamComputationError("Data store unavailable") from exc

    def validate_connection(self) -> bool:
        """Return ``True`` when a trivial query succeeds."""
        try:
            row = self.fetch_one("SELECT 1 AS ok")
        except UpstreamComputationError:
            return False
        return row is not None and row.get("ok") == 1
