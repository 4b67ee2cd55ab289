"""Core database connection: one SQLite handle and the statement executor."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Generator, Iterable, Optional, TypeVar, Union

from pagestore.db.binding import bind_all
from pagestore.db.errors import SQLITE_ERROR, SQLITE_MISUSE, Phase, StoreError
from pagestore.db.schema import SCHEMA_DDL
from pagestore.db.statement import Statement

logger = logging.getLogger(__name__)

T = TypeVar("T")

JOURNAL_MODES = {"DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF"}


class Database:
    """
    Owns exactly one SQLite connection for its whole lifetime.

    Every statement goes through one prepare → bind → step → finalize cycle
    in :meth:`_run`. Failures at any stage surface as :class:`StoreError`
    and the statement is finalized on every path. The connection runs in
    autocommit mode; use :meth:`transaction` to group statements.

    The handle is not safe for concurrent use. Share it across threads only
    through :class:`~pagestore.db.store.PageStore`.
    """

    def __init__(
        self,
        path: Union[Path, str],
        *,
        journal_mode: str = "WAL",
        busy_timeout_ms: int = 5000,
    ):
        self.path = path if str(path) == ":memory:" else Path(path)
        if journal_mode.upper() not in JOURNAL_MODES:
            raise ValueError(f"Unknown journal mode: {journal_mode!r}")
        self._conn: Optional[sqlite3.Connection] = self._open(journal_mode.upper(), busy_timeout_ms)

    # -- connection lifecycle --------------------------------------------------

    def _open(self, journal_mode: str, busy_timeout_ms: int) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                str(self.path),
                timeout=busy_timeout_ms / 1000,
                isolation_level=None,
            )
        except sqlite3.Error as e:
            raise StoreError.from_sqlite(e, Phase.OPEN) from e

        try:
            conn.row_factory = sqlite3.Row
            conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)}")
            # reading the header here surfaces corrupt or foreign files at open time
            conn.execute(f"PRAGMA journal_mode = {journal_mode}").fetchone()
            conn.execute("PRAGMA schema_version").fetchone()
        except sqlite3.Error as e:
            conn.close()
            raise StoreError.from_sqlite(e, Phase.OPEN) from e

        logger.info(f"Opened database at {self.path}")
        return conn

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None and self._conn.in_transaction

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
            logger.info(f"Closed database at {self.path}")

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError(Phase.PREPARE, SQLITE_MISUSE, "database connection is closed")
        return self._conn

    # -- schema ----------------------------------------------------------------

    def setup(self, exist_ok: bool = False) -> bool:
        """Create the page table.

        Against an already-initialized store the native "already exists"
        error is raised unless *exist_ok* is set, in which case nothing is
        touched and ``False`` is returned.
        """
        try:
            self.execute(SCHEMA_DDL)
        except StoreError as e:
            if exist_ok and e.primary_code == SQLITE_ERROR and "already exists" in e.detail:
                logger.warning(f"Schema already present at {self.path}: {e.detail}")
                return False
            raise
        logger.info(f"Created schema at {self.path}")
        return True

    # -- transaction helpers ---------------------------------------------------

    @contextmanager
    def transaction(self) -> Generator["Database", None, None]:
        """Commits on success, rolls back on exception."""
        self.execute("BEGIN IMMEDIATE")
        try:
            yield self
            self.execute("COMMIT")
        except Exception:
            if self.in_transaction:
                try:
                    self.execute("ROLLBACK")
                except StoreError as rollback_error:
                    logger.warning(f"Rollback failed: {rollback_error}")
            raise

    # -- statement executor ----------------------------------------------------

    def execute(self, sql: str, params: Iterable[Any] = ()) -> int:
        """Run one statement to completion; returns the number of rows changed."""
        return self._run(sql, params, lambda cursor: cursor.rowcount)

    def fetchone(self, sql: str, params: Iterable[Any] = ()) -> Optional[dict[str, Any]]:
        def first(cursor: sqlite3.Cursor) -> Optional[dict[str, Any]]:
            rows = cursor.fetchall()
            return dict(rows[0]) if rows else None

        return self._run(sql, params, first)

    def fetchall(self, sql: str, params: Iterable[Any] = ()) -> list[dict[str, Any]]:
        return self._run(sql, params, lambda cursor: [dict(r) for r in cursor.fetchall()])

    def _run(self, sql: str, params: Iterable[Any], consume: Callable[[sqlite3.Cursor], T]) -> T:
        """Prepare, bind, step and finalize one statement.

        Parameters are converted by the bind adapters before sqlite3 compiles
        the SQL, so a value that cannot be bound fails (``TypeError`` or a
        BIND ``StoreError``) ahead of any PREPARE error in the same statement.
        """
        try:
            cursor = self._connection().cursor()
        except sqlite3.Error as e:
            raise StoreError.from_sqlite(e, Phase.PREPARE) from e

        try:
            statement = bind_all(Statement(sql), params)
            try:
                cursor.execute(statement.sql, statement.parameters)
                result = consume(cursor)
            except sqlite3.Error as e:
                raise StoreError.from_sqlite(e) from e
        except Exception:
            self._finalize(cursor, failed=True)
            raise
        self._finalize(cursor, failed=False)
        return result

    def _finalize(self, cursor: sqlite3.Cursor, failed: bool) -> None:
        try:
            cursor.close()
        except sqlite3.Error as e:
            if failed:
                # the earlier, more specific error wins
                logger.warning(f"Finalize failed after an earlier error: {e}")
                return
            raise StoreError.from_sqlite(e, Phase.FINALIZE) from e


def open_connection(path: Union[Path, str], settings: Optional[Any] = None) -> Database:
    """Open a :class:`Database` using the configured connection settings."""
    if settings is None:
        from pagestore.config import get_settings

        settings = get_settings()
    return Database(
        path,
        journal_mode=settings.JOURNAL_MODE,
        busy_timeout_ms=settings.BUSY_TIMEOUT_MS,
    )
