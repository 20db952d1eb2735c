"""SQLite-backed persistent session store.

Persists conversation history to a SQLite database on disk so sessions
survive restarts.  Uses sync ``sqlite3``; each operation touches one small
JSON blob so event-loop blocking is negligible.

Every row carries an ``expires_at`` epoch timestamp.  Reads ignore (and
delete) expired rows, and :meth:`initialize` prunes whatever expired while
the process was down.
"""

from __future__ import annotations

import contextlib
import json
import sqlite3
import time
from collections.abc import Callable, Iterator
from pathlib import Path

import structlog
from pydantic import ValidationError

from newsrag.interfaces.session_store import ISessionStore
from newsrag.models.conversation import ConversationTurn
from newsrag.utils.errors import ProviderUnavailableError
from newsrag.utils.logging import get_logger

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS {table} (
    session_id TEXT PRIMARY KEY,
    turns_json TEXT    NOT NULL,
    expires_at REAL    NOT NULL,
    created_at TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_CREATE_INDEX_SQL = (
    "CREATE INDEX IF NOT EXISTS idx_{table}_expires ON {table}(expires_at);"
)

_UPSERT_SQL = """\
INSERT INTO {table} (session_id, turns_json, expires_at)
VALUES (?, ?, ?)
ON CONFLICT(session_id)
DO UPDATE SET turns_json = excluded.turns_json,
              expires_at = excluded.expires_at;
"""

_SELECT_SQL = "SELECT turns_json, expires_at FROM {table} WHERE session_id = ?;"

_DELETE_SQL = "DELETE FROM {table} WHERE session_id = ?;"

_TOUCH_SQL = "UPDATE {table} SET expires_at = ? WHERE session_id = ? AND expires_at > ?;"

_PRUNE_SQL = "DELETE FROM {table} WHERE expires_at <= ?;"

_COUNT_SQL = "SELECT COUNT(*) FROM {table};"


class SQLiteSessionStore(ISessionStore):
    """:class:`ISessionStore` backed by a SQLite file.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.
    ttl_seconds:
        Sliding time-to-live applied on every append or touch.
    table_name:
        Table name to use.
    clock:
        Zero-argument callable returning the current epoch time in seconds.
    """

    def __init__(
        self,
        db_path: str | Path,
        ttl_seconds: int = 7 * 24 * 60 * 60,
        table_name: str = "chat_sessions",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = Path(db_path)
        self._ttl = ttl_seconds
        self._table = table_name
        self._clock = clock
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the table and index, then prune expired sessions.

        Must be called once before use (typically during startup).
        """
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ProviderUnavailableError(
                message=f"Cannot create session database directory: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        with self._connection("initialize") as conn:
            conn.execute(_CREATE_TABLE_SQL.format(table=self._table))
            conn.execute(_CREATE_INDEX_SQL.format(table=self._table))
            cursor = conn.execute(_PRUNE_SQL.format(table=self._table), (self._clock(),))
            pruned = cursor.rowcount
            conn.commit()
            existing = conn.execute(_COUNT_SQL.format(table=self._table)).fetchone()[0]

        if pruned:
            self._logger.info("sessions_pruned", table=self._table, pruned=pruned)
        self._logger.info(
            "session_store_initialized",
            db_path=str(self._db_path),
            table=self._table,
            existing_sessions=existing,
        )

    # ------------------------------------------------------------------
    # ISessionStore implementation
    # ------------------------------------------------------------------

    async def append(self, session_id: str, turn: ConversationTurn) -> None:
        now = self._clock()
        with self._connection("append") as conn:
            raw_turns = self._load_raw(conn, session_id, now)
            raw_turns.append(turn.model_dump(mode="json"))
            conn.execute(
                _UPSERT_SQL.format(table=self._table),
                (session_id, json.dumps(raw_turns), now + self._ttl),
            )
            conn.commit()

    async def get(self, session_id: str) -> list[ConversationTurn]:
        with self._connection("get") as conn:
            raw_turns = self._load_raw(conn, session_id, self._clock())
            conn.commit()

        turns: list[ConversationTurn] = []
        for raw in raw_turns:
            try:
                turns.append(ConversationTurn.model_validate(raw))
            except ValidationError as exc:
                self._logger.warning(
                    "session_turn_deserialize_failed",
                    session_id=session_id,
                    error=str(exc)[:200],
                )
        return turns

    async def clear(self, session_id: str) -> bool:
        with self._connection("clear") as conn:
            cursor = conn.execute(_DELETE_SQL.format(table=self._table), (session_id,))
            conn.commit()
            return cursor.rowcount > 0

    async def touch(self, session_id: str) -> bool:
        now = self._clock()
        with self._connection("touch") as conn:
            cursor = conn.execute(
                _TOUCH_SQL.format(table=self._table),
                (now + self._ttl, session_id, now),
            )
            conn.commit()
            return cursor.rowcount > 0

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
        return f"sqlite_session_store:{self._table}"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def _connection(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Yield a WAL-mode connection, closing it afterwards.

        Any ``sqlite3.Error`` (locked, corrupt or unwritable file) surfaces
        as :class:`ProviderUnavailableError`.
        """
        conn: sqlite3.Connection | None = None
        try:
            conn = sqlite3.connect(str(self._db_path))
            conn.execute("PRAGMA journal_mode=WAL")
            yield conn
        except sqlite3.Error as exc:
            raise ProviderUnavailableError(
                message=f"SQLite session {operation} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        finally:
            if conn is not None:
                conn.close()

    def _load_raw(self, conn: sqlite3.Connection, session_id: str, now: float) -> list[dict]:
        """Return the stored turn dicts, deleting the row if it has expired."""
        row = conn.execute(_SELECT_SQL.format(table=self._table), (session_id,)).fetchone()
        if row is None:
            return []
        turns_json, expires_at = row
        if expires_at <= now:
            conn.execute(_DELETE_SQL.format(table=self._table), (session_id,))
            self._logger.debug("session_expired", session_id=session_id)
            return []
        try:
            return json.loads(turns_json)
        except json.JSONDecodeError as exc:
            self._logger.warning(
                "session_deserialize_failed",
                session_id=session_id,
                error=str(exc)[:200],
            )
            return []
