from __future__ import annotations

import sqlite3
from collections.abc import Generator, Sequence
from pathlib import Path
from typing import Any, Callable

import pytest

from namedsql.adapters.dbapi import DbapiConnection
from namedsql.config import SessionConfig, static_debug_flag
from namedsql.session import SQLSession

here = Path(__file__).parent
root_path = here.parent


class RecordingCursor:
    """Result cursor over in-memory rows that records its lifecycle."""

    def __init__(self, rows: Sequence[Sequence[Any]], events: list[str], close_error: Exception | None = None) -> None:
        self._rows = [tuple(row) for row in rows]
        self._row: tuple[Any, ...] | None = None
        self.events = events
        self.close_error = close_error
        self.close_count = 0

    def advance(self) -> bool:
        if not self._rows:
            self._row = None
            return False
        self._row = self._rows.pop(0)
        return True

    def get_object(self, slot: int) -> Any:
        assert self._row is not None
        return self._row[slot - 1]

    def get_string(self, slot: int) -> str | None:
        value = self.get_object(slot)
        return None if value is None else str(value)

    def close(self) -> None:
        self.close_count += 1
        self.events.append("cursor.close")
        if self.close_error is not None:
            raise self.close_error


class RecordingStatement:
    """Prepared statement recording every setter call."""

    def __init__(self, sql: str, connection: RecordingConnection) -> None:
        self.sql = sql
        self.connection = connection
        self.events = connection.events
        self.calls: list[tuple[str, int, Any]] = []
        self.close_count = 0
        self.cursor: RecordingCursor | None = None

    def _set(self, setter: str, slot: int, value: Any) -> None:
        if self.connection.set_error is not None:
            raise self.connection.set_error
        self.calls.append((setter, slot, value))

    def set_string(self, slot: int, value: str) -> None:
        self._set("set_string", slot, value)

    def set_object(self, slot: int, value: Any) -> None:
        self._set("set_object", slot, value)

    def set_date(self, slot: int, value: Any) -> None:
        self._set("set_date", slot, value)

    def execute_query(self) -> RecordingCursor:
        self.events.append("execute_query")
        if self.connection.execute_error is not None:
            raise self.connection.execute_error
        self.cursor = RecordingCursor(self.connection.rows, self.events, self.connection.cursor_close_error)
        return self.cursor

    def execute_update(self) -> int:
        self.events.append("execute_update")
        if self.connection.execute_error is not None:
            raise self.connection.execute_error
        return self.connection.rowcount

    def close(self) -> None:
        self.close_count += 1
        self.events.append("statement.close")
        if self.connection.statement_close_error is not None:
            raise self.connection.statement_close_error


class RecordingConnection:
    """Connection double whose statements and cursors record what happens to them."""

    def __init__(self, rows: Sequence[Sequence[Any]] = (), rowcount: int = 1) -> None:
        self.rows = rows
        self.rowcount = rowcount
        self.events: list[str] = []
        self.prepared: list[RecordingStatement] = []
        self.set_error: Exception | None = None
        self.execute_error: Exception | None = None
        self.statement_close_error: Exception | None = None
        self.cursor_close_error: Exception | None = None

    def prepare(self, sql: str) -> RecordingStatement:
        self.events.append("prepare")
        statement = RecordingStatement(sql, self)
        self.prepared.append(statement)
        return statement

    def new_date(self, epoch_millis: int) -> tuple[str, int]:
        return ("date", epoch_millis)

    @property
    def statement(self) -> RecordingStatement:
        return self.prepared[-1]


@pytest.fixture
def make_connection() -> Callable[..., RecordingConnection]:
    return RecordingConnection


@pytest.fixture
def connection() -> RecordingConnection:
    return RecordingConnection()


@pytest.fixture
def log_lines() -> list[str]:
    return []


@pytest.fixture
def session(log_lines: list[str]) -> SQLSession:
    return SQLSession(SessionConfig(debug=static_debug_flag(False), log_sink=log_lines.append))


@pytest.fixture
def sqlite_connection() -> Generator[DbapiConnection, None, None]:
    raw = sqlite3.connect(":memory:")
    raw.execute("create table users (id integer primary key, name text, created text, payload text)")
    raw.executemany("insert into users (id, name) values (?, ?)", [(1, "alice"), (2, "bob")])
    raw.commit()
    connection = DbapiConnection(raw)
    yield connection
    raw.close()
