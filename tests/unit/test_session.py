"""Tests for the query/update façade."""

import datetime
import logging
from typing import Any, Callable
from unittest.mock import Mock

import pytest

from namedsql import session as session_module
from namedsql.config import DEBUG_ENV_VAR, SessionConfig, static_debug_flag
from namedsql.exceptions import ArgumentError, BindingFailure, SQLTypeError
from namedsql.parameters import Named, ParameterStyle, ParameterStyleConfig, Positional
from namedsql.session import SQLSession, configure, first_column, get_default_session

# pyright: reportPrivateUsage=false


def test_query_positional_returns_first_column(session: SQLSession, make_connection: Callable[..., Any]) -> None:
    connection = make_connection(rows=[("alice", 1), ("bob", 2)])

    result = session.query("select name, id from users where id = ?", 1, connection)

    assert result == "alice"
    assert connection.statement.sql == "select name, id from users where id = ?"
    assert connection.statement.calls == [("set_object", 1, 1)]


def test_query_named(session: SQLSession, make_connection: Callable[..., Any]) -> None:
    connection = make_connection(rows=[("alice",)])

    sql = "select name from users where id = :id and name <> :name"

    result = session.query(sql, {"id": 1, "name": "x"}, connection)

    assert result == "alice"
    assert connection.statement.sql == "select name from users where id = ? and name <> ?"
    assert connection.statement.calls == [("set_object", 1, 1), ("set_string", 2, "x")]


def test_query_without_rows_returns_none(session: SQLSession, connection: Any) -> None:
    assert session.query("select name from users", connection) is None


def test_query_with_callback(session: SQLSession, make_connection: Callable[..., Any]) -> None:
    connection = make_connection(rows=[("a",), ("b",), ("c",)])

    def collect(cursor: Any) -> list[str]:
        names = []
        while cursor.advance():
            names.append(cursor.get_string(1))
        return names

    assert session.query("select name from users where id > ?", 0, collect, connection) == ["a", "b", "c"]
    assert connection.statement.calls == [("set_object", 1, 0)]


def test_query_callback_without_params(session: SQLSession, make_connection: Callable[..., Any]) -> None:
    connection = make_connection(rows=[(5,)])

    assert session.query("select count(*) from users", lambda cursor: "called", connection) == "called"
    assert connection.statement.calls == []


def test_positional_text_values_use_string_setter(session: SQLSession, connection: Any) -> None:
    session.query("select * from t where c1 = ? and c2 = ?", "A", "B", connection)

    assert connection.statement.calls == [("set_string", 1, "A"), ("set_string", 2, "B")]


def test_named_text_and_date_in_one_call(session: SQLSession, connection: Any) -> None:
    when = datetime.datetime(1970, 1, 1, 0, 0, 5, tzinfo=datetime.timezone.utc)

    session.update("update t set c1 = :a, c2 = :b", {"a": "1", "b": when}, connection)

    assert connection.statement.sql == "update t set c1 = ?, c2 = ?"
    assert connection.statement.calls == [("set_string", 1, "1"), ("set_date", 2, ("date", 5000))]


def test_query_binds_dates(session: SQLSession, connection: Any) -> None:
    when = datetime.datetime(1970, 1, 1, 0, 0, 2, tzinfo=datetime.timezone.utc)

    session.query("select * from events where at > :at", {"at": when}, connection)

    assert connection.statement.calls == [("set_date", 1, ("date", 2000))]


@pytest.mark.parametrize("operation", ["query", "update", "insert"])
def test_too_few_arguments(session: SQLSession, operation: str) -> None:
    connection = Mock()

    with pytest.raises(ArgumentError, match="at least a SQL statement and a connection"):
        getattr(session, operation)(connection)
    with pytest.raises(ArgumentError):
        getattr(session, operation)()

    assert connection.mock_calls == []


@pytest.mark.parametrize("operation", ["query", "update", "insert"])
def test_non_text_sql(session: SQLSession, connection: Any, operation: str) -> None:
    with pytest.raises(SQLTypeError):
        getattr(session, operation)(b"select 1", connection)

    assert connection.prepared == []


def test_missing_connection(session: SQLSession) -> None:
    with pytest.raises(ArgumentError, match="connection is required"):
        session.execute_query("select 1", Positional(()), None)  # type: ignore[arg-type]


def test_query_closes_cursor_then_statement(session: SQLSession, make_connection: Callable[..., Any]) -> None:
    connection = make_connection(rows=[(1,)])

    session.query("select 1", connection)

    assert connection.events == ["prepare", "execute_query", "cursor.close", "statement.close"]
    assert connection.statement.close_count == 1
    assert connection.statement.cursor.close_count == 1


def test_binding_failure_closes_statement(session: SQLSession, connection: Any, log_lines: list[str]) -> None:
    with pytest.raises(BindingFailure, match=":name"):
        session.query("select * from users where id = :id and name = :name", {"id": 1}, connection)

    assert connection.events == ["prepare", "statement.close"]
    assert connection.statement.close_count == 1
    assert len(log_lines) == 1
    assert log_lines[0].startswith("Failed to prepare statement. SQL: select * from users where id = :id")


def test_setter_rejection_closes_statement(session: SQLSession, connection: Any) -> None:
    error = ValueError("bad slot")
    connection.set_error = error

    with pytest.raises(ValueError, match="bad slot") as exc_info:
        session.update("update users set name = ?", "x", connection)

    assert exc_info.value is error
    assert connection.statement.close_count == 1


def test_callback_failure_closes_everything(
    session: SQLSession, make_connection: Callable[..., Any], log_lines: list[str]
) -> None:
    connection = make_connection(rows=[(1,)])
    error = LookupError("callback failed")

    def explode(cursor: Any) -> None:
        raise error

    with pytest.raises(LookupError) as exc_info:
        session.query("select id from users where name = :name", {"name": "a"}, explode, connection)

    assert exc_info.value is error
    assert connection.events == ["prepare", "execute_query", "cursor.close", "statement.close"]
    assert log_lines == [
        "Query failed. SQL: select id from users where name = :name Parameters: "
        "{\"name\":\"a\"}: LookupError('callback failed')"
    ]


def test_execute_failure_closes_statement(session: SQLSession, connection: Any, log_lines: list[str]) -> None:
    connection.execute_error = RuntimeError("driver down")

    with pytest.raises(RuntimeError, match="driver down"):
        session.query("select 1", connection)

    assert connection.events == ["prepare", "execute_query", "statement.close"]
    assert log_lines[0].startswith("Query failed. SQL: select 1 Parameters: []")


def test_close_failure_does_not_mask_original_error(
    session: SQLSession, make_connection: Callable[..., Any], log_lines: list[str]
) -> None:
    connection = make_connection(rows=[(1,)])
    connection.cursor_close_error = OSError("cursor close failed")
    connection.statement_close_error = OSError("statement close failed")

    def explode(cursor: Any) -> None:
        raise KeyError("original")

    with pytest.raises(KeyError, match="original"):
        session.query("select 1", explode, connection)

    assert connection.statement.close_count == 1
    assert connection.statement.cursor.close_count == 1
    assert any("cursor close failed" in line for line in log_lines)
    assert any("statement close failed" in line for line in log_lines)


def test_close_failure_after_success_propagates(session: SQLSession, connection: Any) -> None:
    connection.statement_close_error = OSError("statement close failed")

    with pytest.raises(OSError, match="statement close failed"):
        session.update("delete from users", connection)


def test_update_returns_row_count(session: SQLSession, make_connection: Callable[..., Any]) -> None:
    connection = make_connection(rowcount=3)

    assert session.update("update users set name = :name where id > :id", {"name": "x", "id": 0}, connection) == 3
    assert connection.statement.sql == "update users set name = ? where id > ?"
    assert connection.events == ["prepare", "execute_update", "statement.close"]


def test_update_failure_is_logged(session: SQLSession, connection: Any, log_lines: list[str]) -> None:
    connection.execute_error = RuntimeError("constraint")

    with pytest.raises(RuntimeError):
        session.update("delete from users where id = ?", 1, connection)

    assert log_lines == [
        "Update failed. SQL: delete from users where id = ? Parameters: [1]: RuntimeError('constraint')"
    ]


def test_insert_is_update(session: SQLSession, make_connection: Callable[..., Any]) -> None:
    first = make_connection(rowcount=1)
    second = make_connection(rowcount=1)

    assert session.insert("insert into users (name) values (?)", "x", first) == session.update(
        "insert into users (name) values (?)", "x", second
    )
    assert first.events == second.events
    assert first.statement.calls == second.statement.calls
    assert SQLSession.insert is SQLSession.update
    assert SQLSession.insert_named is SQLSession.update_named
    assert SQLSession.insert_positional is SQLSession.update_positional


def test_explicit_forms(session: SQLSession, make_connection: Callable[..., Any]) -> None:
    connection = make_connection(rows=[("alice",)], rowcount=2)

    assert session.query_positional("select name from users where id = ?", [1], connection) == "alice"
    assert session.query_named("select name from users where id = :id", {"id": 1}, connection) == "alice"
    assert session.update_positional("delete from users where id = ?", [1], connection) == 2
    assert session.update_named("delete from users where id = :id", {"id": 1}, connection) == 2
    assert session.execute_update("delete from users where id = :id", Named({"id": 1}), connection) == 2


def test_single_mapping_with_positional_placeholders_is_named(session: SQLSession, connection: Any) -> None:
    # A mapping alone selects named binding; with no named placeholders nothing is bound.
    session.update("update users set payload = ?", {"a": 1}, connection)

    assert connection.statement.calls == []


def test_mapping_among_several_arguments_is_positional(session: SQLSession, connection: Any) -> None:
    session.update("update users set payload = ? where id = ?", {"a": 1}, 2, connection)

    assert connection.statement.calls == [("set_object", 1, {"a": 1}), ("set_object", 2, 2)]


def test_empty_mapping_among_positional_values_is_text(session: SQLSession, connection: Any) -> None:
    session.update("update users set payload = ? where id = ?", {}, 2, connection)

    assert connection.statement.calls == [("set_string", 1, "{}"), ("set_object", 2, 2)]


def test_prefers_operation_specific_prepare(session: SQLSession, make_connection: Callable[..., Any]) -> None:
    connection = make_connection()
    connection.prepare_query = Mock(wraps=connection.prepare)
    connection.prepare_update = Mock(wraps=connection.prepare)

    session.query("select 1", connection)
    session.update("delete from users", connection)

    connection.prepare_query.assert_called_once_with("select 1")
    connection.prepare_update.assert_called_once_with("delete from users")


def test_connection_parameter_config(session: SQLSession, connection: Any) -> None:
    connection.parameter_config = ParameterStyleConfig(placeholder_style=ParameterStyle.NUMERIC)

    session.query("select * from users where id = :id", {"id": 1}, connection)

    assert connection.statement.sql == "select * from users where id = $1"


def test_session_parameter_config(make_connection: Callable[..., Any]) -> None:
    config = SessionConfig(
        debug=static_debug_flag(False),
        parameter_config=ParameterStyleConfig(placeholder_style=ParameterStyle.POSITIONAL_PYFORMAT),
    )
    connection = make_connection()

    SQLSession(config).update("update users set name = :name", {"name": "x"}, connection)

    assert connection.statement.sql == "update users set name = %s"


def test_debug_flag_is_read_on_every_call(make_connection: Callable[..., Any], log_lines: list[str]) -> None:
    flag = {"enabled": False}
    session = SQLSession(SessionConfig(debug=lambda: flag["enabled"], log_sink=log_lines.append))
    connection = make_connection(rowcount=1)

    session.update("delete from users where id = ?", 1, connection)
    assert log_lines == []

    flag["enabled"] = True
    session.update("delete from users where id = ?", 1, connection)

    assert log_lines == [
        "Preparing statement. SQL: delete from users where id = ? Parameters: [1]",
        "Executing update. SQL: delete from users where id = ? Parameters: [1]",
        "Update affected 1 row(s)",
    ]


def test_environment_debug_flag(
    monkeypatch: pytest.MonkeyPatch, connection: Any, log_lines: list[str]
) -> None:
    session = SQLSession(SessionConfig(log_sink=log_lines.append))

    monkeypatch.delenv(DEBUG_ENV_VAR, raising=False)
    session.query("select 1", connection)
    assert log_lines == []

    monkeypatch.setenv(DEBUG_ENV_VAR, "true")
    session.query("select 1", connection)
    assert "Executing query. SQL: select 1 Parameters: []" in log_lines


def test_errors_go_to_logger_without_sink(connection: Any, caplog: pytest.LogCaptureFixture) -> None:
    session = SQLSession(SessionConfig(debug=static_debug_flag(False)))
    connection.execute_error = RuntimeError("boom")

    with caplog.at_level(logging.ERROR, logger="namedsql.session"), pytest.raises(RuntimeError):
        session.query("select 1", connection)

    assert "Query failed. SQL: select 1" in caplog.text


def test_first_column() -> None:
    cursor = Mock()
    cursor.advance.return_value = True
    cursor.get_object.return_value = "value"

    assert first_column(cursor) == "value"
    cursor.get_object.assert_called_once_with(1)

    cursor.advance.return_value = False
    assert first_column(cursor) is None


def test_module_level_operations(
    monkeypatch: pytest.MonkeyPatch, make_connection: Callable[..., Any], log_lines: list[str]
) -> None:
    monkeypatch.setattr(session_module, "_default_session", session_module._default_session)
    connection = make_connection(rows=[("alice",)], rowcount=4)

    configured = configure(SessionConfig(debug=static_debug_flag(False), log_sink=log_lines.append))

    assert get_default_session() is configured
    assert session_module.query("select name from users where id = :id", {"id": 1}, connection) == "alice"
    assert session_module.update("update users set name = ?", "x", connection) == 4
    assert session_module.insert("insert into users (name) values (?)", "y", connection) == 4
