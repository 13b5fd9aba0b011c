"""Query and update operations over a caller-owned connection.

A session never opens, commits or closes connections. It creates statements
and cursors from the connection it is handed and closes them before
returning, whatever happens.

Example::

    session = SQLSession()
    name = session.query("select name from users where id = :id", {"id": 1}, connection)
    count = session.update("update users set name = ? where id = ?", "bob", 1, connection)
    connection.commit()
"""

import contextlib
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional

from namedsql.config import SessionConfig
from namedsql.exceptions import ArgumentError, SQLTypeError, log_and_reraise
from namedsql.parameters.config import ParameterStyleConfig
from namedsql.parameters.types import Named, ParameterSource, Positional, parameter_source_from_args
from namedsql.statement import StatementBuilder, closing_logged, describe_statement

if TYPE_CHECKING:
    from namedsql.protocols import ConnectionProtocol, PreparedStatementProtocol, ResultCursorProtocol
    from namedsql.typing import NamedParameters, PositionalParameters, PrepareFunction, ResultCallback

__all__ = (
    "SQLSession",
    "configure",
    "first_column",
    "get_default_session",
    "insert",
    "query",
    "update",
)

MIN_CALL_ARGUMENTS = 2


def first_column(cursor: "ResultCursorProtocol") -> Any:
    """Default result callback: first column of the first row, or None without rows."""
    if cursor.advance():
        return cursor.get_object(1)
    return None


def _describe_query_failure(sql: str, source: ParameterSource, *_: Any) -> str:
    return describe_statement("Query failed", sql, source)


def _describe_update_failure(sql: str, source: ParameterSource, *_: Any) -> str:
    return describe_statement("Update failed", sql, source)


def _check_arity(args: "Sequence[Any]") -> None:
    if len(args) < MIN_CALL_ARGUMENTS:
        msg = f"Expected at least a SQL statement and a connection, got {len(args)} argument(s)."
        raise ArgumentError(msg)
    if not isinstance(args[0], str):
        raise SQLTypeError(args[0])


class SQLSession:
    """Query/update façade over the statement builder.

    Each operation exists in three forms: the convenience form taking
    ``(sql, *params, connection)`` and inferring the parameter source from the
    arguments, the ``*_positional``/``*_named`` forms, and the
    ``execute_*`` forms taking a :data:`ParameterSource`.
    """

    __slots__ = ("builder", "config")

    def __init__(self, config: "Optional[SessionConfig]" = None, builder: "Optional[StatementBuilder]" = None) -> None:
        self.config = config or SessionConfig()
        self.builder = builder or StatementBuilder(self.config)

    # Convenience entry points

    def query(self, *args: Any) -> Any:
        """Run a query: ``query(sql, [*params | mapping], [callback], connection)``.

        A callable just before the connection is the result callback; without
        one the first column of the first row is returned (None when there are
        no rows).

        Raises:
            ArgumentError: Fewer than two arguments.
            SQLTypeError: The SQL is not text.
        """
        _check_arity(args)
        sql, *params, connection = args
        callback: "Optional[ResultCallback]" = None
        if params and callable(params[-1]):
            callback = params.pop()
        return self.execute_query(sql, parameter_source_from_args(params), connection, callback)

    def update(self, *args: Any) -> int:
        """Run an update: ``update(sql, [*params | mapping], connection)``.

        Returns:
            The affected row count reported by the driver.

        Raises:
            ArgumentError: Fewer than two arguments.
            SQLTypeError: The SQL is not text.
        """
        _check_arity(args)
        sql, *params, connection = args
        return self.execute_update(sql, parameter_source_from_args(params), connection)

    insert = update

    # Explicit entry points

    def query_positional(
        self,
        sql: str,
        params: "PositionalParameters",
        connection: "ConnectionProtocol",
        callback: "Optional[ResultCallback]" = None,
    ) -> Any:
        """Run a query binding ``params`` to slots 1..N."""
        return self.execute_query(sql, Positional(params), connection, callback)

    def query_named(
        self,
        sql: str,
        params: "NamedParameters",
        connection: "ConnectionProtocol",
        callback: "Optional[ResultCallback]" = None,
    ) -> Any:
        """Run a query binding each ``:name`` placeholder from ``params``."""
        return self.execute_query(sql, Named(params), connection, callback)

    def update_positional(self, sql: str, params: "PositionalParameters", connection: "ConnectionProtocol") -> int:
        """Run an update binding ``params`` to slots 1..N."""
        return self.execute_update(sql, Positional(params), connection)

    def update_named(self, sql: str, params: "NamedParameters", connection: "ConnectionProtocol") -> int:
        """Run an update binding each ``:name`` placeholder from ``params``."""
        return self.execute_update(sql, Named(params), connection)

    insert_positional = update_positional
    insert_named = update_named

    # Source-based entry points

    def execute_query(
        self,
        sql: str,
        source: ParameterSource,
        connection: "ConnectionProtocol",
        callback: "Optional[ResultCallback]" = None,
    ) -> Any:
        """Prepare, bind and run a query, returning what ``callback`` returns.

        The cursor and the statement are closed on every exit path, the cursor
        first.
        """
        if not isinstance(sql, str):
            raise SQLTypeError(sql)
        prepare_fn = self._prepare_function(connection, "prepare_query")
        with contextlib.ExitStack() as stack:
            statement = self._build(stack, prepare_fn, sql, source, connection)
            return self._run_query(sql, source, statement, stack, callback or first_column)

    def execute_update(self, sql: str, source: ParameterSource, connection: "ConnectionProtocol") -> int:
        """Prepare, bind and run an update, returning the affected row count.

        The statement is closed on every exit path.
        """
        if not isinstance(sql, str):
            raise SQLTypeError(sql)
        prepare_fn = self._prepare_function(connection, "prepare_update")
        with contextlib.ExitStack() as stack:
            statement = self._build(stack, prepare_fn, sql, source, connection)
            return self._run_update(sql, source, statement)

    # Internals

    def _prepare_function(self, connection: "Optional[ConnectionProtocol]", preferred: str) -> "PrepareFunction":
        if connection is None:
            msg = "A connection is required."
            raise ArgumentError(msg)
        prepare_fn = getattr(connection, preferred, None)
        if callable(prepare_fn):
            return prepare_fn  # type: ignore[no-any-return]
        return connection.prepare

    def _parameter_config(self, connection: "ConnectionProtocol") -> ParameterStyleConfig:
        connection_config = getattr(connection, "parameter_config", None)
        if isinstance(connection_config, ParameterStyleConfig):
            return connection_config
        return self.config.parameter_config

    def _build(
        self,
        stack: contextlib.ExitStack,
        prepare_fn: "PrepareFunction",
        sql: str,
        source: ParameterSource,
        connection: "ConnectionProtocol",
    ) -> "PreparedStatementProtocol":
        def prepare(rewritten_sql: str) -> "PreparedStatementProtocol":
            return stack.enter_context(closing_logged(prepare_fn(rewritten_sql), self.config.log_error))

        return self.builder.build(
            prepare,
            sql,
            source,
            new_date=connection.new_date,
            parameter_config=self._parameter_config(connection),
        )

    @log_and_reraise(_describe_query_failure, sink=lambda self: self.config.log_error)
    def _run_query(
        self,
        sql: str,
        source: ParameterSource,
        statement: "PreparedStatementProtocol",
        stack: contextlib.ExitStack,
        callback: "ResultCallback",
    ) -> Any:
        self.config.log_debug(describe_statement("Executing query", sql, source))
        cursor = stack.enter_context(closing_logged(statement.execute_query(), self.config.log_error))
        return callback(cursor)

    @log_and_reraise(_describe_update_failure, sink=lambda self: self.config.log_error)
    def _run_update(self, sql: str, source: ParameterSource, statement: "PreparedStatementProtocol") -> int:
        self.config.log_debug(describe_statement("Executing update", sql, source))
        row_count = statement.execute_update()
        self.config.log_debug(f"Update affected {row_count} row(s)")
        return row_count


_default_session = SQLSession()


def get_default_session() -> SQLSession:
    """Return the session used by the module-level :func:`query`, :func:`update` and :func:`insert`."""
    return _default_session


def configure(config: "Optional[SessionConfig]" = None) -> SQLSession:
    """Replace the default session with one built from ``config``."""
    global _default_session  # noqa: PLW0603
    _default_session = SQLSession(config)
    return _default_session


def query(*args: Any) -> Any:
    """:meth:`SQLSession.query` on the default session."""
    return _default_session.query(*args)


def update(*args: Any) -> int:
    """:meth:`SQLSession.update` on the default session."""
    return _default_session.update(*args)


def insert(*args: Any) -> int:
    """:meth:`SQLSession.insert` on the default session."""
    return _default_session.insert(*args)
