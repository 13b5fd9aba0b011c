"""PEP 249 (DB-API 2.0) bridge.

Wraps a DB-API connection so it satisfies :class:`~namedsql.protocols.ConnectionProtocol`:
statements collect slot values through typed setters and hand them to
``cursor.execute`` as a positional sequence.
"""

import contextlib
import datetime
import sys
from collections.abc import Generator, Mapping
from decimal import Decimal
from typing import Any, Final, Optional

from namedsql.exceptions import BindingFailure, NamedSQLError
from namedsql.parameters.config import ParameterStyleConfig
from namedsql.parameters.translator import count_placeholders, escape_percent_literals
from namedsql.parameters.types import ParameterStyle
from namedsql.utils.logging import get_logger
from namedsql.utils.serializers import to_json

__all__ = (
    "DbapiConnection",
    "DbapiPreparedStatement",
    "DbapiResultCursor",
    "parameter_config_for_paramstyle",
    "pyformat_parameter_config",
    "sqlite_parameter_config",
)

logger = get_logger("adapters.dbapi")

_EPOCH: Final = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)

sqlite_parameter_config = ParameterStyleConfig(
    placeholder_style=ParameterStyle.QMARK,
    type_coercion_map={
        bool: int,
        datetime.datetime: lambda v: v.isoformat(),
        datetime.date: lambda v: v.isoformat(),
        Decimal: str,
        dict: to_json,
        list: to_json,
        tuple: lambda v: to_json(list(v)),
    },
)

pyformat_parameter_config = ParameterStyleConfig(placeholder_style=ParameterStyle.POSITIONAL_PYFORMAT)


def parameter_config_for_paramstyle(paramstyle: str) -> ParameterStyleConfig:
    """Return a parameter configuration matching a driver module's ``paramstyle``."""
    return ParameterStyleConfig(placeholder_style=ParameterStyle.from_paramstyle(paramstyle))


def _detect_parameter_config(connection: Any) -> ParameterStyleConfig:
    module_name = type(connection).__module__.split(".")[0]
    if module_name == "sqlite3":
        return sqlite_parameter_config
    module = sys.modules.get(module_name)
    paramstyle = getattr(module, "paramstyle", "qmark")
    return parameter_config_for_paramstyle(paramstyle)


class DbapiResultCursor:
    """Forward-only cursor with 1-based column access."""

    __slots__ = ("_closed", "_cursor", "_row")

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        self._row: Optional[Any] = None
        self._closed = False

    @property
    def column_names(self) -> "list[str]":
        """Column names reported by the driver, in select order."""
        return [column[0] for column in self._cursor.description or []]

    def advance(self) -> bool:
        """Fetch the next row; False once the rows are exhausted."""
        if self._closed:
            msg = "cursor is closed"
            raise RuntimeError(msg)
        self._row = self._cursor.fetchone()
        return self._row is not None

    def get_object(self, slot: int) -> Any:
        """Return column ``slot`` (1-based) of the current row."""
        if self._row is None:
            msg = "No current row; call advance() first"
            raise NamedSQLError(msg)
        values = list(self._row.values()) if isinstance(self._row, Mapping) else self._row
        if not 1 <= slot <= len(values):
            msg = f"Column index out of range: {slot} (row has {len(values)} column(s))"
            raise IndexError(msg)
        return values[slot - 1]

    def get_string(self, slot: int) -> Optional[str]:
        """Return column ``slot`` (1-based) of the current row as text, None for NULL."""
        value = self.get_object(slot)
        return None if value is None else str(value)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._row = None
        self._cursor.close()


class DbapiPreparedStatement:
    """Statement that collects slot values and executes them on a fresh cursor.

    For ``%s`` style drivers the SQL handed to ``cursor.execute`` has every
    literal ``%`` doubled, since those drivers %-format the whole statement.
    """

    __slots__ = ("_closed", "_driver_sql", "_values", "connection", "parameter_count", "sql")

    def __init__(self, connection: "DbapiConnection", sql: str) -> None:
        self.connection = connection
        self.sql = sql
        style = connection.parameter_config.placeholder_style
        self.parameter_count = count_placeholders(sql, style)
        self._driver_sql = escape_percent_literals(sql) if style is ParameterStyle.POSITIONAL_PYFORMAT else sql
        self._values: dict[int, Any] = {}
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            msg = "statement is closed"
            raise RuntimeError(msg)

    def _set(self, slot: int, value: Any) -> None:
        self._check_open()
        if not 1 <= slot <= self.parameter_count:
            msg = f"Parameter index out of range: {slot} (statement has {self.parameter_count} parameter(s))"
            raise BindingFailure(msg, self.sql)
        self._values[slot] = self.connection.parameter_config.coerce(value)

    def set_string(self, slot: int, value: str) -> None:
        self._set(slot, value)

    def set_object(self, slot: int, value: Any) -> None:
        self._set(slot, value)

    def set_date(self, slot: int, value: Any) -> None:
        self._set(slot, value)

    def parameters(self) -> "tuple[Any, ...]":
        """Return the bound values in slot order.

        Raises:
            BindingFailure: Some slot has no value.
        """
        missing = [slot for slot in range(1, self.parameter_count + 1) if slot not in self._values]
        if missing:
            msg = f"No value bound for parameter(s) {', '.join(str(slot) for slot in missing)}"
            raise BindingFailure(msg, self.sql)
        return tuple(self._values[slot] for slot in range(1, self.parameter_count + 1))

    def _execute(self) -> Any:
        self._check_open()
        parameters = self.parameters()
        cursor = self.connection.raw.cursor()
        try:
            cursor.execute(self._driver_sql, parameters)
        except BaseException:
            with contextlib.suppress(Exception):
                cursor.close()
            raise
        return cursor

    def execute_query(self) -> DbapiResultCursor:
        """Execute and return a cursor over the result rows."""
        return DbapiResultCursor(self._execute())

    def execute_update(self) -> int:
        """Execute and return the driver's affected row count."""
        cursor = self._execute()
        try:
            return int(cursor.rowcount)
        finally:
            cursor.close()

    def close(self) -> None:
        self._closed = True
        self._values.clear()


class DbapiConnection:
    """Expose a DB-API connection through the prepared-statement protocol.

    The wrapped connection stays owned by the caller: :meth:`close` only runs
    when the caller asks for it, directly or by leaving the ``with`` block.
    """

    __slots__ = ("parameter_config", "raw")

    def __init__(self, connection: Any, parameter_config: "Optional[ParameterStyleConfig]" = None) -> None:
        """Wrap ``connection``.

        Args:
            connection: DB-API 2.0 connection.
            parameter_config: Placeholder style and value coercions; detected
                from the driver module's ``paramstyle`` when omitted.
        """
        self.raw = connection
        self.parameter_config = parameter_config or _detect_parameter_config(connection)

    def prepare(self, sql: str) -> DbapiPreparedStatement:
        """Create a statement for ``sql``, already in the driver's placeholder style."""
        return DbapiPreparedStatement(self, sql)

    def new_date(self, epoch_millis: int) -> datetime.datetime:
        """Return an aware UTC datetime for ``epoch_millis``."""
        return _EPOCH + datetime.timedelta(milliseconds=epoch_millis)

    def commit(self) -> None:
        self.raw.commit()

    def rollback(self) -> None:
        self.raw.rollback()

    @contextlib.contextmanager
    def transaction(self) -> "Generator[DbapiConnection, None, None]":
        """Commit when the block succeeds, roll back when it raises."""
        try:
            yield self
            self.raw.commit()
        except BaseException:
            self.raw.rollback()
            raise

    def close(self) -> None:
        self.raw.close()

    def __enter__(self) -> "DbapiConnection":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
