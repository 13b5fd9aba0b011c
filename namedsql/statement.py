"""Statement construction: translate, prepare, bind."""

import contextlib
from collections.abc import Generator, Sequence
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar, Union

from namedsql.config import SessionConfig
from namedsql.exceptions import ArgumentError, SQLTypeError, log_and_reraise
from namedsql.parameters.binder import ParameterBinder
from namedsql.parameters.config import ParameterStyleConfig
from namedsql.parameters.translator import PlaceholderTranslator
from namedsql.parameters.types import Named, ParameterSource, Positional, parameter_source_from_args
from namedsql.utils.serializers import to_json

if TYPE_CHECKING:
    from namedsql.protocols import PreparedStatementProtocol
    from namedsql.typing import LogSink, PrepareFunction

__all__ = ("StatementBuilder", "closing_logged", "describe_statement")

ClosableT = TypeVar("ClosableT")


def _source_values(source: ParameterSource) -> Any:
    if isinstance(source, Named):
        return dict(source.mapping)
    return list(source.values)


def describe_statement(prefix: str, sql: str, source: ParameterSource) -> str:
    """Render ``prefix`` with the SQL text and serialized parameters for a log line."""
    return f"{prefix}. SQL: {sql} Parameters: {to_json(_source_values(source))}"


@contextlib.contextmanager
def closing_logged(resource: ClosableT, log: "LogSink") -> "Generator[ClosableT, None, None]":
    """Close ``resource`` on exit.

    When the block raises, a failing ``close()`` is logged and the block's
    exception propagates unchanged. On a clean exit a failing ``close()``
    propagates.
    """
    try:
        yield resource
    except BaseException:
        try:
            resource.close()  # type: ignore[attr-defined]
        except Exception as close_exc:
            log(f"Failed to close {type(resource).__name__}: {close_exc!r}")
        raise
    resource.close()  # type: ignore[attr-defined]


def _as_source(args: Any) -> ParameterSource:
    if isinstance(args, (Positional, Named)):
        return args
    if isinstance(args, (str, bytes)) or not isinstance(args, Sequence):
        args = (args,)
    return parameter_source_from_args(args)


def _describe_build_failure(prepare_fn: Any, sql: Any, args: Any = (), **_: Any) -> str:
    return describe_statement("Failed to prepare statement", str(sql), _as_source(args))


class StatementBuilder:
    """Produce a bound, unexecuted prepared statement from SQL and parameters.

    The returned statement belongs to the caller, who must close it. The
    builder never closes it, not even when binding fails; callers that need
    cleanup on binding failure register the statement for closing inside
    ``prepare_fn``.
    """

    __slots__ = ("config", "translator")

    def __init__(
        self, config: "Optional[SessionConfig]" = None, translator: "Optional[PlaceholderTranslator]" = None
    ) -> None:
        self.config = config or SessionConfig()
        self.translator = translator or PlaceholderTranslator()

    @log_and_reraise(_describe_build_failure, sink=lambda self: self.config.log_error)
    def build(
        self,
        prepare_fn: "Optional[PrepareFunction]",
        sql: str,
        args: "Union[Sequence[Any], ParameterSource]" = (),
        *,
        new_date: "Callable[[int], Any]",
        parameter_config: "Optional[ParameterStyleConfig]" = None,
    ) -> "PreparedStatementProtocol":
        """Translate ``sql``, prepare it with ``prepare_fn`` and bind ``args``.

        Args:
            prepare_fn: Creates the driver statement from the rewritten SQL.
            sql: SQL text with named or native positional placeholders.
            args: Caller arguments (excluding the connection), or an explicit parameter source.
            new_date: Builds the driver's date value from epoch milliseconds.
            parameter_config: Placeholder style and binding options; defaults to the session's.

        Raises:
            ArgumentError: No ``prepare_fn`` (no connection) was given.
            SQLTypeError: ``sql`` is not text.

        Returns:
            The bound statement.
        """
        if prepare_fn is None:
            msg = "A connection is required to prepare a statement."
            raise ArgumentError(msg)
        if not isinstance(sql, str):
            raise SQLTypeError(sql)

        config = parameter_config or self.config.parameter_config
        source = _as_source(args)
        translated = self.translator.translate(sql, config.placeholder_style)
        self.config.log_debug(describe_statement("Preparing statement", translated.sql, source))

        statement = prepare_fn(translated.sql)
        ParameterBinder(new_date, config).bind(statement, source, translated.identifiers, sql)
        return statement
