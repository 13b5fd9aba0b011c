import functools
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar, cast

if TYPE_CHECKING:
    from namedsql.typing import LogSink

__all__ = (
    "ArgumentError",
    "BindingFailure",
    "ConnectionFailure",
    "NamedSQLError",
    "SQLTypeError",
    "log_and_reraise",
)

F = TypeVar("F", bound=Callable[..., Any])


class NamedSQLError(Exception):
    """Base exception class from which all namedsql exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``NamedSQLError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class ArgumentError(NamedSQLError, ValueError):
    """Too few call arguments, or a required connection/configuration value is absent."""

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "At least a SQL statement and a connection are required."
        super().__init__(message)


class SQLTypeError(NamedSQLError, TypeError):
    """The SQL argument is not text."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"SQL statement must be a string, got {type(value).__name__}")
        self.value = value


class BindingFailure(NamedSQLError):
    """A value could not be bound to a statement slot.

    Raised when a statement rejects a slot or when a named placeholder has no
    matching key in the supplied mapping.
    """

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


class ConnectionFailure(NamedSQLError):
    """A database connection could not be established."""

    url: Optional[str]

    def __init__(self, message: Optional[str] = None, url: Optional[str] = None) -> None:
        if message is None:
            message = "Could not establish a database connection."
        detail_message = message
        if url:
            detail_message = f"{message} (URL: {url})"
        super().__init__(detail=detail_message)
        self.url = url


def log_and_reraise(describe: "Callable[..., str]", sink: "Callable[[Any], LogSink]") -> Callable[[F], F]:
    """Log a diagnostic for any exception raised by the wrapped callable, then re-raise it.

    The exception is re-raised unchanged; only the log line is added.

    Args:
        describe: Builds the diagnostic message from the wrapped call's arguments.
        sink: Resolves the log sink from the wrapped call's first argument (``self``).

    Returns:
        A decorator.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                log = sink(args[0])
                log(f"{describe(*args[1:], **kwargs)}: {exc!r}")
                raise

        return cast("F", wrapper)

    return decorator
