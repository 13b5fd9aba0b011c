"""Connection acquisition from a URL or from stored settings.

Two URL flavors are understood:

- ``sqlite:///path/to/file.db`` and ``sqlite://:memory:`` open a stdlib
  :mod:`sqlite3` connection;
- ``<module>://user:password@host:port/database`` imports the DB-API module
  ``<module>`` (dotted paths allowed) and calls its ``connect`` with keyword
  arguments.

Connections come back wrapped in :class:`~namedsql.adapters.dbapi.DbapiConnection`
with auto-commit disabled; committing and closing stay with the caller.
"""

import functools
import re
import sqlite3
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Final, Optional, TypedDict, TypeVar, cast
from urllib.parse import parse_qsl, unquote, urlsplit

from typing_extensions import NotRequired

from namedsql.adapters.dbapi import DbapiConnection, parameter_config_for_paramstyle, sqlite_parameter_config
from namedsql.exceptions import ArgumentError, ConnectionFailure
from namedsql.utils.logging import get_logger
from namedsql.utils.module_loader import import_string

if TYPE_CHECKING:
    from namedsql.parameters.config import ParameterStyleConfig

__all__ = (
    "ConnectionParams",
    "ConnectionProvider",
    "ConnectionSettings",
    "parse_url",
    "with_connection",
)

logger = get_logger("connection")

F = TypeVar("F", bound=Callable[..., Any])

SQLITE_SCHEME: Final = "sqlite"
DEFAULT_SCHEMA_STATEMENT: Final = "SET search_path TO {schema}"
_SCHEMA_NAME_RE: Final = re.compile(r"^\w+$")
_TRUE_VALUES: Final = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES: Final = frozenset({"0", "false", "no", "off"})


class ConnectionSettings(TypedDict, total=False):
    """Stored settings for one named connection."""

    url: str
    user: NotRequired[str]
    password: NotRequired[str]
    schema: NotRequired[str]
    schema_statement: NotRequired[str]
    connect_kwargs: NotRequired["dict[str, Any]"]


class ConnectionParams:
    """Parsed connection URL."""

    __slots__ = ("connect_kwargs", "driver", "schema", "url")

    def __init__(
        self, driver: str, connect_kwargs: "dict[str, Any]", url: str, schema: Optional[str] = None
    ) -> None:
        self.driver = driver
        self.connect_kwargs = connect_kwargs
        self.url = url
        self.schema = schema

    @property
    def is_sqlite(self) -> bool:
        return self.driver == SQLITE_SCHEME

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConnectionParams):
            return False
        return (
            self.driver == other.driver
            and self.connect_kwargs == other.connect_kwargs
            and self.url == other.url
            and self.schema == other.schema
        )

    def __hash__(self) -> int:
        return hash((self.driver, self.url, self.schema))

    def __repr__(self) -> str:
        safe_kwargs = {k: ("***" if k == "password" else v) for k, v in self.connect_kwargs.items()}
        return f"ConnectionParams(driver={self.driver!r}, connect_kwargs={safe_kwargs!r}, schema={self.schema!r})"


def _parse_flag(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    msg = f"Expected a boolean, got {value!r}"
    raise ValueError(msg)


def _parse_isolation_level(value: str) -> Optional[str]:
    # "none" selects sqlite3 autocommit mode
    return None if value.strip().lower() in {"", "none"} else value


_SQLITE_OPTIONS: "Final[dict[str, Callable[[str], Any]]]" = {
    "timeout": float,
    "detect_types": int,
    "cached_statements": int,
    "check_same_thread": _parse_flag,
    "uri": _parse_flag,
    "isolation_level": _parse_isolation_level,
}


def _sqlite_options(query: "dict[str, str]", url: str) -> "dict[str, Any]":
    options: dict[str, Any] = {}
    for key, value in query.items():
        converter = _SQLITE_OPTIONS.get(key)
        if converter is None:
            msg = f"Unknown sqlite connection option {key!r} in {url!r}"
            raise ArgumentError(msg)
        try:
            options[key] = converter(value)
        except ValueError as e:
            msg = f"Invalid value for sqlite option {key!r}: {value!r}"
            raise ArgumentError(msg) from e
    return options


def parse_url(url: str) -> ConnectionParams:
    """Parse a connection URL into driver name and ``connect`` keyword arguments.

    The scheme is everything before ``://`` and may be any importable module
    path, underscores included. For sqlite URLs the query string items
    ``timeout``, ``detect_types``, ``cached_statements``, ``check_same_thread``,
    ``uri`` and ``isolation_level`` are converted to the types
    :func:`sqlite3.connect` expects; for other drivers they are passed through
    as strings.

    Raises:
        ArgumentError: The URL is empty, has no scheme, or carries an invalid sqlite option.
    """
    if not url:
        msg = "A connection URL is required."
        raise ArgumentError(msg)
    scheme, separator, remainder = url.partition("://")
    if not separator or not scheme:
        msg = f"Connection URL has no scheme: {url!r}"
        raise ArgumentError(msg)
    parts = urlsplit(f"//{remainder}")
    extra = dict(parse_qsl(parts.query))

    if scheme == SQLITE_SCHEME:
        database = unquote(parts.netloc + parts.path)
        if database.startswith("/") and parts.netloc == "":
            database = database[1:]
        options = _sqlite_options(extra, url)
        return ConnectionParams(SQLITE_SCHEME, {"database": database or ":memory:", **options}, url)

    kwargs: dict[str, Any] = {}
    if parts.hostname:
        kwargs["host"] = parts.hostname
    try:
        port = parts.port
    except ValueError as e:
        msg = f"Invalid port in connection URL: {url!r}"
        raise ArgumentError(msg) from e
    if port:
        kwargs["port"] = port
    if parts.username:
        kwargs["user"] = unquote(parts.username)
    if parts.password:
        kwargs["password"] = unquote(parts.password)
    database = parts.path.lstrip("/")
    if database:
        kwargs["database"] = unquote(database)
    kwargs.update(extra)
    return ConnectionParams(scheme, kwargs, url)


class ConnectionProvider:
    """Open connections from a URL and credentials, or from named stored settings."""

    __slots__ = ("parameter_config", "settings")

    def __init__(
        self,
        settings: "Optional[Mapping[str, ConnectionSettings]]" = None,
        parameter_config: "Optional[ParameterStyleConfig]" = None,
    ) -> None:
        """Initialize the provider.

        Args:
            settings: Named connection settings for :meth:`connect_configured`.
            parameter_config: Overrides the placeholder configuration detected for each driver.
        """
        self.settings = dict(settings or {})
        self.parameter_config = parameter_config

    def connect(
        self,
        url: str,
        schema: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        *,
        schema_statement: str = DEFAULT_SCHEMA_STATEMENT,
        **connect_kwargs: Any,
    ) -> DbapiConnection:
        """Open a connection.

        Args:
            url: Connection URL.
            schema: Schema to switch to after connecting (ignored for sqlite).
            user: User name; overrides the URL's.
            password: Password; overrides the URL's.
            schema_statement: Statement template switching schema, formatted with ``schema``.
            **connect_kwargs: Extra keyword arguments for the driver's ``connect``.

        Raises:
            ArgumentError: Missing URL or invalid schema name.
            ConnectionFailure: The driver could not connect.

        Returns:
            The wrapped connection, auto-commit disabled.
        """
        params = parse_url(url)
        if user is not None:
            params.connect_kwargs["user"] = user
        if password is not None:
            params.connect_kwargs["password"] = password
        params.connect_kwargs.update(connect_kwargs)
        params.schema = schema
        if schema is not None and not _SCHEMA_NAME_RE.match(schema):
            msg = f"Invalid schema name: {schema!r}"
            raise ArgumentError(msg)

        logger.debug("Opening connection: %r", params)
        raw, parameter_config = self._open(params)
        connection = DbapiConnection(raw, self.parameter_config or parameter_config)
        if schema is not None and not params.is_sqlite:
            self._apply_schema(connection, params, schema_statement.format(schema=schema))
        return connection

    def connect_configured(self, name: str) -> DbapiConnection:
        """Open the connection stored under ``name``.

        Raises:
            ArgumentError: No settings for ``name``, or they have no URL.
            ConnectionFailure: The driver could not connect.
        """
        settings = self.settings.get(name)
        if settings is None:
            msg = f"No connection settings named {name!r}"
            raise ArgumentError(msg)
        url = settings.get("url")
        if not url:
            msg = f"Connection settings {name!r} have no url"
            raise ArgumentError(msg)
        return self.connect(
            url,
            schema=settings.get("schema"),
            user=settings.get("user"),
            password=settings.get("password"),
            schema_statement=settings.get("schema_statement", DEFAULT_SCHEMA_STATEMENT),
            **settings.get("connect_kwargs", {}),
        )

    def _open(self, params: ConnectionParams) -> "tuple[Any, ParameterStyleConfig]":
        if params.is_sqlite:
            # sqlite has no credentials
            kwargs = {k: v for k, v in params.connect_kwargs.items() if k not in {"user", "password"}}
            try:
                raw = sqlite3.connect(**kwargs)
            except (sqlite3.Error, TypeError, ValueError) as e:
                msg = f"SQLite connection failed: {e}"
                raise ConnectionFailure(msg, params.url) from e
            return raw, sqlite_parameter_config

        try:
            module = import_string(params.driver)
        except ImportError as e:
            msg = f"Database driver {params.driver!r} is not installed"
            raise ConnectionFailure(msg, params.url) from e
        try:
            raw = module.connect(**params.connect_kwargs)
        except Exception as e:
            msg = f"Connection failed: {e}"
            raise ConnectionFailure(msg, params.url) from e
        if hasattr(raw, "autocommit"):
            raw.autocommit = False
        return raw, parameter_config_for_paramstyle(getattr(module, "paramstyle", "qmark"))

    def _apply_schema(self, connection: DbapiConnection, params: ConnectionParams, statement: str) -> None:
        cursor = connection.raw.cursor()
        try:
            cursor.execute(statement)
        except Exception as e:
            connection.close()
            msg = f"Could not switch to schema {params.schema!r}: {e}"
            raise ConnectionFailure(msg, params.url) from e
        finally:
            cursor.close()


def with_connection(
    provider: ConnectionProvider, url: Optional[str] = None, *, name: Optional[str] = None, **connect_kwargs: Any
) -> Callable[[F], F]:
    """Run the decorated function with a fresh connection appended to its arguments.

    The connection is committed when the function returns, rolled back when
    it raises, and closed in both cases.

    Args:
        provider: Opens the connection.
        url: Connection URL for :meth:`ConnectionProvider.connect`.
        name: Stored settings name for :meth:`ConnectionProvider.connect_configured`.
        **connect_kwargs: Passed to :meth:`ConnectionProvider.connect`.

    Raises:
        ArgumentError: Neither or both of ``url`` and ``name`` were given.
    """
    if (url is None) == (name is None):
        msg = "Exactly one of url or name is required."
        raise ArgumentError(msg)

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if name is not None:
                connection = provider.connect_configured(name)
            else:
                connection = provider.connect(cast("str", url), **connect_kwargs)
            with connection, connection.transaction():
                return func(*args, connection, **kwargs)

        return cast("F", wrapper)

    return decorator
