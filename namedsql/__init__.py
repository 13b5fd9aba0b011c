"""namedsql: named-parameter binding and statement lifecycle over prepared-statement drivers."""

from namedsql import adapters, exceptions, parameters, typing, utils
from namedsql.__metadata__ import __version__
from namedsql.adapters.dbapi import DbapiConnection
from namedsql.config import SessionConfig, env_debug_flag, static_debug_flag
from namedsql.connection import ConnectionProvider, parse_url, with_connection
from namedsql.exceptions import ArgumentError, BindingFailure, ConnectionFailure, NamedSQLError, SQLTypeError
from namedsql.parameters import (
    Named,
    ParameterBinder,
    ParameterSource,
    ParameterStyle,
    ParameterStyleConfig,
    PlaceholderTranslator,
    Positional,
    translate,
)
from namedsql.protocols import ConnectionProtocol, PreparedStatementProtocol, ResultCursorProtocol
from namedsql.session import SQLSession, configure, first_column, get_default_session, insert, query, update
from namedsql.statement import StatementBuilder

__all__ = (
    "ArgumentError",
    "BindingFailure",
    "ConnectionFailure",
    "ConnectionProtocol",
    "ConnectionProvider",
    "DbapiConnection",
    "Named",
    "NamedSQLError",
    "ParameterBinder",
    "ParameterSource",
    "ParameterStyle",
    "ParameterStyleConfig",
    "PlaceholderTranslator",
    "Positional",
    "PreparedStatementProtocol",
    "ResultCursorProtocol",
    "SQLSession",
    "SQLTypeError",
    "SessionConfig",
    "StatementBuilder",
    "__version__",
    "adapters",
    "configure",
    "env_debug_flag",
    "exceptions",
    "first_column",
    "get_default_session",
    "insert",
    "parameters",
    "parse_url",
    "query",
    "static_debug_flag",
    "translate",
    "typing",
    "update",
    "utils",
    "with_connection",
)
