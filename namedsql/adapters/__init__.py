"""Driver adapters exposing DB-API connections through the namedsql protocols."""

from namedsql.adapters.dbapi import (
    DbapiConnection,
    DbapiPreparedStatement,
    DbapiResultCursor,
    parameter_config_for_paramstyle,
    pyformat_parameter_config,
    sqlite_parameter_config,
)

__all__ = (
    "DbapiConnection",
    "DbapiPreparedStatement",
    "DbapiResultCursor",
    "parameter_config_for_paramstyle",
    "pyformat_parameter_config",
    "sqlite_parameter_config",
)
