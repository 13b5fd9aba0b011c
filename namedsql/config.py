"""Session configuration: debug flag provider, log sink and parameter handling."""

import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, Optional

from namedsql.parameters.config import ParameterStyleConfig
from namedsql.utils.logging import get_logger, logger_sink

if TYPE_CHECKING:
    from namedsql.typing import DebugFlagProvider, LogSink

__all__ = ("DEBUG_ENV_VAR", "SessionConfig", "env_debug_flag", "static_debug_flag")

logger = get_logger("session")
_debug_to_logger = logger_sink(logger, logging.DEBUG)
_error_to_logger = logger_sink(logger, logging.ERROR)

DEBUG_ENV_VAR: Final = "NAMEDSQL_DEBUG"
_TRUTHY: Final = frozenset({"1", "true", "yes", "on"})


def env_debug_flag(name: str = DEBUG_ENV_VAR) -> "DebugFlagProvider":
    """Build a debug flag provider that reads environment variable ``name`` on every call.

    Args:
        name: Environment variable holding the flag.

    Returns:
        A provider returning True when the variable is set to a truthy value.
    """

    def provider() -> bool:
        return os.environ.get(name, "").strip().lower() in _TRUTHY

    return provider


def static_debug_flag(enabled: bool) -> "DebugFlagProvider":
    """Build a debug flag provider with a fixed answer."""

    def provider() -> bool:
        return enabled

    return provider


@dataclass(slots=True)
class SessionConfig:
    """Configuration held by a session for its whole lifetime.

    The debug flag is re-read from ``debug`` at each logging decision point, so
    changes take effect on the next call. When ``log_sink`` is set it receives
    both debug and error lines; otherwise they go to the ``namedsql.session``
    logger at DEBUG and ERROR level.
    """

    debug: "DebugFlagProvider" = field(default_factory=env_debug_flag)
    log_sink: "Optional[LogSink]" = None
    parameter_config: ParameterStyleConfig = field(default_factory=ParameterStyleConfig)

    def is_debug(self) -> bool:
        """Return the current value of the debug flag."""
        return bool(self.debug())

    def log_debug(self, message: str) -> None:
        """Emit ``message`` when the debug flag is currently enabled."""
        if not self.is_debug():
            return
        (self.log_sink or _debug_to_logger)(message)

    def log_error(self, message: str) -> None:
        """Emit ``message`` unconditionally."""
        (self.log_sink or _error_to_logger)(message)

    def copy(self) -> "SessionConfig":
        """Return a copy that does not share the parameter configuration."""
        return SessionConfig(
            debug=self.debug, log_sink=self.log_sink, parameter_config=self.parameter_config.replace()
        )

    @classmethod
    def merge(cls, base_config: "Optional[SessionConfig]", **overrides: object) -> "SessionConfig":
        """Copy ``base_config`` (or the defaults) and apply the non-None ``overrides``."""
        merged = base_config.copy() if base_config else cls()
        for name, value in overrides.items():
            if value is not None:
                setattr(merged, name, value)
        return merged
