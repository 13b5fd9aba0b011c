from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Callable

from typing_extensions import TypeAlias

if TYPE_CHECKING:
    from namedsql.protocols import PreparedStatementProtocol, ResultCursorProtocol

__all__ = (
    "DebugFlagProvider",
    "LogSink",
    "NamedParameters",
    "PositionalParameters",
    "PrepareFunction",
    "ResultCallback",
)

LogSink: TypeAlias = Callable[[str], None]
"""Single-argument sink receiving human-readable log lines."""
DebugFlagProvider: TypeAlias = Callable[[], bool]
"""Re-read at every logging decision point."""
ResultCallback: TypeAlias = "Callable[[ResultCursorProtocol], Any]"
PrepareFunction: TypeAlias = "Callable[[str], PreparedStatementProtocol]"

NamedParameters: TypeAlias = Mapping[str, Any]
PositionalParameters: TypeAlias = Sequence[Any]
