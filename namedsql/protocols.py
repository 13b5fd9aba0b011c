"""Runtime-checkable protocols for the driver objects namedsql consumes.

Drivers only need to provide these methods; nothing here is inherited.
"""

from typing import Any, Protocol, runtime_checkable

__all__ = (
    "ConnectionProtocol",
    "PreparedStatementProtocol",
    "ResultCursorProtocol",
)


@runtime_checkable
class ResultCursorProtocol(Protocol):
    """Protocol for an open cursor over query result rows."""

    def advance(self) -> bool:
        """Move to the next row, returning False when exhausted."""
        ...

    def get_string(self, slot: int) -> "str | None":
        """Return column ``slot`` (1-based) of the current row as text."""
        ...

    def get_object(self, slot: int) -> Any:
        """Return column ``slot`` (1-based) of the current row unconverted."""
        ...

    def close(self) -> None:
        """Release the cursor."""
        ...


@runtime_checkable
class PreparedStatementProtocol(Protocol):
    """Protocol for a parsed, parameter-bindable statement."""

    def set_string(self, slot: int, value: str) -> None:
        """Bind text to slot ``slot`` (1-based)."""
        ...

    def set_object(self, slot: int, value: Any) -> None:
        """Bind an arbitrary value to slot ``slot`` (1-based)."""
        ...

    def set_date(self, slot: int, value: Any) -> None:
        """Bind a driver date value to slot ``slot`` (1-based)."""
        ...

    def execute_query(self) -> ResultCursorProtocol:
        """Execute the statement and return a cursor."""
        ...

    def execute_update(self) -> int:
        """Execute the statement and return the affected row count."""
        ...

    def close(self) -> None:
        """Release the statement."""
        ...


@runtime_checkable
class ConnectionProtocol(Protocol):
    """Protocol for a connection able to prepare statements.

    Connections may additionally expose ``prepare_query`` and ``prepare_update``;
    when present they are preferred over ``prepare`` for the matching operation.
    """

    def prepare(self, sql: str) -> PreparedStatementProtocol:
        """Prepare ``sql`` (already in the driver's positional style)."""
        ...

    def new_date(self, epoch_millis: int) -> Any:
        """Build the driver's date representation from epoch milliseconds."""
        ...
