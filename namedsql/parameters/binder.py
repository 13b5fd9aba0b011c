"""Type-directed parameter binding.

Each value is classified once into a :data:`BoundValue` variant, and the
variant decides which statement setter receives it:

- text, and empty mappings, go to ``set_string``;
- date-like values go to ``set_date`` as the driver's date built from epoch milliseconds;
- everything else goes to ``set_object`` unchanged.
"""

import datetime
from collections.abc import Mapping, Sequence
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Callable, Final, Optional

from mypy_extensions import mypyc_attr

from namedsql.exceptions import BindingFailure
from namedsql.parameters.config import ParameterStyleConfig
from namedsql.parameters.types import (
    BoundValue,
    DateValue,
    GenericValue,
    Named,
    ParameterSource,
    Positional,
    TextValue,
)
from namedsql.utils.dispatch import TypeDispatcher
from namedsql.utils.logging import get_logger
from namedsql.utils.serializers import to_json

if TYPE_CHECKING:
    from namedsql.protocols import PreparedStatementProtocol

__all__ = ("ParameterBinder", "ValueKind", "classify_value", "epoch_millis")

logger = get_logger("parameters.binder")

_EPOCH: Final = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
_ONE_MILLISECOND: Final = datetime.timedelta(milliseconds=1)


class ValueKind(Enum):
    """Setter family a value type maps to."""

    TEXT = auto()
    DATE = auto()
    GENERIC = auto()


def _kind_from_shape(value_type: type) -> ValueKind:
    # Third-party date wrappers (arrow, pendulum, ...) expose a timestamp() method.
    if callable(getattr(value_type, "timestamp", None)):
        return ValueKind.DATE
    return ValueKind.GENERIC


_VALUE_KINDS: Final = TypeDispatcher[ValueKind](fallback=_kind_from_shape)
_VALUE_KINDS.register(str, ValueKind.TEXT)
_VALUE_KINDS.register(datetime.datetime, ValueKind.DATE)
_VALUE_KINDS.register(datetime.date, ValueKind.DATE)


def epoch_millis(value: Any) -> int:
    """Return ``value`` as milliseconds since the Unix epoch.

    Naive datetimes are read as local time, ``datetime.date`` as UTC midnight.
    """
    if isinstance(value, datetime.datetime):
        aware = value if value.tzinfo is not None else value.astimezone()
        return (aware - _EPOCH) // _ONE_MILLISECOND
    if isinstance(value, datetime.date):
        midnight = datetime.datetime.combine(value, datetime.time.min, tzinfo=datetime.timezone.utc)
        return (midnight - _EPOCH) // _ONE_MILLISECOND
    return int(round(float(value.timestamp()) * 1000))


def classify_value(value: Any, *, empty_mapping_as_text: bool = True) -> BoundValue:
    """Classify ``value`` into the variant that selects its setter.

    Text and empty mappings are checked first, dates second, and anything else
    is generic. An empty mapping is bound as the text ``"{}"``; this is logged
    because it may hide a caller bug, and can be turned off with
    ``empty_mapping_as_text=False``.

    Args:
        value: The value to classify.
        empty_mapping_as_text: Whether empty mappings bind through the string setter.

    Returns:
        The tagged value.
    """
    kind = _VALUE_KINDS.get(value)
    if kind is ValueKind.TEXT:
        return TextValue(value)
    if empty_mapping_as_text and isinstance(value, Mapping) and not value:
        logger.warning("Empty mapping bound as text %r; pass a string or disable bind_empty_mapping_as_text", "{}")
        return TextValue(to_json(value))
    if kind is ValueKind.DATE:
        return DateValue(epoch_millis(value))
    return GenericValue(value)


@mypyc_attr(allow_interpreted_subclasses=False)
class ParameterBinder:
    """Bind a parameter source onto a prepared statement, slot by slot."""

    __slots__ = ("config", "new_date")

    def __init__(self, new_date: "Callable[[int], Any]", config: "Optional[ParameterStyleConfig]" = None) -> None:
        """Initialize the binder.

        Args:
            new_date: Builds the driver's date representation from epoch milliseconds.
            config: Parameter configuration; defaults to :class:`ParameterStyleConfig`.
        """
        self.new_date = new_date
        self.config = config or ParameterStyleConfig()

    def bind(
        self,
        statement: "PreparedStatementProtocol",
        source: ParameterSource,
        identifiers: "Sequence[str]",
        sql: Optional[str] = None,
    ) -> None:
        """Bind every value of ``source`` to ``statement``.

        Positional sources bind element ``k`` to slot ``k + 1`` and ignore
        ``identifiers``. Named sources look up each identifier in order, once
        per occurrence.

        Args:
            statement: Statement to mutate. It is never closed here.
            source: Values to bind.
            identifiers: Placeholder names in order of appearance.
            sql: SQL text, used only in error messages.

        Raises:
            BindingFailure: A named identifier has no value in the mapping.
        """
        for slot, value in enumerate(self.ordered_values(source, identifiers, sql), start=1):
            self.bind_value(statement, slot, value)

    def ordered_values(
        self, source: ParameterSource, identifiers: "Sequence[str]", sql: Optional[str] = None
    ) -> "list[Any]":
        """Return the values of ``source`` in slot order."""
        if isinstance(source, Positional):
            return list(source.values)
        if isinstance(source, Named):
            values = []
            for name in identifiers:
                try:
                    values.append(source.mapping[name])
                except KeyError:
                    msg = f"No value supplied for named parameter ':{name}'"
                    raise BindingFailure(msg, sql) from None
            return values
        msg = f"Unsupported parameter source: {type(source).__name__}"
        raise TypeError(msg)

    def bind_value(self, statement: "PreparedStatementProtocol", slot: int, value: Any) -> None:
        """Bind a single value to ``slot`` (1-based) with the setter its type selects."""
        bound = classify_value(value, empty_mapping_as_text=self.config.bind_empty_mapping_as_text)
        if isinstance(bound, TextValue):
            statement.set_string(slot, bound.value)
        elif isinstance(bound, DateValue):
            statement.set_date(slot, self.new_date(bound.epoch_millis))
        else:
            statement.set_object(slot, bound.value)
