"""Core parameter types used by the translator, binder and statement builder."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple, Union

from typing_extensions import TypeAlias

__all__ = (
    "BoundValue",
    "DateValue",
    "GenericValue",
    "Named",
    "ParameterSource",
    "ParameterStyle",
    "Positional",
    "TextValue",
    "TranslatedSQL",
)


class ParameterStyle(str, Enum):
    """Positional placeholder styles a driver may expect."""

    QMARK = "qmark"
    NUMERIC = "numeric"
    POSITIONAL_COLON = "positional_colon"
    POSITIONAL_PYFORMAT = "pyformat_positional"

    def __str__(self) -> str:
        """String representation for better error messages.

        Returns:
            The enum value as a string.
        """
        return self.value

    def placeholder(self, ordinal: int) -> str:
        """Return the placeholder text for the ``ordinal`` (0-based) slot."""
        if self is ParameterStyle.NUMERIC:
            return f"${ordinal + 1}"
        if self is ParameterStyle.POSITIONAL_COLON:
            return f":{ordinal + 1}"
        if self is ParameterStyle.POSITIONAL_PYFORMAT:
            return "%s"
        return "?"

    @classmethod
    def from_paramstyle(cls, paramstyle: str) -> "ParameterStyle":
        """Map a PEP 249 ``paramstyle`` string to the positional style used for it.

        Named driver styles are served with their positional counterpart, since
        placeholders are always rewritten to positional form.
        """
        styles = {
            "qmark": cls.QMARK,
            "numeric": cls.POSITIONAL_COLON,
            "named": cls.POSITIONAL_COLON,
            "format": cls.POSITIONAL_PYFORMAT,
            "pyformat": cls.POSITIONAL_PYFORMAT,
        }
        try:
            return styles[paramstyle]
        except KeyError:
            msg = f"Unsupported paramstyle: {paramstyle}"
            raise ValueError(msg) from None


class TranslatedSQL(NamedTuple):
    """SQL rewritten to positional placeholders plus the named identifiers in order."""

    sql: str
    identifiers: "tuple[str, ...]"


class Positional:
    """Ordered values bound to slots 1..N."""

    __slots__ = ("values",)

    def __init__(self, values: "Sequence[Any]" = ()) -> None:
        self.values = tuple(values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Positional):
            return False
        return self.values == other.values

    def __hash__(self) -> int:
        return hash(("positional", repr(self.values)))

    def __repr__(self) -> str:
        return f"Positional({self.values!r})"

    def __len__(self) -> int:
        return len(self.values)


class Named:
    """Mapping looked up once per named placeholder occurrence."""

    __slots__ = ("mapping",)

    def __init__(self, mapping: "Mapping[str, Any]") -> None:
        self.mapping = mapping

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Named):
            return False
        return dict(self.mapping) == dict(other.mapping)

    def __hash__(self) -> int:
        return hash(("named", repr(sorted(self.mapping))))

    def __repr__(self) -> str:
        return f"Named({dict(self.mapping)!r})"

    def __len__(self) -> int:
        return len(self.mapping)


ParameterSource: TypeAlias = Union[Positional, Named]


def parameter_source_from_args(args: "Sequence[Any]") -> ParameterSource:
    """Pick the parameter source variant from call arguments.

    A single plain mapping selects the named variant. Anything else (no
    arguments, several arguments, or one non-mapping argument) is positional,
    even when the SQL uses named placeholders.

    Args:
        args: Caller-supplied arguments, excluding the SQL and the connection.

    Returns:
        The parameter source.
    """
    if len(args) == 1 and isinstance(args[0], Mapping):
        return Named(args[0])
    return Positional(args)


@dataclass(frozen=True, slots=True)
class TextValue:
    """Value bound with the statement's string setter."""

    value: str


@dataclass(frozen=True, slots=True)
class DateValue:
    """Value bound with the statement's date setter."""

    epoch_millis: int


@dataclass(frozen=True, slots=True)
class GenericValue:
    """Value bound unmodified with the statement's object setter."""

    value: Any


BoundValue: TypeAlias = Union[TextValue, DateValue, GenericValue]
