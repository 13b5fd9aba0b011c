"""Parameter configuration for database drivers."""

from typing import Any, Callable, Optional

from namedsql.parameters.types import ParameterStyle

__all__ = ("ParameterStyleConfig",)


class ParameterStyleConfig:
    """Declarative configuration for a driver's parameter handling."""

    __slots__ = ("bind_empty_mapping_as_text", "placeholder_style", "type_coercion_map")

    def __init__(
        self,
        placeholder_style: ParameterStyle = ParameterStyle.QMARK,
        type_coercion_map: Optional[dict[type, Callable[[Any], Any]]] = None,
        bind_empty_mapping_as_text: bool = True,
    ) -> None:
        """Initialize driver parameter configuration.

        Args:
            placeholder_style: Positional placeholder style the driver expects
            type_coercion_map: Mapping of types to their coercion functions, applied before values reach the driver
            bind_empty_mapping_as_text: Bind empty mappings with the string setter instead of the object setter
        """
        self.placeholder_style = placeholder_style
        self.type_coercion_map = type_coercion_map or {}
        self.bind_empty_mapping_as_text = bind_empty_mapping_as_text

    def coerce(self, value: Any) -> Any:
        """Apply the first matching coercion from ``type_coercion_map``.

        Exact type matches win over subclass matches.
        """
        if not self.type_coercion_map:
            return value
        converter = self.type_coercion_map.get(type(value))
        if converter is None:
            for type_, candidate in self.type_coercion_map.items():
                if isinstance(value, type_):
                    converter = candidate
                    break
        return value if converter is None else converter(value)

    def replace(self, **changes: Any) -> "ParameterStyleConfig":
        """Return a copy with ``changes`` applied."""
        values = {
            "placeholder_style": self.placeholder_style,
            "type_coercion_map": dict(self.type_coercion_map),
            "bind_empty_mapping_as_text": self.bind_empty_mapping_as_text,
        }
        values.update(changes)
        return ParameterStyleConfig(**values)

    def hash(self) -> int:
        """Generate hash for cache key generation."""
        return hash(
            (
                self.placeholder_style.value,
                tuple(sorted(str(k) for k in self.type_coercion_map)) if self.type_coercion_map else (),
                self.bind_empty_mapping_as_text,
            )
        )
