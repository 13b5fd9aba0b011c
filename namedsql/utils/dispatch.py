from typing import Any, Callable, Generic, Optional, TypeVar

__all__ = ("TypeDispatcher",)


T = TypeVar("T")


class TypeDispatcher(Generic[T]):
    """Type lookup cache for class-based dispatch.

    Values are registered per type and resolved by walking the MRO once per
    concrete type; later lookups for the same type are a single dict hit.
    A fallback resolver handles types that are recognized by shape rather
    than by inheritance.
    """

    __slots__ = ("_cache", "_fallback", "_registry")

    def __init__(self, fallback: "Optional[Callable[[type], Optional[T]]]" = None) -> None:
        self._cache: dict[type, Optional[T]] = {}
        self._registry: dict[type, T] = {}
        self._fallback = fallback

    def register(self, type_: type, value: T) -> None:
        """Register a value for a specific type.

        Args:
            type_: The type to register.
            value: The value associated with the type.
        """
        self._registry[type_] = value
        self._cache.clear()

    def get(self, obj: Any) -> Optional[T]:
        """Get the value associated with the object's type.

        Args:
            obj: The object to lookup.

        Returns:
            The associated value or None if not found.
        """
        obj_type = type(obj)
        if obj_type in self._cache:
            return self._cache[obj_type]

        return self._resolve(obj_type)

    def _resolve(self, obj_type: type) -> Optional[T]:
        if obj_type in self._registry:
            value: Optional[T] = self._registry[obj_type]
        else:
            value = next((self._registry[base] for base in obj_type.__mro__ if base in self._registry), None)
            if value is None and self._fallback is not None:
                value = self._fallback(obj_type)
        self._cache[obj_type] = value
        return value

    def clear_cache(self) -> None:
        """Clear the resolution cache."""
        self._cache.clear()
