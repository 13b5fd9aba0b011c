"""Import objects by dotted path."""

import importlib
from typing import Any

__all__ = ("import_string",)


def import_string(dotted_path: str) -> Any:
    """Import ``dotted_path`` and return the module or attribute it names.

    The longest importable module prefix is imported and the remaining
    segments are resolved as attributes, so ``"sqlite3"``, ``"pkg.module"``
    and ``"pkg.module.attr"`` all work. Connection URLs name their DB-API
    driver this way.

    Args:
        dotted_path: Module path, optionally followed by attribute names.

    Raises:
        ImportError: No prefix is importable, or an attribute is missing.

    Returns:
        The imported module or attribute.
    """
    parts = dotted_path.split(".")
    for index in range(len(parts), 0, -1):
        module_path = ".".join(parts[:index])
        try:
            obj = importlib.import_module(module_path)
        except ModuleNotFoundError:
            continue
        break
    else:
        msg = f"{dotted_path} doesn't look like a module path"
        raise ImportError(msg)

    for attribute in parts[index:]:
        try:
            obj = getattr(obj, attribute)
        except AttributeError as e:
            msg = f"Module '{module_path}' has no attribute '{attribute}' in '{dotted_path}'"
            raise ImportError(msg) from e
    return obj
