"""Utility modules for namedsql."""

from namedsql.utils import dispatch, logging, module_loader, serializers

__all__ = ("dispatch", "logging", "module_loader", "serializers")
