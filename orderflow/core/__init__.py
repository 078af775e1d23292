"""
Core module initialization.
Exports configuration, logging and error utilities.
"""

from orderflow.core.config import (
    get_settings,
    Settings,
    EnvironmentMode,
    CatalogSelectionPolicy,
)
from orderflow.core.errors import ErrorKind, OrderEngineError

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "CatalogSelectionPolicy",
    "ErrorKind",
    "OrderEngineError",
]
