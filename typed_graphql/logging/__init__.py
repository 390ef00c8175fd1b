"""
Logging helpers for typed_graphql.

The library logs through standard ``logging`` loggers named after its
modules; this package only offers opt-in configuration for applications.
"""

from .filters import SensitiveDataFilter
from .formatters import StructuredFormatter
from .manager import LoggingManager, cleanup_logging, setup_logging

__all__ = [
    "LoggingManager",
    "setup_logging",
    "cleanup_logging",
    "StructuredFormatter",
    "SensitiveDataFilter",
]
