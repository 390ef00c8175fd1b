"""
Logging manager for typed_graphql.

This module configures the ``typed_graphql`` logger hierarchy from a
LoggingConfig. It leaves the root logger alone so applications keep
control of their own logging.
"""

import logging
import sys
from typing import Dict, Optional, TextIO

from ..config.models import LoggingConfig, LogLevel
from .filters import SensitiveDataFilter
from .formatters import StructuredFormatter

LIBRARY_LOGGER = "typed_graphql"


class LoggingManager:
    """Configures handlers and levels for the library loggers."""

    def __init__(self) -> None:
        """Initialize logging manager."""
        self._configured = False
        self._handlers: Dict[str, logging.Handler] = {}
        self._loggers: Dict[str, logging.Logger] = {}

    def setup_logging(self, config: LoggingConfig, stream: Optional[TextIO] = None) -> None:
        """
        Setup logging based on configuration.

        Args:
            config: Logging configuration
            stream: Output stream for the console handler (defaults to stderr)
        """
        if self._configured:
            self.cleanup()

        library_logger = logging.getLogger(LIBRARY_LOGGER)
        library_logger.setLevel(getattr(logging, config.level.value))

        self._setup_console_handler(config, stream or sys.stderr)
        self._setup_component_loggers(config)

        self._configured = True
        library_logger.debug("Logging system configured")

    def _setup_console_handler(self, config: LoggingConfig, stream: TextIO) -> None:
        """Setup console logging handler."""
        handler = logging.StreamHandler(stream)

        formatter: logging.Formatter
        if config.enable_structured:
            formatter = StructuredFormatter()
        else:
            formatter = logging.Formatter(config.format)

        handler.setFormatter(formatter)
        if config.mask_sensitive:
            handler.addFilter(SensitiveDataFilter())

        logging.getLogger(LIBRARY_LOGGER).addHandler(handler)
        self._handlers["console"] = handler

    def _setup_component_loggers(self, config: LoggingConfig) -> None:
        """Apply per-component levels, e.g. ``{"typed_graphql.subscription": "DEBUG"}``."""
        for component, level in config.component_levels.items():
            logger = logging.getLogger(component)
            logger.setLevel(getattr(logging, level.value))
            self._loggers[component] = logger

    def set_level(self, level: LogLevel, component: Optional[str] = None) -> None:
        """
        Set logging level.

        Args:
            level: New logging level
            component: Specific component (None for the library logger)
        """
        logging.getLogger(component or LIBRARY_LOGGER).setLevel(getattr(logging, level.value))

    def cleanup(self) -> None:
        """Remove the handlers this manager installed and reset levels."""
        library_logger = logging.getLogger(LIBRARY_LOGGER)
        for handler in self._handlers.values():
            library_logger.removeHandler(handler)
            handler.close()
        if self._configured:
            library_logger.setLevel(logging.NOTSET)

        for logger in self._loggers.values():
            logger.setLevel(logging.NOTSET)

        self._handlers.clear()
        self._loggers.clear()
        self._configured = False

    def is_configured(self) -> bool:
        """Check if logging is configured."""
        return self._configured


# Global logging manager instance
_logging_manager = LoggingManager()


def setup_logging(config: LoggingConfig, stream: Optional[TextIO] = None) -> None:
    """
    Setup logging with configuration.

    Args:
        config: Logging configuration
        stream: Output stream for the console handler
    """
    _logging_manager.setup_logging(config, stream)


def cleanup_logging() -> None:
    """Cleanup logging system."""
    _logging_manager.cleanup()
