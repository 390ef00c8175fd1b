"""
Configuration for typed_graphql.

This module provides the client configuration models and a loader that merges
configuration files with environment variables.
"""

from .loader import ConfigLoader, load_config
from .models import ClientConfig, GlobalConfig, LoggingConfig, LogLevel

__all__ = [
    "ClientConfig",
    "GlobalConfig",
    "LoggingConfig",
    "LogLevel",
    "ConfigLoader",
    "load_config",
]
