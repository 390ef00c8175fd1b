"""
Configuration models for typed_graphql.

Configuration is fixed when a client is constructed; nothing here is mutated
by the executor or the subscription session.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, field_validator

_ALLOWED_SCHEMES = ("http", "https", "ws", "wss")


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ClientConfig(BaseModel):
    """Configuration for a GraphQL client."""

    # Endpoint settings
    endpoint: str = Field(description="GraphQL endpoint URL (http, https, ws or wss)")

    # Headers applied to every POST and to the websocket handshake
    headers: Dict[str, str] = Field(
        default_factory=dict, description="Default headers for requests"
    )

    # Timeouts (None leaves deadlines to the caller)
    timeout: Optional[float] = Field(
        default=None, gt=0, description="Total HTTP request timeout in seconds"
    )
    handshake_timeout: Optional[float] = Field(
        default=None, gt=0, description="Websocket connect and handshake timeout in seconds"
    )

    # Subscription protocol settings
    subprotocol: str = Field(
        default="graphql-ws", description="Websocket sub-protocol token"
    )
    strict_handshake: bool = Field(
        default=True,
        description="Require exactly connection_ack followed by ka during the handshake",
    )
    max_message_size: int = Field(
        default=4 * 1024 * 1024, ge=1024, description="Maximum websocket message size in bytes"
    )

    # SSL settings
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Validate that the endpoint is an absolute URL with a supported scheme."""
        parts = urlsplit(v)
        if parts.scheme.lower() not in _ALLOWED_SCHEMES:
            raise ValueError("endpoint must use http://, https://, ws:// or wss:// scheme")
        if not parts.netloc:
            raise ValueError("endpoint must include a host")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default=LogLevel.INFO, description="Default logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    enable_structured: bool = Field(
        default=False, description="Enable structured JSON logging"
    )
    mask_sensitive: bool = Field(
        default=True, description="Mask tokens and authorization values in log output"
    )

    # Component-specific log levels
    component_levels: Dict[str, LogLevel] = Field(
        default_factory=dict, description="Per-component log levels"
    )


class GlobalConfig(BaseModel):
    """Client and logging configuration loaded together."""

    client: ClientConfig
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
