"""
Exception hierarchy for typed_graphql.

This module defines the error taxonomy used by the request executor and the
subscription session, and utilities to convert aiohttp failures into it.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import aiohttp

if TYPE_CHECKING:
    from .models import GraphQLErrorEntry


class GraphQLClientError(Exception):
    """
    Base exception for all client operations.

    Attributes:
        message: Human-readable error message
        url: Endpoint involved in the failure (if applicable)
        details: Additional error details as keyword arguments
    """

    def __init__(self, message: str, url: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.details = kwargs


class TransportError(GraphQLClientError):
    """
    Raised when the request never produced a usable response.

    Covers DNS resolution, refused connections, socket failures and
    unexpected HTTP status codes. Never retried by this package.
    """

    pass


class ConnectionFailedError(TransportError):
    """Raised when a connection to the endpoint cannot be established."""

    pass


class TransportTimeoutError(TransportError):
    """
    Raised when the transport gives up waiting.

    Attributes:
        timeout_value: The timeout value that was exceeded (in seconds)
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout_value: Optional[float] = None,
    ) -> None:
        super().__init__(message, url)
        self.timeout_value = timeout_value


class HTTPStatusError(TransportError):
    """Raised when the server answers with a non-2xx status code."""

    def __init__(
        self,
        message: str,
        status_code: int,
        url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        response_text: Optional[str] = None,
    ) -> None:
        super().__init__(message, url)
        self.status_code = status_code
        self.headers = headers or {}
        self.response_text = response_text


class HandshakeError(GraphQLClientError):
    """
    Raised when the websocket connection handshake does not follow protocol.

    Attributes:
        expected: Frame type the client was waiting for
        received: Raw frame (or description) actually received
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
    ) -> None:
        super().__init__(message, url)
        self.expected = expected
        self.received = received


class ProtocolError(GraphQLClientError):
    """
    Raised when the server reports errors in the response envelope.

    The message is the first entry's message; the complete list stays
    available through ``errors``.
    """

    def __init__(
        self,
        errors: List["GraphQLErrorEntry"],
        url: Optional[str] = None,
    ) -> None:
        if not errors:
            raise ValueError("ProtocolError requires at least one error entry")
        super().__init__(errors[0].message, url)
        self.errors = list(errors)

    @property
    def messages(self) -> List[str]:
        """All error messages reported by the server."""
        return [error.message for error in self.errors]


class DecodeError(GraphQLClientError):
    """
    Raised when a payload does not fit the template's shape.

    Attributes:
        path: Dot/bracket path of the offending value in the payload
    """

    def __init__(
        self,
        message: str,
        path: str = "",
        url: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, url, **kwargs)
        self.path = path


class DocumentError(GraphQLClientError):
    """Raised when a query document cannot be rendered from a template."""

    pass


class ErrorHandler:
    """Converts aiohttp failures into the client's error taxonomy."""

    @staticmethod
    def handle_aiohttp_error(
        error: Exception, url: Optional[str] = None
    ) -> TransportError:
        """
        Convert aiohttp exceptions to TransportError subclasses.

        Args:
            error: The original aiohttp (or asyncio timeout) exception
            url: The URL that caused the error

        Returns:
            Appropriate TransportError subclass
        """
        if isinstance(error, asyncio.TimeoutError):
            return TransportTimeoutError(f"Request timed out: {error}", url=url)

        elif isinstance(error, aiohttp.WSServerHandshakeError):
            return HTTPStatusError(
                f"Websocket upgrade rejected: {error.message}",
                error.status,
                url,
                dict(error.headers or {}),
            )

        elif isinstance(error, aiohttp.ClientResponseError):
            return HTTPStatusError(
                f"HTTP error: {error.message}",
                error.status,
                url,
                dict(error.headers or {}),
            )

        elif isinstance(error, aiohttp.ClientConnectionError):
            return ConnectionFailedError(f"Connection error: {error}", url=url)

        else:
            return TransportError(f"Unexpected transport error: {error}", url=url)
