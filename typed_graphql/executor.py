"""
HTTP execution of queries and mutations.

This module owns the request/response round trip: it renders the document,
posts the ``{query, variables}`` envelope, interprets the status code and the
``data``/``errors`` envelope, and decodes ``data`` into the caller's template.
"""

from __future__ import annotations

import asyncio
import codecs
import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import aiohttp
from pydantic import BaseModel, ValidationError

from .config import ClientConfig
from .decoder import decode
from .document import render, to_jsonable
from .exceptions import DecodeError, ErrorHandler, HTTPStatusError, ProtocolError
from .models import OperationType, ResponseEnvelope

logger = logging.getLogger(__name__)

SessionProvider = Callable[[], Awaitable[aiohttp.ClientSession]]

# Longest response body kept on an HTTPStatusError
_MAX_ERROR_BODY = 4096


def _body_charset(response: aiohttp.ClientResponse) -> str:
    """Charset declared by the response, or UTF-8 when absent or unknown."""
    charset = response.charset or "utf-8"
    try:
        codecs.lookup(charset)
    except LookupError:
        logger.debug(f"Unknown response charset {charset!r}, using utf-8")
        return "utf-8"
    return charset


class RequestExecutor:
    """
    Executes a single query or mutation over HTTP.

    The executor holds no per-call state, so one instance may serve any
    number of concurrent calls. It never retries and never caches.
    """

    def __init__(self, config: ClientConfig, session_provider: SessionProvider):
        """
        Initialize request executor.

        Args:
            config: Client configuration
            session_provider: Coroutine function returning the aiohttp session to use
        """
        self.config = config
        self._session_provider = session_provider

    def build_envelope(
        self,
        kind: OperationType,
        template: BaseModel,
        variables: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Build the JSON request envelope for an operation.

        ``variables`` is omitted from the envelope when empty.
        """
        envelope: Dict[str, Any] = {"query": render(kind, template, variables)}
        if variables:
            envelope["variables"] = to_jsonable(variables)
        return envelope

    async def execute(
        self,
        kind: OperationType,
        template: BaseModel,
        variables: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Execute a query or mutation and decode the result into ``template``.

        Args:
            kind: ``OperationType.QUERY`` or ``OperationType.MUTATION``
            template: Template instance, updated in place
            variables: Variable values

        Raises:
            TransportError: On connection failures or a non-2xx status
            DecodeError: If the body or ``data`` does not fit the template
            ProtocolError: If the server reported errors
            DocumentError: If no document can be rendered from the template
        """
        kind = OperationType(kind)
        if kind not in (OperationType.QUERY, OperationType.MUTATION):
            raise ValueError(f"RequestExecutor cannot execute {kind.value} operations")
        if not isinstance(template, BaseModel):
            raise TypeError(
                f"Template must be a pydantic model instance, got {type(template).__name__}"
            )

        endpoint = self.config.endpoint
        envelope = self.build_envelope(kind, template, variables)
        headers = dict(self.config.headers)
        headers["Content-Type"] = "application/json"

        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        session = await self._session_provider()

        start_time = time.time()
        try:
            async with session.post(
                endpoint,
                json=envelope,
                headers=headers,
                timeout=timeout,
                ssl=self.config.verify_ssl,
            ) as response:
                status = response.status
                body = await response.read()
                charset = _body_charset(response)
                response_headers = dict(response.headers)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            error = ErrorHandler.handle_aiohttp_error(e, endpoint)
            logger.debug(f"GraphQL {kind.value} transport failure: {error}")
            raise error from e

        response_time = time.time() - start_time
        logger.debug(
            f"GraphQL {kind.value} answered {status} in {response_time:.3f}s "
            f"({len(body)} bytes)"
        )

        if not 200 <= status < 300:
            response_text = body.decode(charset, errors="replace")
            raise HTTPStatusError(
                f"Non-2xx status code: {status} body: {response_text[:_MAX_ERROR_BODY]!r}",
                status,
                endpoint,
                response_headers,
                response_text[:_MAX_ERROR_BODY],
            )

        try:
            response_text = body.decode(charset)
        except UnicodeDecodeError as e:
            raise DecodeError(
                f"Response body is not valid {charset}: {e}",
                body=body[:_MAX_ERROR_BODY].decode(charset, errors="replace"),
            )

        result = self.parse_envelope(response_text)

        if result.data is not None:
            decode(result.data, template)

        if result.has_errors:
            raise ProtocolError(result.errors, url=endpoint)

    @staticmethod
    def parse_envelope(response_text: str) -> ResponseEnvelope:
        """
        Parse a response body into a ResponseEnvelope.

        Raises:
            DecodeError: If the body is not a JSON object of the expected shape
        """
        try:
            payload = json.loads(response_text)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Invalid JSON response: {e}", body=response_text[:_MAX_ERROR_BODY])

        if not isinstance(payload, dict):
            raise DecodeError(
                f"Expected a JSON object response, got {type(payload).__name__}",
                body=response_text[:_MAX_ERROR_BODY],
            )
        try:
            return ResponseEnvelope.model_validate(payload)
        except ValidationError as e:
            raise DecodeError(f"Malformed response envelope: {e}", body=response_text[:_MAX_ERROR_BODY])
