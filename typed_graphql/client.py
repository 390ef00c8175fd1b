"""
GraphQL client.

This module provides the public client: one object bound to an endpoint that
executes queries and mutations over HTTP and starts subscriptions over
websockets, decoding every result into a typed template.
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Dict, Mapping, Optional

import aiohttp
from pydantic import BaseModel

from .config import ClientConfig
from .exceptions import GraphQLClientError
from .executor import RequestExecutor
from .models import OperationType
from .subscription import ErrorCallback, SubscriptionSession

logger = logging.getLogger(__name__)


class GraphQLClient:
    """
    Typed GraphQL client.

    The client can share an existing ``aiohttp.ClientSession`` or create and
    own one on first use. An owned session is closed by ``close()``; a
    shared one is left to its owner.

    Examples:
        ```python
        class Todo(BaseModel):
            id: str = ""
            text: str = ""
            done: bool = False

        class TodosQuery(BaseModel):
            todos: List[Todo] = []

        async with GraphQLClient.from_url("http://localhost:8080/query") as client:
            result = TodosQuery()
            await client.query(result)
            for todo in result.todos:
                print(todo.text)
        ```
    """

    def __init__(self, config: ClientConfig, session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize GraphQL client.

        Args:
            config: Client configuration
            session: Optional aiohttp session to use instead of an owned one
        """
        self.config = config
        self._session = session
        self._external_session = session is not None
        self._closed = False
        self._subscriptions: "weakref.WeakSet[SubscriptionSession]" = weakref.WeakSet()
        self._executor = RequestExecutor(config, self._get_session)

    @classmethod
    def from_url(
        cls,
        url: str,
        session: Optional[aiohttp.ClientSession] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> "GraphQLClient":
        """Create a client for an endpoint with default settings."""
        return cls(ClientConfig(endpoint=url, headers=dict(headers or {})), session=session)

    @property
    def endpoint(self) -> str:
        """Get the endpoint URL."""
        return self.config.endpoint

    @property
    def closed(self) -> bool:
        """Check if the client has been closed."""
        return self._closed

    async def __aenter__(self) -> "GraphQLClient":
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise GraphQLClientError("Client is closed", url=self.config.endpoint)
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": "typed-graphql/0.1"},
                raise_for_status=False,
            )
            logger.debug(f"Created HTTP session for {self.config.endpoint}")
        return self._session

    async def query(
        self, template: BaseModel, variables: Optional[Mapping[str, Any]] = None
    ) -> None:
        """
        Execute a query and decode the result into ``template``.

        Raises:
            TransportError: On connection failures or a non-2xx status
            DecodeError: If the response does not fit the template
            ProtocolError: If the server reported errors; ``template``
                still holds any data the server returned
        """
        await self._executor.execute(OperationType.QUERY, template, variables)

    async def mutate(
        self, template: BaseModel, variables: Optional[Mapping[str, Any]] = None
    ) -> None:
        """Execute a mutation and decode the result into ``template``."""
        await self._executor.execute(OperationType.MUTATION, template, variables)

    async def subscribe(
        self,
        template: BaseModel,
        variables: Optional[Mapping[str, Any]] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> SubscriptionSession:
        """
        Start a subscription.

        Each ``data`` frame is decoded into a new instance of the template's
        class and published on the returned session's stream.

        Args:
            template: Template instance describing each published value
            variables: Variable values
            on_error: Optional callback receiving non-fatal problems

        Returns:
            An active SubscriptionSession

        Raises:
            TransportError: If the websocket cannot be opened
            HandshakeError: If the server does not acknowledge the connection
        """
        session = await self._get_session()
        subscription = SubscriptionSession(
            self.config, session, template, variables=variables, on_error=on_error
        )
        await subscription.open()
        self._subscriptions.add(subscription)
        return subscription

    async def close(self) -> None:
        """Cancel running subscriptions and close the owned HTTP session."""
        if self._closed:
            return
        self._closed = True

        for subscription in list(self._subscriptions):
            await subscription.cancel()

        if self._session is not None and not self._external_session and not self._session.closed:
            await self._session.close()
            logger.debug(f"Closed HTTP session for {self.config.endpoint}")
        self._session = None
