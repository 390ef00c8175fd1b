"""
GraphQL subscriptions over the ``graphql-ws`` websocket protocol.

This module provides the subscription session: it opens one websocket per
subscription, performs the connection handshake, starts the operation, and
runs a background receive loop that decodes ``data`` frames into fresh
template instances published on a bounded output stream.

Examples:
    ```python
    async with GraphQLClient.from_url("https://api.example.com/graphql") as client:
        subscription = await client.subscribe(TodosSubscription(), on_error=print)
        async with subscription:
            async for update in subscription:
                print(update.todos)
    ```
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlsplit, urlunsplit

import aiohttp
from aiohttp import WSMsgType
from pydantic import BaseModel, ValidationError

from .config import ClientConfig
from .decoder import decode, new_instance
from .document import render, to_jsonable
from .exceptions import (
    DecodeError,
    ErrorHandler,
    GraphQLClientError,
    HandshakeError,
    ProtocolError,
    TransportTimeoutError,
)
from .models import (
    FrameType,
    GraphQLErrorEntry,
    OperationType,
    SessionState,
    SubscriptionEvent,
    SubscriptionEventKind,
    SubscriptionFrame,
)

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[SubscriptionEvent], None]

_CLOSED = object()

_SOCKET_CLOSED_TYPES = (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED)


def websocket_url(endpoint: str) -> str:
    """
    Derive the websocket URL for an endpoint.

    ``https`` and ``wss`` map to ``wss``; every other scheme maps to ``ws``.
    """
    parts = urlsplit(endpoint)
    scheme = "wss" if parts.scheme.lower() in ("https", "wss") else "ws"
    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))


def parse_frame(data: Any) -> SubscriptionFrame:
    """
    Parse a text message into a SubscriptionFrame.

    Raises:
        DecodeError: If the message is not a JSON object with a ``type``
    """
    try:
        payload = json.loads(data)
    except (TypeError, json.JSONDecodeError) as e:
        raise DecodeError(f"Malformed frame: {e}")
    if not isinstance(payload, dict):
        raise DecodeError(f"Malformed frame: expected an object, got {type(payload).__name__}")
    try:
        return SubscriptionFrame.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(f"Malformed frame: {e.errors()[0]['msg']}")


class SubscriptionStream:
    """
    Output stream of a subscription.

    A single-producer/single-consumer queue of capacity one: publishing waits
    until the consumer has taken the previous value. The stream is closed
    exactly once; iteration stops after the values published before closure
    have been consumed.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=1)
        self._closed = False

    @property
    def closed(self) -> bool:
        """Check if the stream has been closed."""
        return self._closed

    async def publish(self, value: BaseModel) -> bool:
        """
        Publish a value, waiting while the previous one is unconsumed.

        Returns:
            False if the stream is already closed and the value was dropped
        """
        if self._closed:
            return False
        await self._queue.put(value)
        return True

    def close(self) -> None:
        """Close the stream. Subsequent calls do nothing."""
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # The pending value is delivered first; the empty closed queue ends iteration
            pass

    async def receive(self, timeout: Optional[float] = None) -> Optional[BaseModel]:
        """
        Receive a single value.

        Args:
            timeout: Timeout in seconds (None for no timeout)

        Returns:
            The next value, or None on timeout or once the stream is closed
        """
        try:
            return await asyncio.wait_for(self.__anext__(), timeout=timeout)
        except (StopAsyncIteration, asyncio.TimeoutError):
            return None

    def __aiter__(self) -> "SubscriptionStream":
        return self

    async def __anext__(self) -> BaseModel:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class SubscriptionSession:
    """
    One GraphQL subscription over its own websocket.

    The session moves through ``CONNECTING -> HANDSHAKING -> ACTIVE ->
    DRAINING -> CLOSED``. Its background receive task is the only reader of
    the socket and the only writer of the output stream.
    """

    def __init__(
        self,
        config: ClientConfig,
        session: aiohttp.ClientSession,
        template: BaseModel,
        variables: Optional[Mapping[str, Any]] = None,
        on_error: Optional[ErrorCallback] = None,
    ):
        """
        Initialize subscription session.

        Args:
            config: Client configuration
            session: aiohttp session used to open the websocket
            template: Template instance describing each published value
            variables: Variable values
            on_error: Optional callback receiving non-fatal problems
        """
        if not isinstance(template, BaseModel):
            raise TypeError(
                f"Template must be a pydantic model instance, got {type(template).__name__}"
            )
        self.config = config
        self.template = template
        self.variables: Dict[str, Any] = dict(variables or {})
        self.id = str(uuid.uuid4())
        self.stream = SubscriptionStream()
        self.on_error = on_error

        self._session = session
        self._websocket: Optional[aiohttp.ClientWebSocketResponse] = None
        self._state = SessionState.CONNECTING
        self._receive_task: Optional[asyncio.Task[None]] = None
        self._released = False

        # Statistics
        self._started_at: Optional[float] = None
        self._frames_received = 0
        self._values_published = 0
        self._events_reported = 0

    @property
    def state(self) -> SessionState:
        """Get the current session state."""
        return self._state

    @property
    def is_active(self) -> bool:
        """Check if the subscription is receiving frames."""
        return self._state == SessionState.ACTIVE

    @property
    def statistics(self) -> Dict[str, Any]:
        """Get session statistics."""
        return {
            "id": self.id,
            "state": self._state.value,
            "uptime": time.time() - self._started_at if self._started_at else 0.0,
            "frames_received": self._frames_received,
            "values_published": self._values_published,
            "events_reported": self._events_reported,
            "stream_closed": self.stream.closed,
        }

    async def __aenter__(self) -> "SubscriptionSession":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        await self.cancel()

    def __aiter__(self) -> SubscriptionStream:
        return self.stream

    async def open(self) -> None:
        """
        Connect, perform the handshake and start the subscription.

        Raises:
            TransportError: If the websocket cannot be opened
            HandshakeError: If the server does not acknowledge the connection
            DocumentError: If no document can be rendered from the template
        """
        if self._state != SessionState.CONNECTING or self._websocket is not None:
            raise GraphQLClientError("Subscription session can only be opened once")

        url = websocket_url(self.config.endpoint)
        try:
            # Rendered before connecting so a bad template never opens a socket
            start_frame = self._start_frame()
            if self.config.handshake_timeout is not None:
                await asyncio.wait_for(self._connect(url), timeout=self.config.handshake_timeout)
            else:
                await self._connect(url)
            await self._send_frame(start_frame)
        except asyncio.TimeoutError as e:
            await self._abort()
            raise TransportTimeoutError(
                f"Subscription handshake timed out after {self.config.handshake_timeout}s",
                url=url,
                timeout_value=self.config.handshake_timeout,
            ) from e
        except BaseException:
            await self._abort()
            raise

        self._state = SessionState.ACTIVE
        self._started_at = time.time()
        self._receive_task = asyncio.create_task(
            self._receive_loop(), name=f"graphql-subscription-{self.id}"
        )
        self._receive_task.add_done_callback(self._on_task_done)
        logger.info(f"Subscription {self.id} started on {url}")

    async def _connect(self, url: str) -> None:
        try:
            self._websocket = await self._session.ws_connect(
                url,
                protocols=(self.config.subprotocol,),
                headers=self.config.headers,
                ssl=self.config.verify_ssl,
                max_msg_size=self.config.max_message_size,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            error = ErrorHandler.handle_aiohttp_error(e, url)
            logger.error(f"Failed to connect subscription websocket: {error}")
            raise error from e

        if self._websocket.protocol != self.config.subprotocol:
            logger.warning(
                f"Server did not confirm sub-protocol {self.config.subprotocol!r} "
                f"(got {self._websocket.protocol!r})"
            )

        self._state = SessionState.HANDSHAKING
        await self._handshake(url)

    async def _handshake(self, url: str) -> None:
        await self._send_frame(
            SubscriptionFrame(type=FrameType.CONNECTION_INIT.value, payload={})
        )

        if self.config.strict_handshake:
            await self._expect_frame(FrameType.CONNECTION_ACK, url)
            await self._expect_frame(FrameType.KEEP_ALIVE, url)
            return

        # Tolerant handshake: skip keepalives until the ack arrives
        while True:
            frame = await self._read_handshake_frame(FrameType.CONNECTION_ACK, url)
            if frame.type == FrameType.KEEP_ALIVE.value:
                continue
            if frame.type == FrameType.CONNECTION_ACK.value:
                return
            raise HandshakeError(
                f"Did not receive {FrameType.CONNECTION_ACK.value}, got: {frame.type}",
                url=url,
                expected=FrameType.CONNECTION_ACK.value,
                received=frame.type,
            )

    async def _expect_frame(self, expected: FrameType, url: str) -> None:
        frame = await self._read_handshake_frame(expected, url)
        if frame.type != expected.value:
            raise HandshakeError(
                f"Did not receive {expected.value}, got: {frame.type}",
                url=url,
                expected=expected.value,
                received=frame.type,
            )

    async def _read_handshake_frame(self, expected: FrameType, url: str) -> SubscriptionFrame:
        msg = await self._socket().receive()
        if msg.type != WSMsgType.TEXT:
            raise HandshakeError(
                f"Did not receive {expected.value}, got {msg.type.name} message",
                url=url,
                expected=expected.value,
                received=msg.type.name,
            )
        try:
            frame = parse_frame(msg.data)
        except DecodeError as e:
            raise HandshakeError(
                f"Did not receive {expected.value}: {e.message}",
                url=url,
                expected=expected.value,
                received=str(msg.data)[:200],
            ) from e
        if frame.type == FrameType.CONNECTION_ERROR.value:
            raise HandshakeError(
                f"Server rejected connection: {frame.payload}",
                url=url,
                expected=expected.value,
                received=frame.type,
            )
        return frame

    def _start_frame(self) -> SubscriptionFrame:
        return SubscriptionFrame(
            id=self.id,
            type=FrameType.START.value,
            payload={
                "query": render(OperationType.SUBSCRIPTION, self.template, self.variables),
                "variables": to_jsonable(self.variables),
            },
        )

    def _socket(self) -> aiohttp.ClientWebSocketResponse:
        if self._websocket is None:
            raise GraphQLClientError("Subscription session is not open")
        return self._websocket

    async def _send_frame(self, frame: SubscriptionFrame) -> None:
        await self._socket().send_str(json.dumps(frame.to_wire()))

    async def _receive_loop(self) -> None:
        """Background task reading frames until completion or closure."""
        try:
            while True:
                msg = await self._socket().receive()

                if msg.type in _SOCKET_CLOSED_TYPES:
                    logger.debug(f"Subscription {self.id}: websocket closed")
                    break

                if msg.type == WSMsgType.ERROR:
                    self._report(
                        SubscriptionEventKind.READ_ERROR,
                        f"Websocket error: {msg.data}",
                        error=msg.data if isinstance(msg.data, Exception) else None,
                    )
                    break

                if msg.type != WSMsgType.TEXT:
                    self._report(
                        SubscriptionEventKind.READ_ERROR,
                        f"Ignoring {msg.type.name} message",
                    )
                    continue

                self._frames_received += 1
                try:
                    frame = parse_frame(msg.data)
                except DecodeError as e:
                    self._report(SubscriptionEventKind.READ_ERROR, e.message, error=e)
                    continue

                if not await self._dispatch(frame):
                    break
        except (aiohttp.ClientError, ConnectionError) as e:
            self._report(SubscriptionEventKind.READ_ERROR, f"Websocket failure: {e}", error=e)
        finally:
            if self._state == SessionState.ACTIVE:
                self._state = SessionState.DRAINING
            self.stream.close()
            await self._release()

    async def _dispatch(self, frame: SubscriptionFrame) -> bool:
        """Route one frame. Returns False when the subscription has ended."""
        # Keepalives and other connection-level frames carry no id
        if not frame.id:
            return True

        if frame.id != self.id:
            self._report(
                SubscriptionEventKind.UNEXPECTED_FRAME,
                f"Frame for unknown subscription {frame.id}",
                frame=frame,
            )
            return True

        if frame.type == FrameType.DATA.value:
            await self._handle_data(frame)
            return True

        if frame.type in (FrameType.COMPLETE.value, FrameType.STOP.value):
            logger.info(f"Subscription {self.id} ended by server ({frame.type})")
            self._state = SessionState.DRAINING
            return False

        if frame.type == FrameType.ERROR.value:
            self._report(
                SubscriptionEventKind.SERVER_ERROR,
                f"Server error frame: {frame.payload}",
                frame=frame,
            )
            return True

        self._report(
            SubscriptionEventKind.UNEXPECTED_FRAME,
            f"Unexpected frame type {frame.type!r}",
            frame=frame,
        )
        return True

    async def _handle_data(self, frame: SubscriptionFrame) -> None:
        payload = frame.payload
        if not isinstance(payload, dict):
            self._report(
                SubscriptionEventKind.DECODE_ERROR,
                f"Data frame without an object payload: {payload!r}",
                frame=frame,
            )
            return

        errors = payload.get("errors")
        if errors:
            try:
                entries = [GraphQLErrorEntry.model_validate(error) for error in errors]
                error: Exception = ProtocolError(entries, url=self.config.endpoint)
            except (TypeError, ValueError) as e:
                error = DecodeError(f"Malformed errors in data frame: {e}")
            self._report(
                SubscriptionEventKind.SERVER_ERROR, str(error), frame=frame, error=error
            )

        data = payload.get("data")
        if data is None:
            if not errors:
                self._report(
                    SubscriptionEventKind.DECODE_ERROR,
                    "Data frame without data",
                    frame=frame,
                )
            return

        value = new_instance(self.template)
        try:
            decode(data, value)
        except DecodeError as e:
            self._report(
                SubscriptionEventKind.DECODE_ERROR,
                f"Unable to decode data frame: {e.message}",
                frame=frame,
                error=e,
            )
            return

        if await self.stream.publish(value):
            self._values_published += 1

    def _report(
        self,
        kind: SubscriptionEventKind,
        message: str,
        frame: Optional[SubscriptionFrame] = None,
        error: Optional[Exception] = None,
    ) -> None:
        """Log a non-fatal problem and hand it to the error callback."""
        self._events_reported += 1
        logger.warning(f"Subscription {self.id}: {message}")
        if self.on_error:
            try:
                self.on_error(
                    SubscriptionEvent(kind=kind, message=message, frame=frame, error=error)
                )
            except Exception as e:
                logger.warning(f"Error in subscription error handler: {e}")

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        """Handle receive task completion for monitoring."""
        if task.cancelled():
            logger.debug(f"Task {task.get_name()} was cancelled")
        elif task.exception():
            logger.error(f"Task {task.get_name()} failed: {task.exception()}")
        else:
            logger.debug(f"Task {task.get_name()} completed")

    async def cancel(self) -> None:
        """
        Stop the subscription.

        Sends a ``stop`` frame, closes the websocket, stops the receive task
        and closes the output stream. Safe to call more than once and after
        the server has completed the subscription.
        """
        if self._state == SessionState.CLOSED and self.stream.closed:
            return

        if self._state == SessionState.ACTIVE:
            self._state = SessionState.DRAINING
            websocket = self._websocket
            if websocket is not None and not websocket.closed:
                try:
                    await self._send_frame(
                        SubscriptionFrame(id=self.id, type=FrameType.STOP.value)
                    )
                except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
                    logger.debug(f"Subscription {self.id}: could not send stop: {e}")

        await self._release()

        task = self._receive_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self.stream.close()
        logger.info(f"Subscription {self.id} cancelled")

    async def _abort(self) -> None:
        """Release the socket after a failed open."""
        await self._release()
        self.stream.close()

    async def _release(self) -> None:
        """Close the websocket once and enter CLOSED."""
        if self._released:
            self._state = SessionState.CLOSED
            return
        self._released = True
        websocket = self._websocket
        try:
            if websocket is not None and not websocket.closed:
                await websocket.close()
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
            logger.debug(f"Subscription {self.id}: error while closing websocket: {e}")
        finally:
            self._state = SessionState.CLOSED
