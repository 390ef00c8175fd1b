"""
GraphQL models and data structures.

This module defines the wire envelopes, frame types and small value types
shared by the request executor and the subscription session.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OperationType(str, Enum):
    """GraphQL operation types."""

    QUERY = "query"
    MUTATION = "mutation"
    SUBSCRIPTION = "subscription"


class ID(str):
    """String value rendered as the GraphQL ``ID`` scalar in variable definitions."""

    pass


@dataclass(frozen=True)
class Var:
    """Variable value with an explicit GraphQL type, e.g. ``Var(None, "String")``."""

    value: Any
    type: str


class ErrorLocation(BaseModel):
    """Location of an error in the query document."""

    line: int
    column: int


class GraphQLErrorEntry(BaseModel):
    """Single entry of the ``errors`` array of a GraphQL response."""

    message: str
    locations: List[ErrorLocation] = Field(default_factory=list)
    path: Optional[List[Any]] = None
    extensions: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="allow")


class ResponseEnvelope(BaseModel):
    """Top-level GraphQL response: ``{"data": ..., "errors": [...]}``."""

    data: Optional[Any] = None
    errors: List[GraphQLErrorEntry] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("errors", mode="before")
    @classmethod
    def null_errors_as_empty(cls, v: Any) -> Any:
        """Treat ``"errors": null`` like an absent errors array."""
        return [] if v is None else v

    @property
    def has_errors(self) -> bool:
        """Check if the server reported errors."""
        return len(self.errors) > 0


class FrameType(str, Enum):
    """Message types of the ``graphql-ws`` protocol."""

    CONNECTION_INIT = "connection_init"
    CONNECTION_ACK = "connection_ack"
    CONNECTION_ERROR = "connection_error"
    KEEP_ALIVE = "ka"
    START = "start"
    STOP = "stop"
    DATA = "data"
    ERROR = "error"
    COMPLETE = "complete"


class SubscriptionFrame(BaseModel):
    """
    A single ``graphql-ws`` frame.

    ``type`` is kept as a plain string so unknown message types survive
    parsing and can be reported instead of failing the receive loop.
    """

    id: str = ""
    type: str
    payload: Optional[Any] = None

    model_config = ConfigDict(extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        """Convert to the JSON object sent on the socket."""
        frame: Dict[str, Any] = {"type": self.type}
        if self.id:
            frame["id"] = self.id
        if self.payload is not None:
            frame["payload"] = self.payload
        return frame


class SessionState(str, Enum):
    """Lifecycle states of a subscription session."""

    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    ACTIVE = "active"
    DRAINING = "draining"
    CLOSED = "closed"


class SubscriptionEventKind(str, Enum):
    """Kinds of non-fatal problems reported by a running subscription."""

    READ_ERROR = "read_error"
    DECODE_ERROR = "decode_error"
    SERVER_ERROR = "server_error"
    UNEXPECTED_FRAME = "unexpected_frame"


@dataclass
class SubscriptionEvent:
    """Non-fatal problem observed by the receive loop."""

    kind: SubscriptionEventKind
    message: str
    frame: Optional[SubscriptionFrame] = None
    error: Optional[Exception] = None
    timestamp: float = field(default_factory=time.time)
