"""
typed_graphql - typed GraphQL client for Python.

Queries, mutations and subscriptions are described by pydantic model
templates. The client renders the GraphQL document from the template,
executes it over HTTP or the ``graphql-ws`` websocket protocol, and decodes
results back into template instances.
"""

from .client import GraphQLClient
from .config import ClientConfig, GlobalConfig, LoggingConfig, LogLevel, load_config
from .decoder import decode, new_instance
from .document import render, render_selection, variable_type
from .exceptions import (
    ConnectionFailedError,
    DecodeError,
    DocumentError,
    GraphQLClientError,
    HandshakeError,
    HTTPStatusError,
    ProtocolError,
    TransportError,
    TransportTimeoutError,
)
from .executor import RequestExecutor
from .fields import graphql_field
from .models import (
    ID,
    GraphQLErrorEntry,
    OperationType,
    SessionState,
    SubscriptionEvent,
    SubscriptionEventKind,
    Var,
)
from .subscription import SubscriptionSession, SubscriptionStream

__version__ = "0.1.0"

__all__ = [
    # Client
    "GraphQLClient",
    "RequestExecutor",
    "SubscriptionSession",
    "SubscriptionStream",
    # Templates and documents
    "graphql_field",
    "render",
    "render_selection",
    "variable_type",
    "decode",
    "new_instance",
    "ID",
    "Var",
    "OperationType",
    # Subscription state
    "SessionState",
    "SubscriptionEvent",
    "SubscriptionEventKind",
    "GraphQLErrorEntry",
    # Configuration
    "ClientConfig",
    "GlobalConfig",
    "LoggingConfig",
    "LogLevel",
    "load_config",
    # Exceptions
    "GraphQLClientError",
    "TransportError",
    "ConnectionFailedError",
    "TransportTimeoutError",
    "HTTPStatusError",
    "HandshakeError",
    "ProtocolError",
    "DecodeError",
    "DocumentError",
]
