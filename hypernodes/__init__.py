"""Public package surface for the Hypernodes client."""

from __future__ import annotations

from .backoff import BackoffPolicy, BackoffState
from .client import Client
from .config import ClientConfig
from .errors import DecodeError, HypernodesError, NotReadyError, TransportError
from .polling import PollLoop, PollState
from .registry import ClientFunction, FunctionRegistry
from .session import BoundGraph, Session
from .transport import HttpTransport, Transport
from .types import (
    ClientFunctionCall,
    GraphListRequest,
    GraphNodeData,
    KeyData,
    PollRequest,
    RunGraphRequest,
    RunGraphResponse,
)

__all__ = [
    "__version__",
    "BackoffPolicy",
    "BackoffState",
    "BoundGraph",
    "Client",
    "ClientConfig",
    "ClientFunction",
    "ClientFunctionCall",
    "DecodeError",
    "FunctionRegistry",
    "GraphListRequest",
    "GraphNodeData",
    "HttpTransport",
    "HypernodesError",
    "KeyData",
    "NotReadyError",
    "PollLoop",
    "PollRequest",
    "PollState",
    "RunGraphRequest",
    "RunGraphResponse",
    "Session",
    "Transport",
    "TransportError",
]

__version__ = "0.1.0"
