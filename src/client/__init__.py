"""Client module - session-bound MCP JSON-RPC over streamable HTTP."""

from .schemas import (
    ClientInfo,
    InitializeParams,
    InitializeResult,
    JSONRPCRequest,
    JSONRPCNotification,
    JSONRPCResponse,
    JSONRPCErrorDetail,
    ToolCallParams,
    Session,
    ErrorCodes,
)
from .exceptions import (
    MCPClientError,
    TransportError,
    TransportTimeoutError,
    ProtocolError,
    SessionExpiredError,
    RemoteError,
    SessionRequiredError,
)
from .framing import decode_messages, iter_events, unwrap_event_stream
from .client import ProtocolClient


__all__ = [
    # Schemas
    "ClientInfo",
    "InitializeParams",
    "InitializeResult",
    "JSONRPCRequest",
    "JSONRPCNotification",
    "JSONRPCResponse",
    "JSONRPCErrorDetail",
    "ToolCallParams",
    "Session",
    "ErrorCodes",
    # Exceptions
    "MCPClientError",
    "TransportError",
    "TransportTimeoutError",
    "ProtocolError",
    "SessionExpiredError",
    "RemoteError",
    "SessionRequiredError",
    # Framing
    "decode_messages",
    "iter_events",
    "unwrap_event_stream",
    # Client
    "ProtocolClient",
]
