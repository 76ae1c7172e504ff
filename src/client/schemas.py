"""Pydantic schemas for MCP JSON-RPC protocol messages."""

from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, Field


INITIALIZE_REQUEST_ID = 1


class ClientInfo(BaseModel):
    """Identifies this client to the server during the handshake."""

    name: str = Field(default="automation-script", description="Client name")
    version: str = Field(default="1.0", description="Client version")


class InitializeParams(BaseModel):
    """Parameters for the initialize request."""

    protocolVersion: str = Field(default="2024-11-05", description="MCP protocol version")
    capabilities: dict[str, Any] = Field(default_factory=dict)
    clientInfo: ClientInfo = Field(default_factory=ClientInfo)


class InitializeResult(BaseModel):
    """Result of the initialize request. Unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    protocolVersion: str | None = None
    capabilities: dict[str, Any] = Field(default_factory=dict)
    serverInfo: dict[str, Any] = Field(default_factory=dict)
    instructions: str | None = None


class ToolCallParams(BaseModel):
    """Parameters for tools/call.

    Attributes:
        name: Name of the tool to invoke.
        arguments: Arguments to pass to the tool.
    """

    name: str = Field(..., description="Name of the tool to invoke")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Tool arguments")


class JSONRPCRequest(BaseModel):
    """JSON-RPC 2.0 request.

    Attributes:
        jsonrpc: JSON-RPC version (always "2.0").
        method: The method to call (e.g., "tools/list").
        id: Request identifier for correlation.
        params: Optional parameter object.
    """

    jsonrpc: Literal["2.0"] = Field(default="2.0", description="JSON-RPC version")
    method: str = Field(..., description="Method to call")
    id: str | int = Field(..., description="Request ID for correlation")
    params: dict[str, Any] | None = Field(default=None, description="Method parameters")

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the wire, leaving out empty params."""
        data = self.model_dump()
        if not data.get("params"):
            data.pop("params", None)
        return data


class JSONRPCNotification(BaseModel):
    """JSON-RPC 2.0 notification: a request without an id."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: dict[str, Any] | None = None

    def to_wire(self) -> dict[str, Any]:
        data = self.model_dump()
        if not data.get("params"):
            data.pop("params", None)
        return data


class JSONRPCErrorDetail(BaseModel):
    """Error details in JSON-RPC format.

    Attributes:
        code: Error code (negative integers for protocol errors).
        message: Human-readable error message.
        data: Optional additional error data.
    """

    code: int = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    data: Any | None = Field(default=None, description="Additional error data")


class JSONRPCResponse(BaseModel):
    """JSON-RPC 2.0 response.

    Exactly one of ``result`` and ``error`` is expected. ``result`` may
    legitimately be null, so presence is checked via ``model_fields_set``.
    """

    jsonrpc: Literal["2.0"] = Field(default="2.0", description="JSON-RPC version")
    id: str | int | None = Field(default=None, description="Request ID for correlation")
    result: Any | None = Field(default=None, description="Result on success")
    error: JSONRPCErrorDetail | None = Field(default=None, description="Error on failure")

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def has_result(self) -> bool:
        return "result" in self.model_fields_set


class Session(BaseModel):
    """An initialized conversation with the server.

    Immutable: a new initialize produces a new Session instead of
    changing this one.

    Attributes:
        id: Opaque identifier issued by the server.
        protocol_version: Version the server agreed to, if it said.
        server_info: Server name/version block from the handshake.
        capabilities: Capabilities advertised by the server.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    protocol_version: str | None = None
    server_info: dict[str, Any] = Field(default_factory=dict)
    capabilities: dict[str, Any] = Field(default_factory=dict)


# Standard JSON-RPC error codes
class ErrorCodes:
    """Standard JSON-RPC error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
