"""Unit tests for protocol schemas and client exceptions."""

import pytest
from pydantic import ValidationError

from src.client.schemas import (
    ErrorCodes,
    InitializeParams,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    Session,
    ToolCallParams,
)
from src.client.exceptions import (
    MCPClientError,
    ProtocolError,
    RemoteError,
    SessionExpiredError,
    SessionRequiredError,
    TransportError,
    TransportTimeoutError,
)


class TestSchemas:
    """Tests for JSON-RPC message schemas."""

    def test_request_serialization(self):
        request = JSONRPCRequest(
            method="tools/call",
            id=5,
            params=ToolCallParams(name="sum", arguments={"a": 5, "b": 3}).model_dump(),
        )

        assert request.to_wire() == {
            "jsonrpc": "2.0",
            "method": "tools/call",
            "id": 5,
            "params": {"name": "sum", "arguments": {"a": 5, "b": 3}},
        }

    def test_request_without_params(self):
        assert JSONRPCRequest(method="tools/list", id="req-2").to_wire() == {
            "jsonrpc": "2.0",
            "method": "tools/list",
            "id": "req-2",
        }

    def test_notification_has_no_id(self):
        wire = JSONRPCNotification(method="notifications/initialized").to_wire()

        assert wire == {"jsonrpc": "2.0", "method": "notifications/initialized"}

    def test_initialize_params_defaults(self):
        params = InitializeParams().model_dump()

        assert params == {
            "protocolVersion": "2024-11-05",
            "capabilities": {},
            "clientInfo": {"name": "automation-script", "version": "1.0"},
        }

    def test_response_result_presence(self):
        with_null = JSONRPCResponse.model_validate({"jsonrpc": "2.0", "id": 1, "result": None})
        without = JSONRPCResponse.model_validate({"jsonrpc": "2.0", "id": 1})

        assert with_null.has_result
        assert not without.has_result
        assert not with_null.is_error

    def test_response_error(self):
        response = JSONRPCResponse.model_validate({
            "jsonrpc": "2.0",
            "id": 1,
            "error": {"code": ErrorCodes.METHOD_NOT_FOUND, "message": "nope"},
        })

        assert response.is_error
        assert response.error.code == -32601

    def test_session_is_immutable(self):
        session = Session(id="abc")

        with pytest.raises(ValidationError):
            session.id = "other"

    def test_session_requires_id(self):
        with pytest.raises(ValidationError):
            Session(id="")


class TestClientExceptions:
    """Tests for client exception classes."""

    def test_transport_error(self):
        exc = TransportError(url="http://x/mcp", reason="Connection refused", method="tools/list")

        assert isinstance(exc, MCPClientError)
        assert exc.code == "TRANSPORT_ERROR"
        assert "tools/list" in exc.message
        assert "Connection refused" in exc.message

    def test_timeout_is_transport_error(self):
        exc = TransportTimeoutError(url="http://x/mcp", timeout_seconds=30.0)

        assert isinstance(exc, TransportError)
        assert exc.timeout_seconds == 30.0
        assert "timed out" in exc.message

    def test_protocol_error_keeps_raw_body(self):
        exc = ProtocolError(method="tools/list", kind="unparseable response", raw_body="<html>")

        assert exc.raw_body == "<html>"
        assert exc.code == "PROTOCOL_ERROR"
        assert "tools/list" in exc.message

    def test_session_expired_is_protocol_error(self):
        exc = SessionExpiredError(method="tools/list", session_id="abc")

        assert isinstance(exc, ProtocolError)
        assert exc.code == "SESSION_EXPIRED"

    def test_remote_error(self):
        exc = RemoteError(method="tools/call", error_code=-32602, error_message="Unknown tool: mul")

        assert exc.error_code == -32602
        assert exc.error_message == "Unknown tool: mul"
        assert "-32602" in exc.message

    def test_categories_do_not_overlap(self):
        transport = TransportError(url="u")
        protocol = ProtocolError(method="m", kind="k")
        remote = RemoteError(method="m", error_code=1, error_message="x")

        assert not isinstance(transport, (ProtocolError, RemoteError))
        assert not isinstance(protocol, (TransportError, RemoteError))
        assert not isinstance(remote, (TransportError, ProtocolError))

    def test_session_required(self):
        exc = SessionRequiredError(method="tools/list")

        assert exc.code == "SESSION_REQUIRED"
        assert "initialize" in exc.message
