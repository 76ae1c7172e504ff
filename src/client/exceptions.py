"""Exceptions raised by the MCP session client.

Failures fall into three non-overlapping groups:

- TransportError: the HTTP round trip itself failed.
- ProtocolError: the round trip completed but the protocol contract was broken.
- RemoteError: the server answered with a well-formed JSON-RPC error object.
"""

from typing import Any


class MCPClientError(Exception):
    """Base exception for all MCP client errors."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


class TransportError(MCPClientError):
    """Raised when the HTTP request could not be completed.

    Attributes:
        url: Endpoint that was contacted.
        reason: Description of the failure.
        status_code: HTTP status, when the server did answer.
        method: JSON-RPC method being sent, if known.
    """

    def __init__(
        self,
        url: str,
        reason: str = "Connection failed",
        status_code: int | None = None,
        method: str | None = None,
        code: str = "TRANSPORT_ERROR",
    ):
        prefix = f"{method} to " if method else ""
        super().__init__(
            message=f"Request {prefix}'{url}' failed: {reason}",
            code=code,
        )
        self.url = url
        self.reason = reason
        self.status_code = status_code
        self.method = method


class TransportTimeoutError(TransportError):
    """Raised when the endpoint does not answer in time.

    Attributes:
        timeout_seconds: Timeout duration that was exceeded.
    """

    def __init__(self, url: str, timeout_seconds: float, method: str | None = None):
        super().__init__(
            url=url,
            reason=f"timed out after {timeout_seconds}s",
            method=method,
            code="TRANSPORT_TIMEOUT",
        )
        self.timeout_seconds = timeout_seconds


class ProtocolError(MCPClientError):
    """Raised when a response breaks the protocol contract.

    Attributes:
        method: JSON-RPC method that was attempted.
        kind: Short category, e.g. "unparseable response" or "missing session".
        detail: Human-readable detail.
        raw_body: Raw response body, kept for diagnosis.
    """

    def __init__(
        self,
        method: str,
        kind: str,
        detail: str = "",
        raw_body: str | None = None,
        code: str = "PROTOCOL_ERROR",
    ):
        message = f"Protocol error in '{method}': {kind}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message=message, code=code)
        self.method = method
        self.kind = kind
        self.detail = detail
        self.raw_body = raw_body


class SessionExpiredError(ProtocolError):
    """Raised when the server no longer recognises the session.

    Attributes:
        session_id: The rejected session identifier.
    """

    def __init__(self, method: str, session_id: str, raw_body: str | None = None):
        super().__init__(
            method=method,
            kind="session rejected",
            detail=f"session '{session_id}' is no longer valid, re-run initialize",
            raw_body=raw_body,
            code="SESSION_EXPIRED",
        )
        self.session_id = session_id


class RemoteError(MCPClientError):
    """Raised when the server returns a JSON-RPC error object.

    Attributes:
        method: JSON-RPC method that was attempted.
        error_code: Server-supplied error code.
        error_message: Server-supplied error message.
        data: Optional server-supplied error data.
        request_id: Correlation id of the failed request.
    """

    def __init__(
        self,
        method: str,
        error_code: int,
        error_message: str,
        data: Any | None = None,
        request_id: str | int | None = None,
    ):
        super().__init__(
            message=f"Server returned error {error_code} for '{method}': {error_message}",
            code="REMOTE_ERROR",
        )
        self.method = method
        self.error_code = error_code
        self.error_message = error_message
        self.data = data
        self.request_id = request_id


class SessionRequiredError(MCPClientError):
    """Raised when a call is attempted without an active session."""

    def __init__(self, method: str):
        super().__init__(
            message=f"Cannot send '{method}' without an active session, call initialize first",
            code="SESSION_REQUIRED",
        )
        self.method = method
