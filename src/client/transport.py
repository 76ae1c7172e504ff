"""HTTP transport for sending MCP messages to a streamable HTTP endpoint."""

from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from .exceptions import TransportError, TransportTimeoutError


logger = structlog.get_logger("mcp_client.transport")

# Default timeout for a single round trip
DEFAULT_TIMEOUT_SECONDS = 30.0

SESSION_HEADER = "mcp-session-id"
PROTOCOL_VERSION_HEADER = "mcp-protocol-version"
ACCEPT = "application/json, text/event-stream"


def build_headers(
    session_id: str | None = None,
    protocol_version: str | None = None,
    session_header: str = SESSION_HEADER,
) -> dict[str, str]:
    """Build the headers sent with every message.

    Args:
        session_id: Active session to attach, if any.
        protocol_version: Negotiated protocol version, if known.
        session_header: Header name carrying the session id.

    Returns:
        Header mapping for the request.
    """
    headers = {
        "Content-Type": "application/json",
        "Accept": ACCEPT,
    }
    if session_id:
        headers[session_header] = session_id
    if protocol_version:
        headers[PROTOCOL_VERSION_HEADER] = protocol_version
    return headers


def extract_session_id(
    headers: Mapping[str, str],
    header_name: str = SESSION_HEADER,
) -> str | None:
    """Find the session id in response headers.

    The key match is case-insensitive and the value is stripped of
    surrounding whitespace and line terminators.

    Returns:
        The session id, or None if the header is missing or blank.
    """
    wanted = header_name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            session_id = value.strip()
            return session_id or None
    return None


async def post_message(
    client: httpx.AsyncClient,
    url: str,
    payload: dict[str, Any],
    session_id: str | None = None,
    protocol_version: str | None = None,
    session_header: str = SESSION_HEADER,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> httpx.Response:
    """POST one JSON-RPC message and return the raw HTTP response.

    A single attempt is made. HTTP status codes are not interpreted here.

    Args:
        client: Shared HTTP client.
        url: Endpoint URL.
        payload: JSON-RPC message (request or notification).
        session_id: Session to attach, if any.
        protocol_version: Negotiated protocol version, if known.
        session_header: Header name carrying the session id.
        timeout: Request timeout in seconds.

    Returns:
        The httpx response.

    Raises:
        TransportTimeoutError: If the endpoint doesn't respond in time.
        TransportError: If the connection fails.
    """
    method = payload.get("method")
    headers = build_headers(session_id, protocol_version, session_header)

    try:
        response = await client.post(
            url,
            json=payload,
            headers=headers,
            timeout=timeout,
        )
    except httpx.TimeoutException:
        raise TransportTimeoutError(url=url, timeout_seconds=timeout, method=method)
    except httpx.ConnectError as e:
        raise TransportError(url=url, reason=str(e), method=method)
    except httpx.RequestError as e:
        raise TransportError(url=url, reason=f"Request failed: {e}", method=method)

    logger.debug(
        "mcp_http_response",
        method=method,
        status_code=response.status_code,
        content_type=response.headers.get("content-type"),
    )
    return response


async def delete_session(
    client: httpx.AsyncClient,
    url: str,
    session_id: str,
    session_header: str = SESSION_HEADER,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> httpx.Response:
    """Ask the server to terminate a session.

    Raises:
        TransportTimeoutError: If the endpoint doesn't respond in time.
        TransportError: If the connection fails.
    """
    headers = {session_header: session_id}

    try:
        return await client.delete(url, headers=headers, timeout=timeout)
    except httpx.TimeoutException:
        raise TransportTimeoutError(url=url, timeout_seconds=timeout, method="DELETE")
    except httpx.ConnectError as e:
        raise TransportError(url=url, reason=str(e), method="DELETE")
    except httpx.RequestError as e:
        raise TransportError(url=url, reason=f"Request failed: {e}", method="DELETE")
