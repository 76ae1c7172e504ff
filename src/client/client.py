"""Session-bound JSON-RPC client for MCP streamable HTTP servers."""

from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from src.config import Settings, get_settings
from .exceptions import (
    ProtocolError,
    RemoteError,
    SessionExpiredError,
    SessionRequiredError,
    TransportError,
)
from .framing import decode_messages
from .schemas import (
    INITIALIZE_REQUEST_ID,
    ClientInfo,
    InitializeParams,
    InitializeResult,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    Session,
    ToolCallParams,
)
from .transport import (
    DEFAULT_TIMEOUT_SECONDS,
    SESSION_HEADER,
    delete_session,
    extract_session_id,
    post_message,
)


logger = structlog.get_logger("mcp_client")

INITIALIZED_NOTIFICATION = "notifications/initialized"

# Truncation for bodies quoted in error messages
BODY_PREVIEW_CHARS = 200


def _ids_match(received: Any, expected: str | int) -> bool:
    """Compare correlation ids by type as well as value, so ``true`` != ``1``."""
    return type(received) is type(expected) and received == expected


class ProtocolClient:
    """JSON-RPC client bound to one endpoint and at most one session.

    Calls are awaited one at a time. The session is owned by the instance:
    ``initialize`` replaces it, a server rejection or ``terminate`` clears
    it, and nothing else changes it.

    Attributes:
        http_client: Shared HTTP client (owned by the caller).
        server_url: Endpoint URL.
        timeout: Per-request timeout in seconds.
        session_header: Header carrying the session id.
        protocol_version: Version requested during initialize.
        client_info: Name/version announced during initialize.
        verify_response_ids: Reject responses whose id differs from the request.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        server_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session_header: str = SESSION_HEADER,
        protocol_version: str = "2024-11-05",
        client_info: ClientInfo | None = None,
        verify_response_ids: bool = True,
    ) -> None:
        self.http_client = http_client
        self.server_url = server_url
        self.timeout = timeout
        self.session_header = session_header
        self.protocol_version = protocol_version
        self.client_info = client_info or ClientInfo()
        self.verify_response_ids = verify_response_ids
        self._session: Session | None = None
        self._last_id = INITIALIZE_REQUEST_ID

    @classmethod
    def from_settings(
        cls,
        http_client: httpx.AsyncClient,
        settings: Settings | None = None,
        server_url: str | None = None,
    ) -> "ProtocolClient":
        """Build a client from application settings."""
        settings = settings or get_settings()
        return cls(
            http_client=http_client,
            server_url=server_url or settings.MCP_SERVER_URL,
            timeout=settings.MCP_TIMEOUT_SECONDS,
            session_header=settings.MCP_SESSION_HEADER,
            protocol_version=settings.MCP_PROTOCOL_VERSION,
            client_info=ClientInfo(
                name=settings.MCP_CLIENT_NAME,
                version=settings.MCP_CLIENT_VERSION,
            ),
            verify_response_ids=settings.MCP_VERIFY_RESPONSE_IDS,
        )

    @property
    def session(self) -> Session | None:
        """The active session, or None before initialize."""
        return self._session

    def next_request_id(self) -> int:
        """Hand out the next correlation id. Id 1 belongs to initialize."""
        self._last_id += 1
        return self._last_id

    async def initialize(self, client_info: ClientInfo | None = None) -> Session:
        """Perform the handshake and store the new session.

        Any previous session is discarded first, so a failed handshake
        leaves the client without a session.

        Args:
            client_info: Overrides the client name/version for this handshake.

        Returns:
            The new Session.

        Raises:
            TransportError: If the request could not be completed.
            RemoteError: If the server answered with a JSON-RPC error.
            ProtocolError: If the session header is missing or the body is
                unreadable.
        """
        self._session = None

        params = InitializeParams(
            protocolVersion=self.protocol_version,
            clientInfo=client_info or self.client_info,
        )
        request = JSONRPCRequest(
            method="initialize",
            id=INITIALIZE_REQUEST_ID,
            params=params.model_dump(),
        )
        logger.info("mcp_initialize", url=self.server_url, protocol_version=self.protocol_version)

        response = await post_message(
            self.http_client,
            self.server_url,
            request.to_wire(),
            session_header=self.session_header,
            timeout=self.timeout,
        )
        result = self._handle_response(request, response)

        session_id = extract_session_id(response.headers, self.session_header)
        if not session_id:
            raise ProtocolError(
                method=request.method,
                kind="missing session",
                detail=f"response carried no '{self.session_header}' header",
                raw_body=response.text,
            )

        try:
            init = InitializeResult.model_validate(result if isinstance(result, dict) else {})
        except ValidationError as e:
            raise ProtocolError(
                method=request.method,
                kind="invalid initialize result",
                detail=str(e),
                raw_body=response.text,
            )

        session = Session(
            id=session_id,
            protocol_version=init.protocolVersion,
            server_info=init.serverInfo,
            capabilities=init.capabilities,
        )
        self._session = session
        logger.info(
            "mcp_session_established",
            session_id=session.id,
            protocol_version=session.protocol_version,
            server_info=session.server_info,
        )
        return session

    async def notify_initialized(self, session: Session | str | None = None) -> None:
        """Send the one-way initialized notification.

        The response body is only logged. Empty, non-JSON or error bodies
        never raise; transport failures do.
        """
        active = self._resolve_session(INITIALIZED_NOTIFICATION, session)
        notification = JSONRPCNotification(method=INITIALIZED_NOTIFICATION)

        response = await post_message(
            self.http_client,
            self.server_url,
            notification.to_wire(),
            session_id=active.id,
            protocol_version=active.protocol_version,
            session_header=self.session_header,
            timeout=self.timeout,
        )
        logger.info(
            "mcp_notification_ack",
            method=notification.method,
            status_code=response.status_code,
            body=response.text[:BODY_PREVIEW_CHARS],
        )

    async def open_session(self, client_info: ClientInfo | None = None) -> Session:
        """Initialize and confirm with the initialized notification."""
        session = await self.initialize(client_info)
        await self.notify_initialized(session)
        return session

    async def call(
        self,
        method: str,
        params: dict[str, Any] | BaseModel | None = None,
        request_id: str | int | None = None,
        session: Session | str | None = None,
    ) -> Any:
        """Send a request within a session and return its result.

        Args:
            method: JSON-RPC method name.
            params: Parameter object; omitted on the wire when empty.
            request_id: Correlation id. Generated when not given.
            session: Session to use instead of the active one.

        Returns:
            The ``result`` payload of the matching response.

        Raises:
            SessionRequiredError: If there is no session to send with.
            TransportError: If the request could not be completed.
            ProtocolError: If the response is unreadable or doesn't match.
            RemoteError: If the server answered with a JSON-RPC error.
        """
        active = self._resolve_session(method, session)
        if request_id is None:
            request_id = self.next_request_id()
        if isinstance(params, BaseModel):
            params = params.model_dump()

        request = JSONRPCRequest(method=method, id=request_id, params=params)
        logger.info("mcp_request", method=method, request_id=request_id, session_id=active.id)

        response = await post_message(
            self.http_client,
            self.server_url,
            request.to_wire(),
            session_id=active.id,
            protocol_version=active.protocol_version,
            session_header=self.session_header,
            timeout=self.timeout,
        )
        return self._handle_response(request, response, session=active)

    async def list_tools(self, request_id: str | int | None = None) -> Any:
        return await self.call("tools/list", request_id=request_id)

    async def list_resources(self, request_id: str | int | None = None) -> Any:
        return await self.call("resources/list", request_id=request_id)

    async def list_prompts(self, request_id: str | int | None = None) -> Any:
        return await self.call("prompts/list", request_id=request_id)

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        request_id: str | int | None = None,
    ) -> Any:
        """Invoke a tool by name."""
        params = ToolCallParams(name=name, arguments=arguments or {})
        return await self.call("tools/call", params, request_id=request_id)

    async def terminate(self, session: Session | str | None = None) -> None:
        """Ask the server to end the session and forget it locally.

        Servers that don't support termination answer 405, which is accepted.
        """
        active = self._resolve_session("DELETE", session)
        response = await delete_session(
            self.http_client,
            self.server_url,
            active.id,
            session_header=self.session_header,
            timeout=self.timeout,
        )

        if response.status_code == 405:
            logger.info("mcp_session_termination_unsupported", session_id=active.id)
        elif response.status_code >= 400 and response.status_code != 404:
            raise TransportError(
                url=self.server_url,
                reason=f"HTTP {response.status_code}: {response.text[:BODY_PREVIEW_CHARS]}",
                status_code=response.status_code,
                method="DELETE",
            )

        if self._session is not None and self._session.id == active.id:
            self._session = None
        logger.info("mcp_session_terminated", session_id=active.id)

    def _resolve_session(self, method: str, session: Session | str | None) -> Session:
        if isinstance(session, Session):
            return session
        if isinstance(session, str):
            if not session.strip():
                raise SessionRequiredError(method)
            return Session(id=session.strip())
        if self._session is None:
            raise SessionRequiredError(method)
        return self._session

    def _handle_response(
        self,
        request: JSONRPCRequest,
        response: httpx.Response,
        session: Session | None = None,
    ) -> Any:
        body = response.text
        logger.debug(
            "mcp_raw_response",
            method=request.method,
            request_id=request.id,
            status_code=response.status_code,
            body=body,
        )

        if response.status_code >= 400:
            remote_error = self._error_from_body(request, body)
            if remote_error is not None:
                raise remote_error
            if response.status_code == 404 and session is not None:
                self._drop_session(session)
                raise SessionExpiredError(
                    method=request.method,
                    session_id=session.id,
                    raw_body=body,
                )
            raise TransportError(
                url=self.server_url,
                reason=f"HTTP {response.status_code}: {body[:BODY_PREVIEW_CHARS]}",
                status_code=response.status_code,
                method=request.method,
            )

        try:
            messages = decode_messages(body)
        except (ValueError, RecursionError) as e:
            raise ProtocolError(
                method=request.method,
                kind="unparseable response",
                detail=str(e),
                raw_body=body,
            )

        rpc_response = self._select_response(request, messages, body)
        if rpc_response.is_error:
            raise self._remote_error(request, rpc_response)
        if not rpc_response.has_result:
            raise ProtocolError(
                method=request.method,
                kind="invalid response",
                detail="response has neither result nor error",
                raw_body=body,
            )

        logger.info("mcp_response", method=request.method, request_id=request.id)
        return rpc_response.result

    def _select_response(
        self,
        request: JSONRPCRequest,
        messages: list[Any],
        body: str,
    ) -> JSONRPCResponse:
        """Pick the response belonging to the request.

        Server-initiated requests and notifications in the same stream are
        skipped. A JSON-RPC error with a null id (the server could not read
        the request) is accepted as the answer.
        """
        candidates: list[dict[str, Any]] = []
        for message in messages:
            items = message if isinstance(message, list) else [message]
            for item in items:
                if isinstance(item, dict) and ("result" in item or "error" in item):
                    candidates.append(item)

        if not candidates:
            raise ProtocolError(
                method=request.method,
                kind="invalid response",
                detail="no JSON-RPC response in body",
                raw_body=body,
            )

        if self.verify_response_ids:
            matching = [
                item for item in candidates
                if _ids_match(item.get("id"), request.id)
                or ("error" in item and item.get("id") is None)
            ]
            if not matching:
                received = [item.get("id") for item in candidates]
                raise ProtocolError(
                    method=request.method,
                    kind="id mismatch",
                    detail=f"expected id {request.id!r}, received {received!r}",
                    raw_body=body,
                )
            if len(matching) > 1:
                raise ProtocolError(
                    method=request.method,
                    kind="duplicate response",
                    detail=f"{len(matching)} responses for id {request.id!r}",
                    raw_body=body,
                )
            chosen = matching[0]
        else:
            chosen = candidates[0]

        try:
            return JSONRPCResponse.model_validate(chosen)
        except ValidationError as e:
            raise ProtocolError(
                method=request.method,
                kind="invalid response",
                detail=str(e),
                raw_body=body,
            )

    def _error_from_body(self, request: JSONRPCRequest, body: str) -> RemoteError | None:
        """Read a JSON-RPC error out of a non-2xx body, if there is one."""
        try:
            rpc_response = self._select_response(request, decode_messages(body), body)
        except (ValueError, RecursionError, ProtocolError):
            return None
        if rpc_response.is_error:
            return self._remote_error(request, rpc_response)
        return None

    def _remote_error(self, request: JSONRPCRequest, rpc_response: JSONRPCResponse) -> RemoteError:
        error = rpc_response.error
        logger.info(
            "mcp_remote_error",
            method=request.method,
            request_id=request.id,
            error_code=error.code,
            error_message=error.message,
        )
        return RemoteError(
            method=request.method,
            error_code=error.code,
            error_message=error.message,
            data=error.data,
            request_id=request.id,
        )

    def _drop_session(self, session: Session) -> None:
        if self._session is not None and self._session.id == session.id:
            self._session = None
        logger.warning("mcp_session_expired", session_id=session.id)
