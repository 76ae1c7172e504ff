# Test configuration
import json
import sys
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio

REPO_ROOT = Path(__file__).parent.parent

# Add repo root to path so tests can import modules
sys.path.insert(0, str(REPO_ROOT))

from src.client import ProtocolClient  # noqa: E402


SERVER_URL = "http://mcp.test/mcp"


class FakeMCPServer:
    """In-process calculator MCP endpoint served through httpx.MockTransport.

    Knows initialize, tools/list and tools/call (sum, sub). Everything else
    gets a method-not-found error. Requests with an unknown session get 404.
    """

    def __init__(self, session_id: str = "session-abc", framed: bool = False):
        self.session_id = session_id
        self.framed = framed
        self.requests: list[httpx.Request] = []
        self.payloads: list[dict[str, Any]] = []
        self.known_sessions: set[str] = set()
        self._event_id = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        session_id = request.headers.get("mcp-session-id")

        if request.method == "DELETE":
            self.known_sessions.discard(session_id)
            return httpx.Response(200)

        payload = json.loads(request.content)
        self.payloads.append(payload)
        method = payload["method"]

        if method == "initialize":
            self.known_sessions.add(self.session_id)
            return self._reply(
                payload["id"],
                result={
                    "protocolVersion": "2024-11-05",
                    "capabilities": {"tools": {"listChanged": False}},
                    "serverInfo": {"name": "calculadora", "version": "0.1.0"},
                },
                headers={"mcp-session-id": self.session_id},
            )

        if session_id not in self.known_sessions:
            return httpx.Response(404, text="Session not found")

        if "id" not in payload:
            return httpx.Response(202)

        if method == "tools/list":
            return self._reply(payload["id"], result={"tools": [
                {"name": "sum", "description": "Add two numbers", "inputSchema": {"type": "object"}},
                {"name": "sub", "description": "Subtract two numbers", "inputSchema": {"type": "object"}},
            ]})

        if method == "tools/call":
            params = payload.get("params", {})
            arguments = params.get("arguments", {})
            if params.get("name") == "sum":
                value = arguments["a"] + arguments["b"]
            elif params.get("name") == "sub":
                value = arguments["a"] - arguments["b"]
            else:
                return self._reply(
                    payload["id"],
                    error={"code": -32602, "message": f"Unknown tool: {params.get('name')}"},
                )
            return self._reply(
                payload["id"],
                result={"content": [{"type": "text", "text": str(value)}], "isError": False},
            )

        return self._reply(
            payload["id"],
            error={"code": -32601, "message": f"Method not found: {method}"},
        )

    def _reply(
        self,
        request_id: str | int,
        result: Any = None,
        error: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        message: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id}
        if error is not None:
            message["error"] = error
        else:
            message["result"] = result

        headers = dict(headers or {})
        if not self.framed:
            return httpx.Response(200, json=message, headers=headers)

        self._event_id += 1
        headers["content-type"] = "text/event-stream"
        body = f"event: message\nid: {self._event_id}\ndata: {json.dumps(message)}\n\n"
        return httpx.Response(200, text=body, headers=headers)


@pytest.fixture
def fake_server() -> FakeMCPServer:
    return FakeMCPServer()


@pytest_asyncio.fixture
async def make_client():
    """Build a ProtocolClient whose HTTP traffic goes to a handler function.

    The underlying HTTP clients are closed at teardown.
    """
    http_clients: list[httpx.AsyncClient] = []

    def _make(handler, **kwargs) -> ProtocolClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        http_clients.append(http_client)
        return ProtocolClient(http_client, SERVER_URL, **kwargs)

    yield _make

    for http_client in http_clients:
        await http_client.aclose()
