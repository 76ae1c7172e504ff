"""Command-line driver for MCP servers: scripted sequence or interactive prompt."""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Callable, TextIO

import httpx
import structlog

from src.config import Settings, get_settings
from src.client import (
    MCPClientError,
    ProtocolClient,
    ProtocolError,
    SessionExpiredError,
)


SEQUENCE_MODES = {"auto", "sequence"}
INTERACTIVE_MODES = {"interactive", "i"}
HELP_MODES = {"help"}

FIRST_INTERACTIVE_ID = 10

# (label, method, params, request id)
SEQUENCE_STEPS: list[tuple[str, str, dict[str, Any] | None, int]] = [
    ("Listing available tools", "tools/list", None, 2),
    ("Listing available resources", "resources/list", None, 3),
    ("Listing available prompts", "prompts/list", None, 4),
    ("Testing sum tool", "tools/call", {"name": "sum", "arguments": {"a": 5, "b": 3}}, 5),
    ("Testing sub tool", "tools/call", {"name": "sub", "arguments": {"a": 10, "b": 4}}, 6),
]

Ask = Callable[[str], str]


def configure_logging(level: str) -> None:
    """Send structlog output to stderr, filtered at the given level."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def print_json(data: Any, out: TextIO) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False), file=out)


def report_error(exc: MCPClientError, out: TextIO) -> None:
    """Print a client failure with enough context to diagnose it."""
    print(f"Error [{exc.code}]: {exc.message}", file=out)
    if isinstance(exc, SessionExpiredError):
        print("Start a fresh session to continue.", file=out)
    elif isinstance(exc, ProtocolError) and exc.raw_body is not None:
        print(f"Raw response: {exc.raw_body}", file=out)


async def run_request(
    client: ProtocolClient,
    method: str,
    params: dict[str, Any] | None,
    request_id: int,
    out: TextIO,
) -> bool:
    """Send one request and print its result. Returns False on failure."""
    print(f"Request: {method} (id {request_id})", file=out)
    try:
        result = await client.call(method, params, request_id=request_id)
    except MCPClientError as e:
        report_error(e, out)
        return False
    print_json(result, out)
    return True


async def start_session(client: ProtocolClient, out: TextIO) -> bool:
    try:
        session = await client.open_session()
    except MCPClientError as e:
        print("Failed to get session ID", file=out)
        report_error(e, out)
        return False
    print(f"Session ID: {session.id}", file=out)
    return True


async def run_sequence(client: ProtocolClient, out: TextIO = sys.stdout) -> int:
    """Open a session, list capabilities and exercise the calculator tools.

    Individual step failures are reported and the sequence carries on.

    Returns:
        Process exit code.
    """
    print("Starting MCP automation sequence...", file=out)
    if not await start_session(client, out):
        return 1

    for label, method, params, request_id in SEQUENCE_STEPS:
        print("", file=out)
        print(f"{label}...", file=out)
        await run_request(client, method, params, request_id, out)

    print("", file=out)
    print("Automation sequence complete!", file=out)
    return 0


def parse_json_object(raw: str) -> dict[str, Any]:
    """Parse user-entered JSON that must be an object."""
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}")
    if not isinstance(value, dict):
        raise ValueError("Expected a JSON object")
    return value


def no_params(ask: Ask) -> dict[str, Any] | None:
    return None


def tool_call_params(ask: Ask) -> dict[str, Any] | None:
    name = ask("Tool name: ").strip()
    raw_arguments = ask("Arguments (JSON): ").strip()
    arguments = parse_json_object(raw_arguments) if raw_arguments else {}
    return {"name": name, "arguments": arguments}


def optional_params(ask: Ask) -> dict[str, Any] | None:
    raw = ask("Parameters (JSON, or press enter for none): ").strip()
    return parse_json_object(raw) if raw else None


# Command name -> builder collecting the params for that method
REQUEST_BUILDERS: dict[str, Callable[[Ask], dict[str, Any] | None]] = {
    "tools/list": no_params,
    "resources/list": no_params,
    "prompts/list": no_params,
    "tools/call": tool_call_params,
}


async def interactive(
    client: ProtocolClient,
    ask: Ask = input,
    out: TextIO = sys.stdout,
) -> int:
    """Read method names from the prompt and send them within one session.

    ``quit``/``exit`` leave, ``new-session`` re-initializes and
    ``end-session`` terminates the current session on the server. Prompts
    run in a worker thread. End of input at any prompt ends the loop.

    Returns:
        Process exit code.
    """
    print("Interactive MCP Mode", file=out)
    if not await start_session(client, out):
        return 1

    print("Enter MCP method calls (e.g., 'tools/list', 'tools/call', etc.)", file=out)
    print("Type 'quit' to exit, 'new-session' for fresh session", file=out)

    request_id = FIRST_INTERACTIVE_ID
    while True:
        try:
            command = (await asyncio.to_thread(ask, "MCP> ")).strip()
        except EOFError:
            break

        if command in ("quit", "exit"):
            print("Goodbye!", file=out)
            break
        elif command == "new-session":
            await start_session(client, out)
        elif command == "end-session":
            try:
                await client.terminate()
                print("Session terminated", file=out)
            except MCPClientError as e:
                report_error(e, out)
        elif command:
            builder = REQUEST_BUILDERS.get(command, optional_params)
            try:
                params = await asyncio.to_thread(builder, ask)
            except EOFError:
                break
            except ValueError as e:
                print(str(e), file=out)
            else:
                await run_request(client, command, params, request_id, out)

        request_id += 1
        print("", file=out)

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Drive an MCP streamable HTTP server: session setup, listing and tool calls",
    )
    parser.add_argument(
        "mode",
        nargs="?",
        default="auto",
        help="auto|sequence (default), interactive|i, help",
    )
    parser.add_argument("--url", default=None, help="Override the configured MCP server URL")
    return parser


async def run(mode: str, settings: Settings, server_url: str | None = None) -> int:
    async with httpx.AsyncClient(timeout=None) as http_client:
        client = ProtocolClient.from_settings(http_client, settings, server_url=server_url)
        if mode in SEQUENCE_MODES:
            return await run_sequence(client)
        return await interactive(client)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.mode in HELP_MODES:
        parser.print_help()
        return 0
    if args.mode not in SEQUENCE_MODES | INTERACTIVE_MODES:
        print(f"Unknown mode: {args.mode}", file=sys.stderr)
        print("Use 'help' for usage information", file=sys.stderr)
        return 1

    settings = get_settings()
    configure_logging(settings.MCP_LOG_LEVEL)
    return asyncio.run(run(args.mode, settings, server_url=args.url))


if __name__ == "__main__":
    sys.exit(main())
