"""Load tools from Model Context Protocol servers over stdio, SSE or streamable HTTP."""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol
from urllib.parse import urljoin

import httpx

from .errors import (
    ExecutionFailedError,
    McpConnectionError,
    McpDiscoveryError,
    McpIntegrationError,
    McpInvalidSchemaError,
    McpSdkError,
    McpToolConversionError,
    ToolBuilderError,
)
from .tool import Tool, ToolBuilder

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2025-03-26"

_HTTP_CLIENT_INFO = {"name": "test sse client", "version": "0.0.1"}
_STDIO_CLIENT_INFO = {"name": "reagent", "version": "0.1.0"}

_STDIO_LINE_LIMIT = 16 * 1024 * 1024
_TRANSPORT_ERRORS = (OSError, httpx.HTTPError, ValueError)


class McpServerKind(str, Enum):
    """How an MCP server is reached."""

    SSE = "sse"
    STDIO = "stdio"
    STREAMABLE_HTTP = "streamable_http"


@dataclass(frozen=True)
class McpServerType:
    """An MCP server: its transport and a URL or command line."""

    kind: McpServerKind
    target: str

    @classmethod
    def sse(cls, url: str) -> McpServerType:
        return cls(McpServerKind.SSE, url)

    @classmethod
    def stdio(cls, command: str) -> McpServerType:
        return cls(McpServerKind.STDIO, command)

    @classmethod
    def streamable_http(cls, url: str) -> McpServerType:
        return cls(McpServerKind.STREAMABLE_HTTP, url)


class _RpcError(Exception):
    """A JSON-RPC error object returned by the server."""

    def __init__(self, code: Any, message: Any, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"JSON-RPC error {code}: {message}")


class _Transport(Protocol):
    async def request(self, message: dict[str, Any]) -> dict[str, Any]: ...

    async def notify(self, message: dict[str, Any]) -> None: ...

    async def close(self) -> None: ...


def _is_server_request(message: Mapping[str, Any]) -> bool:
    return "method" in message and "id" in message


def _reply_to_server_request(message: Mapping[str, Any]) -> dict[str, Any]:
    if message.get("method") == "ping":
        return {"jsonrpc": "2.0", "id": message["id"], "result": {}}
    return {
        "jsonrpc": "2.0",
        "id": message["id"],
        "error": {"code": -32601, "message": "Method not found"},
    }


def _is_response_to(message: Mapping[str, Any], request_id: Any) -> bool:
    return message.get("id") == request_id and ("result" in message or "error" in message)


def _decode(payload: str | bytes) -> list[dict[str, Any]]:
    """Decode a JSON-RPC message or batch into a list of message objects."""
    decoded = json.loads(payload)
    items = decoded if isinstance(decoded, list) else [decoded]
    return [item for item in items if isinstance(item, dict)]


async def _iter_sse(lines: AsyncIterator[str]) -> AsyncIterator[tuple[str, str]]:
    """Yield ``(event, data)`` pairs from the lines of a server-sent event stream."""
    event = ""
    data: list[str] = []
    async for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if data:
                yield event or "message", "\n".join(data)
            event, data = "", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
    if data:
        yield event or "message", "\n".join(data)


class _StdioTransport:
    """Newline-delimited JSON-RPC over a child process's stdin and stdout."""

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        self._process = process

    @classmethod
    async def spawn(cls, program: str, args: list[str]) -> _StdioTransport:
        process = await asyncio.create_subprocess_exec(
            program,
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            limit=_STDIO_LINE_LIMIT,
        )
        return cls(process)

    async def _write(self, message: dict[str, Any]) -> None:
        stdin = self._process.stdin
        if stdin is None or stdin.is_closing():
            raise ConnectionError("MCP server input is closed")
        stdin.write((json.dumps(message) + "\n").encode("utf-8"))
        await stdin.drain()

    async def request(self, message: dict[str, Any]) -> dict[str, Any]:
        await self._write(message)
        stdout = self._process.stdout
        if stdout is None:
            raise ConnectionError("MCP server output is closed")
        while True:
            line = await stdout.readline()
            if not line:
                raise ConnectionError("MCP server closed its output")
            if not line.strip():
                continue
            try:
                incoming = _decode(line)
            except ValueError:
                logger.warning("Ignoring malformed line from MCP server: %r", line)
                continue
            for item in incoming:
                if _is_server_request(item):
                    await self._write(_reply_to_server_request(item))
                elif _is_response_to(item, message["id"]):
                    return item

    async def notify(self, message: dict[str, Any]) -> None:
        await self._write(message)

    async def close(self) -> None:
        process = self._process
        if process.returncode is not None:
            return
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()
        try:
            await asyncio.wait_for(process.wait(), timeout=5)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()


class _SseTransport:
    """JSON-RPC posted to an endpoint, with replies read from an SSE stream."""

    def __init__(self, url: str) -> None:
        self._url = url
        self._http = httpx.AsyncClient(timeout=None)
        self._endpoint: Optional[str] = None
        self._pending: dict[Any, asyncio.Future[dict[str, Any]]] = {}
        self._failure: Optional[BaseException] = None
        self._ready: Optional[asyncio.Future[str]] = None
        self._reader: Optional[asyncio.Task[None]] = None

    async def connect(self) -> None:
        self._ready = asyncio.get_running_loop().create_future()
        self._reader = asyncio.create_task(self._read_stream())
        self._endpoint = await self._ready

    async def _read_stream(self) -> None:
        error: BaseException = ConnectionError("SSE stream closed")
        try:
            async with self._http.stream(
                "GET", self._url, headers={"Accept": "text/event-stream"}
            ) as response:
                response.raise_for_status()
                async for event, data in _iter_sse(response.aiter_lines()):
                    if event == "endpoint":
                        if self._ready is not None and not self._ready.done():
                            self._ready.set_result(urljoin(self._url, data.strip()))
                    elif event == "message":
                        await self._dispatch(data)
        except _TRANSPORT_ERRORS as exc:
            error = exc
        finally:
            self._fail(error)

    def _fail(self, error: BaseException) -> None:
        self._failure = error
        if self._ready is not None and not self._ready.done():
            self._ready.set_exception(error)
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

    async def _dispatch(self, data: str) -> None:
        try:
            incoming = _decode(data)
        except ValueError:
            logger.warning("Ignoring malformed SSE message: %r", data)
            return
        for item in incoming:
            if _is_server_request(item):
                await self._post(_reply_to_server_request(item))
            elif "id" in item:
                future = self._pending.pop(item["id"], None)
                if future is not None and not future.done():
                    future.set_result(item)

    async def _post(self, message: dict[str, Any]) -> None:
        if self._endpoint is None:
            raise ConnectionError("SSE endpoint is not known yet")
        response = await self._http.post(self._endpoint, json=message)
        response.raise_for_status()

    async def request(self, message: dict[str, Any]) -> dict[str, Any]:
        if self._failure is not None:
            raise ConnectionError(f"SSE stream is gone: {self._failure}")
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[message["id"]] = future
        try:
            await self._post(message)
        except BaseException:
            self._pending.pop(message["id"], None)
            raise
        return await future

    async def notify(self, message: dict[str, Any]) -> None:
        await self._post(message)

    async def close(self) -> None:
        if self._reader is not None and not self._reader.done():
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
        await self._http.aclose()


class _StreamableHttpTransport:
    """JSON-RPC over HTTP POST, with replies as JSON or as an SSE stream."""

    def __init__(self, url: str) -> None:
        self._url = url
        self._http = httpx.AsyncClient(timeout=None)
        self._session_id: Optional[str] = None

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json, text/event-stream"}
        if self._session_id is not None:
            headers["Mcp-Session-Id"] = self._session_id
        return headers

    def _remember_session(self, response: httpx.Response) -> None:
        session_id = response.headers.get("mcp-session-id")
        if session_id:
            self._session_id = session_id

    async def _handle(self, item: dict[str, Any], request_id: Any) -> Optional[dict[str, Any]]:
        if _is_server_request(item):
            await self.notify(_reply_to_server_request(item))
            return None
        return item if _is_response_to(item, request_id) else None

    async def request(self, message: dict[str, Any]) -> dict[str, Any]:
        async with self._http.stream(
            "POST", self._url, json=message, headers=self._headers()
        ) as response:
            response.raise_for_status()
            self._remember_session(response)
            content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
            if content_type == "text/event-stream":
                async for event, data in _iter_sse(response.aiter_lines()):
                    if event != "message":
                        continue
                    for item in _decode(data):
                        found = await self._handle(item, message["id"])
                        if found is not None:
                            return found
                raise ConnectionError("event stream ended before a response arrived")
            body = await response.aread()
            for item in _decode(body):
                found = await self._handle(item, message["id"])
                if found is not None:
                    return found
        raise ConnectionError("server sent no response to the request")

    async def notify(self, message: dict[str, Any]) -> None:
        response = await self._http.post(self._url, json=message, headers=self._headers())
        response.raise_for_status()
        self._remember_session(response)

    async def close(self) -> None:
        if self._session_id is not None:
            try:
                await self._http.delete(self._url, headers=self._headers())
            except httpx.HTTPError:
                pass
        await self._http.aclose()


class McpClient:
    """A JSON-RPC session with one MCP server; requests are serialised."""

    def __init__(self, transport: _Transport) -> None:
        self._transport = transport
        self._ids = itertools.count()
        self._lock = asyncio.Lock()
        self._closed = False
        self.server_info: Optional[dict[str, Any]] = None

    async def __aenter__(self) -> McpClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _request(self, method: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        if self._closed:
            raise McpSdkError(ConnectionError("client is closed"))
        message: dict[str, Any] = {"jsonrpc": "2.0", "id": next(self._ids), "method": method}
        if params is not None:
            message["params"] = params
        async with self._lock:
            try:
                response = await self._transport.request(message)
            except _TRANSPORT_ERRORS as exc:
                raise McpSdkError(exc) from exc
        error = response.get("error")
        if error is not None:
            if isinstance(error, Mapping):
                raise McpSdkError(_RpcError(error.get("code"), error.get("message"), error.get("data")))
            raise McpSdkError(_RpcError(None, error))
        result = response.get("result")
        if not isinstance(result, dict):
            raise McpSdkError(_RpcError(-32603, f"result of {method} is not an object"))
        return result

    async def _notify(self, method: str) -> None:
        try:
            await self._transport.notify({"jsonrpc": "2.0", "method": method})
        except _TRANSPORT_ERRORS as exc:
            raise McpSdkError(exc) from exc

    async def _initialize(self, client_info: dict[str, str]) -> None:
        self.server_info = await self._request(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": dict(client_info),
            },
        )
        await self._notify("notifications/initialized")

    async def list_tools(self) -> list[dict[str, Any]]:
        """Return the tool definitions the server offers."""
        result = await self._request("tools/list")
        tools = result.get("tools")
        if not isinstance(tools, list):
            raise McpSdkError(_RpcError(-32603, "tools/list result has no tool list"))
        return [tool for tool in tools if isinstance(tool, dict)]

    async def call_tool(self, name: str, arguments: Any) -> dict[str, Any]:
        """Call a tool; arguments are sent only when they are a JSON object."""
        params: dict[str, Any] = {"name": name}
        if isinstance(arguments, dict):
            params["arguments"] = arguments
        return await self._request("tools/call", params)

    async def close(self) -> None:
        """End the session; closing twice does nothing."""
        if self._closed:
            return
        self._closed = True
        await self._transport.close()


def tool_from_mcp_definition(client: McpClient, definition: Mapping[str, Any]) -> Tool:
    """Turn an MCP tool definition into a tool that calls the server."""
    name = definition.get("name")
    if not isinstance(name, str):
        raise McpToolConversionError("No name")
    description = definition.get("description")
    if not isinstance(description, str):
        raise McpToolConversionError("No description")
    schema = definition.get("inputSchema")
    if not isinstance(schema, Mapping):
        raise McpInvalidSchemaError(name)

    async def execute(args: Any) -> str:
        try:
            result = await client.call_tool(name, args)
        except McpIntegrationError as exc:
            raise ExecutionFailedError(f"MCP tool '{name}' execution failed: {exc}") from exc
        if result.get("isError") is True:
            raise ExecutionFailedError("tool call failed, mcp call error")
        output = ""
        for content in result.get("content") or []:
            if isinstance(content, Mapping) and content.get("type") == "text":
                text = content.get("text")
                if isinstance(text, str):
                    output = f"{output}\n{text}"
        return output

    builder = ToolBuilder().function_name(name).function_description(description).executor(execute)

    properties = schema.get("properties")
    if isinstance(properties, Mapping):
        for prop_name, details in properties.items():
            if not isinstance(details, Mapping):
                continue
            prop_type = details.get("type")
            prop_description = details.get("description")
            builder.add_property(
                prop_name,
                prop_type if isinstance(prop_type, str) else "string",
                prop_description if isinstance(prop_description, str) else "",
            )

    required = schema.get("required")
    if isinstance(required, list):
        for required_name in required:
            if isinstance(required_name, str):
                builder.add_required_property(required_name)

    try:
        return builder.build()
    except ToolBuilderError as exc:
        raise McpToolConversionError(str(exc)) from exc


async def _open(transport: _Transport, client_info: dict[str, str]) -> tuple[McpClient, list[dict[str, Any]]]:
    client = McpClient(transport)
    try:
        await client._initialize(client_info)
    except McpIntegrationError as exc:
        await client.close()
        raise McpConnectionError(str(exc)) from exc
    try:
        tools = await client.list_tools()
    except McpIntegrationError as exc:
        await client.close()
        raise McpDiscoveryError(str(exc)) from exc
    return client, tools


async def get_mcp_sse_tools(url: str) -> tuple[McpClient, list[dict[str, Any]]]:
    """Connect to an SSE server and list its tools."""
    transport = _SseTransport(url)
    try:
        await transport.connect()
    except _TRANSPORT_ERRORS as exc:
        await transport.close()
        raise McpConnectionError(str(exc)) from exc
    return await _open(transport, _HTTP_CLIENT_INFO)


async def get_mcp_streamable_http_tools(url: str) -> tuple[McpClient, list[dict[str, Any]]]:
    """Connect to a streamable HTTP server and list its tools."""
    return await _open(_StreamableHttpTransport(url), _HTTP_CLIENT_INFO)


async def get_mcp_stdio_tools(command: str) -> tuple[McpClient, list[dict[str, Any]]]:
    """Start a server from a space-separated command line and list its tools."""
    program, *args = command.split(" ")
    if not program:
        raise McpConnectionError("Invalid command.")
    try:
        transport = await _StdioTransport.spawn(program, args)
    except OSError as exc:
        raise McpConnectionError(str(exc)) from exc
    return await _open(transport, _STDIO_CLIENT_INFO)


async def get_mcp_tools(server: McpServerType) -> list[Tool]:
    """Connect to a server and return its tools, ready for an agent."""
    kind = McpServerKind(server.kind)
    if kind is McpServerKind.SSE:
        client, definitions = await get_mcp_sse_tools(server.target)
    elif kind is McpServerKind.STREAMABLE_HTTP:
        client, definitions = await get_mcp_streamable_http_tools(server.target)
    else:
        client, definitions = await get_mcp_stdio_tools(server.target)

    logger.info(
        "[MCP] Discovered %d raw tools from MCP server. Converting...", len(definitions)
    )
    tools: list[Tool] = []
    try:
        for definition in definitions:
            tool = tool_from_mcp_definition(client, definition)
            tools.append(tool)
            logger.info("[MCP] Registered agent tool for MCP action: %s", tool.name())
    except McpIntegrationError:
        await client.close()
        raise
    return tools