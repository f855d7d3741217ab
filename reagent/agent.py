"""Chat agents that run a tool-calling loop against an Ollama server."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from .client import OllamaClient
from .errors import (
    AgentError,
    InvalidJsonSchemaError,
    McpBuildError,
    McpIntegrationError,
    ModelNotSetError,
    OllamaError,
    ToolExecutionError,
)
from .mcp import McpServerType, get_mcp_tools
from .messages import BaseRequest, ChatRequest, Message, ToolCall
from .tool import Tool

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_URL = "http://localhost"
DEFAULT_OLLAMA_PORT = 11434
DEFAULT_SYSTEM_PROMPT = "You are a helpful agent."
KEEP_ALIVE = "5m"


class Agent:
    """A conversation with one model, which may call the agent's tools."""

    def __init__(
        self,
        model: str,
        ollama_host: str,
        ollama_port: int,
        system_prompt: str,
        tools: Optional[list[Tool]],
        response_format: Any,
    ) -> None:
        self.model = model
        self.system_prompt = system_prompt
        self.tools = tools
        self.response_format = response_format
        self.history: list[Message] = [Message.system(system_prompt)]
        self._client = OllamaClient(f"{ollama_host}:{ollama_port}")

    def __repr__(self) -> str:
        return (
            f"Agent(model={self.model!r}, system_prompt={self.system_prompt!r}, "
            f"tools={self.tools!r}, response_format={self.response_format!r}, "
            f"history={len(self.history)} messages)"
        )

    async def __aenter__(self) -> Agent:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self._client.aclose()

    def clear_history(self) -> None:
        """Forget the conversation, keeping only the system prompt."""
        self.history = [Message.system(self.system_prompt)]

    async def invoke(self, prompt: str) -> Message:
        """Send a prompt and run tool calls until the model answers without any."""
        self.history.append(Message.user(str(prompt)))
        while True:
            request = ChatRequest(
                base=BaseRequest(
                    model=self.model,
                    format=self.response_format,
                    stream=False,
                    keep_alive=KEEP_ALIVE,
                ),
                messages=list(self.history),
                tools=list(self.tools) if self.tools is not None else None,
            )
            try:
                response = await self._client.chat(request)
            except OllamaError as exc:
                raise AgentError(exc) from exc

            message = response.message
            self.history.append(message)
            if message.tool_calls is None:
                return message
            self.history.extend(await self._call_tools(message.tool_calls))

    async def _call_tools(self, tool_calls: list[ToolCall]) -> list[Message]:
        if self.tools is None:
            return [Message.tool("Tool", "Could not find tool with same name. Try again.")]

        messages: list[Message] = []
        for call in tool_calls:
            name = call.function.name
            call_id = call.id if call.id is not None else name
            for tool in self.tools:
                if tool.name() != name:
                    continue
                try:
                    output = await tool.execute(call.function.arguments)
                except ToolExecutionError as exc:
                    logger.error("Tool %s execution failed: %s", name, exc)
                    messages.append(
                        Message.tool(call_id, f"Error executing tool {name}: {exc}")
                    )
                else:
                    messages.append(Message.tool(output, call_id))
        return messages


class AgentBuilder:
    """Fluent builder for an :class:`Agent`."""

    def __init__(self) -> None:
        self._model: Optional[str] = None
        self._ollama_url: Optional[str] = None
        self._ollama_port: Optional[int] = None
        self._system_prompt: Optional[str] = None
        self._tools: Optional[list[Tool]] = None
        self._response_format: Optional[str] = None
        self._mcp_servers: list[McpServerType] = []

    def set_model(self, model: str) -> AgentBuilder:
        self._model = str(model)
        return self

    def set_ollama_endpoint(self, url: str) -> AgentBuilder:
        self._ollama_url = str(url)
        return self

    def set_ollama_port(self, port: int) -> AgentBuilder:
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"port {port} is out of range")
        self._ollama_port = port
        return self

    def set_system_prompt(self, prompt: str) -> AgentBuilder:
        self._system_prompt = str(prompt)
        return self

    def set_response_format(self, response_format: str) -> AgentBuilder:
        self._response_format = str(response_format)
        return self

    def add_tool(self, tool: Tool) -> AgentBuilder:
        if self._tools is None:
            self._tools = []
        self._tools.append(tool)
        return self

    def add_mcp_server(self, server: McpServerType) -> AgentBuilder:
        self._mcp_servers.append(server)
        return self

    async def build(self) -> Agent:
        """Create the agent, loading tools from every configured MCP server."""
        if self._model is None:
            raise ModelNotSetError()

        response_format: Any = None
        if self._response_format is not None:
            schema_text = self._response_format.strip()
            try:
                response_format = json.loads(schema_text)
            except ValueError as exc:
                raise InvalidJsonSchemaError(
                    f"Failed to parse provided JSON schema string: {schema_text}. Error: {exc}"
                ) from exc

        tools = list(self._tools) if self._tools is not None else None
        for server in self._mcp_servers:
            try:
                mcp_tools = await get_mcp_tools(server)
            except McpIntegrationError as exc:
                raise McpBuildError(exc) from exc
            if tools is not None:
                tools.extend(mcp_tools)
            elif mcp_tools:
                tools = list(mcp_tools)

        return Agent(
            self._model,
            self._ollama_url if self._ollama_url is not None else DEFAULT_OLLAMA_URL,
            self._ollama_port if self._ollama_port is not None else DEFAULT_OLLAMA_PORT,
            self._system_prompt if self._system_prompt is not None else DEFAULT_SYSTEM_PROMPT,
            tools,
            response_format,
        )