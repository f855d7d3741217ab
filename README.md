# reagent

A small asyncio library for building chat agents on top of a local Ollama
server. An agent keeps a chat history, can call your own Python tools, and can
take in the tools offered by MCP (Model Context Protocol) servers reached over
SSE, streamable HTTP or a child process speaking JSON-RPC on stdio.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `reagent.agent`: `Agent` and `AgentBuilder`.
- `reagent.tool`: `Tool`, `ToolBuilder`, `Function`, `FunctionArguments`,
  `Property`, `ToolType`.
- `reagent.mcp`: `McpServerType`, `McpServerKind`, `McpClient`,
  `get_mcp_tools` and the per-transport helpers `get_mcp_sse_tools`,
  `get_mcp_streamable_http_tools`, `get_mcp_stdio_tools`, and
  `tool_from_mcp_definition`.
- `reagent.client`: `OllamaClient`, an async HTTP client for the chat,
  generate and embeddings endpoints, plus `heartbeat()`.
- `reagent.messages`: the request and response models (`Message`, `Role`,
  `ToolCall`, `ChatRequest`, `ChatResponse`, `GenerateRequest`,
  `GenerateResponse`, `EmbeddingsRequest`, `EmbeddingsResponse`, ...), each
  with `to_dict` or `from_dict`.
- `reagent.errors`: the exception hierarchy.
- `reagent.simple_agent`: the example program.

## Building an agent

```python
import asyncio
from reagent.agent import AgentBuilder

async def main():
    agent = await (
        AgentBuilder()
        .set_model("qwen3:30b")
        .set_system_prompt("You are a helpful assistant.")
        .build()
    )
    async with agent:
        reply = await agent.invoke("Say hello")
        print(reply.content or "")

asyncio.run(main())
```

Defaults: the Ollama endpoint is `http://localhost`, the port `11434` and the
system prompt `"You are a helpful agent."`. `build()` raises
`ModelNotSetError` when no model was set. `set_response_format` takes a JSON
schema as a string; it is parsed at build time and a string that is not valid
JSON raises `InvalidJsonSchemaError`. `set_ollama_port` raises `ValueError`
for a port outside 0–65535.

`Agent.invoke(prompt)` appends the prompt to `agent.history`, sends the whole
history (with `stream` off and `keep_alive` of `"5m"`), and returns the
model's `Message`. Errors from the server are raised as `AgentError`.
`Agent.clear_history()` resets the history to just the system prompt. Using the
agent as an async context manager closes its HTTP connections on exit.

## Tools

```python
from reagent.tool import ToolBuilder
from reagent.errors import ArgumentParsingError

async def get_weather(args):
    location = args.get("location")
    if not isinstance(location, str):
        raise ArgumentParsingError("Missing 'location' argument")
    return f"It is sunny in {location}."

weather_tool = (
    ToolBuilder()
    .function_name("get_current_weather")
    .function_description("Returns a weather forecast for a given location")
    .add_property("location", "string", "City name")
    .add_required_property("location")
    .executor(get_weather)
    .build()
)
```

An executor receives the call's JSON arguments and returns a string; it may be
a plain function or a coroutine function. A tool needs a name, a description
and an executor; `build()` raises `MissingFunctionNameError`,
`MissingFunctionDescriptionError` or `MissingExecutorError` otherwise (all
subclasses of `ToolBuilderError`). Add a tool with `AgentBuilder.add_tool(...)`.

When the model answers with tool calls, the agent runs every tool whose name
matches, adds the results to the history as tool messages and asks the model
again, repeating until it answers without a tool call. A `ToolExecutionError`
raised by an executor is logged and turned into a tool message carrying the
error text instead of stopping the conversation.

## MCP servers

```python
from reagent.mcp import McpServerType

builder = builder.add_mcp_server(
    McpServerType.stdio("npx -y @modelcontextprotocol/server-memory")
)
```

`McpServerType.stdio(command)` starts the command (split on single spaces) as
a child process. `McpServerType.sse(url)` and
`McpServerType.streamable_http(url)` connect to remote servers. When `build()`
runs, each server is initialised, its tools are listed, and every tool becomes
an agent tool whose executor calls the server and joins the text parts of the
result. A tool listed without a description cannot be converted. Failures
while building are raised as `McpBuildError`, wrapping the underlying
`McpIntegrationError` (`McpConnectionError`, `McpDiscoveryError`,
`McpToolConversionError`, ...).

## Example program

The package ships an example that builds a weather-inventing agent with a
structured response format, wraps it as the `get_current_weather` tool for a
second agent, adds an MCP memory server, and runs three prompts:

```
reagent-simple-agent
```

or `python -m reagent.simple_agent`. It needs a running Ollama server on
`localhost:11434` with the models `granite3-moe` and `qwen3:30b`, and `npx` on
the path.

## What it does not do

- Responses are never streamed: the agent and the client ask for and read one
  complete JSON reply per request.
- MCP support covers initialising a session, listing tools and calling them;
  resources, prompts and other MCP features are not used.
- The agent keeps its history in memory only; nothing is stored between runs.