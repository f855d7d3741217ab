"""Demo: a main agent that asks a second, structured-output agent about the weather."""

from __future__ import annotations

import argparse
import asyncio
from typing import Any, Optional, Sequence

from .agent import Agent, AgentBuilder
from .errors import AgentError, ArgumentParsingError, ExecutionFailedError
from .mcp import McpServerType
from .tool import Tool, ToolBuilder

WEATHER_SCHEMA = """
{
  "type":"object",
  "properties":{
    "windy":{"type":"boolean"},
    "temperature":{"type":"integer"},
    "description":{"type":"string"}
  },
  "required":["windy","temperature","description"]
}
"""

MEMORY_SERVER_COMMAND = "npx -y @modelcontextprotocol/server-memory"

PROMPTS = (
    "Say hello",
    "What is the current weather in Koper?",
    "What do you remember?",
)


def build_weather_tool(weather_agent: Agent) -> Tool:
    """A tool that asks ``weather_agent`` for the weather at a location."""
    lock = asyncio.Lock()

    async def run(args: Any) -> str:
        location = args.get("location") if isinstance(args, dict) else None
        if not isinstance(location, str):
            raise ArgumentParsingError("Missing 'location' argument")
        async with lock:
            try:
                reply = await weather_agent.invoke(
                    f"/no_think What is the weather in {location}?"
                )
            except AgentError as exc:
                raise ExecutionFailedError(str(exc)) from exc
        return reply.content or ""

    return (
        ToolBuilder()
        .function_name("get_current_weather")
        .function_description("Returns a weather forecast for a given location")
        .add_property("location", "string", "City name")
        .add_required_property("location")
        .executor(run)
        .build()
    )


async def _run() -> None:
    weather_agent = await (
        AgentBuilder()
        .set_model("granite3-moe")
        .set_system_prompt(
            "/no_think \nYou make up weather info in JSON. You always say it's sowing"
        )
        .set_response_format(WEATHER_SCHEMA)
        .build()
    )
    agent = await (
        AgentBuilder()
        .set_model("qwen3:30b")
        .set_system_prompt("You are a helpful, assistant.")
        .add_mcp_server(McpServerType.stdio(MEMORY_SERVER_COMMAND))
        .add_tool(build_weather_tool(weather_agent))
        .build()
    )
    async with weather_agent, agent:
        for prompt in PROMPTS:
            reply = await agent.invoke(prompt)
            print(f"\n-> Agent: {reply.content or ''}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the demo conversation against a local Ollama server."""
    parser = argparse.ArgumentParser(
        description="Chat with an agent that has a weather tool and an MCP memory server."
    )
    parser.parse_args(argv)
    asyncio.run(_run())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())