import json

import httpx
import pytest
import respx

from reagent.agent import Agent, AgentBuilder
from reagent.errors import (
    AgentError,
    ArgumentParsingError,
    InvalidJsonSchemaError,
    McpBuildError,
    McpConnectionError,
    ModelNotSetError,
    OllamaApiError,
)
from reagent.mcp import McpServerType
from reagent.messages import Role
from reagent.tool import ToolBuilder

CHAT_URL = "http://localhost:11434/api/chat"


def _reply(message):
    return httpx.Response(
        200,
        json={"model": "test-model", "created_at": "now", "message": message, "done": True},
    )


def _weather_tool():
    async def run(args):
        if not isinstance(args, dict) or "location" not in args:
            raise ArgumentParsingError("Missing 'location' argument")
        return f"sunny in {args['location']}"

    return (
        ToolBuilder()
        .function_name("get_weather")
        .function_description("Weather lookup")
        .add_property("location", "string", "City name")
        .add_required_property("location")
        .executor(run)
        .build()
    )


@pytest.mark.asyncio
async def test_agent_builder_defaults():
    with pytest.raises(ModelNotSetError):
        await AgentBuilder().build()

    agent = await AgentBuilder().set_model("test-model").build()
    assert agent.model == "test-model"
    assert agent.response_format is None
    assert agent.tools is None or agent.tools == []
    assert agent.history[0].content == "You are a helpful agent."


@pytest.mark.asyncio
async def test_agent_builder_custom_settings():
    agent = await (
        AgentBuilder()
        .set_model("custom-model")
        .set_ollama_endpoint("http://custom-ollama")
        .set_ollama_port(12345)
        .set_system_prompt("Custom prompt")
        .set_response_format('{"type": "object", "properties": {"key": {"type": "string"}}}')
        .build()
    )
    assert agent.model == "custom-model"
    assert agent.history[0].content == "Custom prompt"
    assert agent.response_format is not None
    assert agent.response_format["type"] == "object"

    with respx.mock() as router:
        route = router.post("http://custom-ollama:12345/api/chat").mock(
            return_value=_reply({"role": "assistant", "content": "ok"})
        )
        reply = await agent.invoke("hi")
    assert reply.content == "ok"
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_invalid_response_format():
    builder = AgentBuilder().set_model("m").set_response_format("  {not json  ")
    with pytest.raises(InvalidJsonSchemaError) as info:
        await builder.build()
    assert str(info.value).startswith(
        "Invalid JSON schema provided: Failed to parse provided JSON schema string: {not json."
    )


@pytest.mark.asyncio
async def test_mcp_failure_is_wrapped():
    builder = AgentBuilder().set_model("m").add_mcp_server(
        McpServerType.stdio("reagent-missing-program-for-tests")
    )
    with pytest.raises(McpBuildError) as info:
        await builder.build()
    assert isinstance(info.value.error, McpConnectionError)
    assert str(info.value).startswith("Mcp error: Failed to connect to MCP server:")


def test_port_out_of_range():
    with pytest.raises(ValueError):
        AgentBuilder().set_ollama_port(70000)


@pytest.mark.asyncio
async def test_invoke_sends_request_and_records_history():
    agent = await AgentBuilder().set_model("m").set_response_format('{"type":"object"}').build()
    with respx.mock() as router:
        route = router.post(CHAT_URL).mock(
            return_value=_reply({"role": "assistant", "content": "hello"})
        )
        reply = await agent.invoke("Say hello")

    assert reply.content == "hello"
    body = json.loads(route.calls[0].request.content)
    assert body["model"] == "m"
    assert body["stream"] is False
    assert body["keep_alive"] == "5m"
    assert body["format"] == {"type": "object"}
    assert "tools" not in body
    assert body["messages"] == [
        {"role": "system", "content": "You are a helpful agent."},
        {"role": "user", "content": "Say hello"},
    ]
    assert [m.role for m in agent.history] == [Role.SYSTEM, Role.USER, Role.ASSISTANT]


@pytest.mark.asyncio
async def test_invoke_runs_tool_calls():
    agent = await AgentBuilder().set_model("m").add_tool(_weather_tool()).build()
    call = {"function": {"name": "get_weather", "arguments": {"location": "Koper"}}}
    with respx.mock() as router:
        route = router.post(CHAT_URL).mock(
            side_effect=[
                _reply({"role": "assistant", "content": "", "tool_calls": [call]}),
                _reply({"role": "assistant", "content": "It is sunny."}),
            ]
        )
        reply = await agent.invoke("Weather in Koper?")

    assert reply.content == "It is sunny."
    assert route.call_count == 2
    second = json.loads(route.calls[1].request.content)
    assert second["messages"][-1] == {
        "role": "tool",
        "content": "sunny in Koper",
        "tool_call_id": "get_weather",
    }
    assert second["tools"][0]["function"]["name"] == "get_weather"
    assert len(agent.history) == 5


@pytest.mark.asyncio
async def test_invoke_uses_call_id_when_given():
    agent = await AgentBuilder().set_model("m").add_tool(_weather_tool()).build()
    call = {"id": "call-1", "function": {"name": "get_weather", "arguments": {"location": "Piran"}}}
    with respx.mock() as router:
        router.post(CHAT_URL).mock(
            side_effect=[
                _reply({"role": "assistant", "tool_calls": [call]}),
                _reply({"role": "assistant", "content": "done"}),
            ]
        )
        await agent.invoke("go")
    tool_message = agent.history[3]
    assert tool_message.role == Role.TOOL
    assert tool_message.content == "sunny in Piran"
    assert tool_message.tool_call_id == "call-1"


@pytest.mark.asyncio
async def test_tool_failure_is_reported_to_model():
    agent = await AgentBuilder().set_model("m").add_tool(_weather_tool()).build()
    call = {"function": {"name": "get_weather", "arguments": {}}}
    with respx.mock() as router:
        router.post(CHAT_URL).mock(
            side_effect=[
                _reply({"role": "assistant", "tool_calls": [call]}),
                _reply({"role": "assistant", "content": "sorry"}),
            ]
        )
        await agent.invoke("go")
    tool_message = agent.history[3]
    assert tool_message.role == Role.TOOL
    assert tool_message.content == "get_weather"
    assert tool_message.tool_call_id == (
        "Error executing tool get_weather: "
        "Tool argument parsing error: Missing 'location' argument"
    )


@pytest.mark.asyncio
async def test_tool_call_without_tools():
    agent = await AgentBuilder().set_model("m").build()
    call = {"function": {"name": "anything", "arguments": {}}}
    with respx.mock() as router:
        router.post(CHAT_URL).mock(
            side_effect=[
                _reply({"role": "assistant", "tool_calls": [call]}),
                _reply({"role": "assistant", "content": "fine"}),
            ]
        )
        reply = await agent.invoke("go")
    assert reply.content == "fine"
    assert agent.history[3].content == "Tool"
    assert agent.history[3].tool_call_id == "Could not find tool with same name. Try again."


@pytest.mark.asyncio
async def test_api_error_becomes_agent_error():
    agent = await AgentBuilder().set_model("m").build()
    with respx.mock() as router:
        router.post(CHAT_URL).mock(return_value=httpx.Response(500, text="boom"))
        with pytest.raises(AgentError) as info:
            await agent.invoke("go")
    assert isinstance(info.value.error, OllamaApiError)
    assert str(info.value).startswith("Ollama API Error: API Error: Request failed: 500")


@pytest.mark.asyncio
async def test_clear_history_keeps_system_prompt():
    agent = Agent("m", "http://localhost", 11434, "Be brief.", None, None)
    with respx.mock() as router:
        router.post(CHAT_URL).mock(return_value=_reply({"role": "assistant", "content": "x"}))
        await agent.invoke("one")
    assert len(agent.history) == 3
    agent.clear_history()
    assert len(agent.history) == 1
    assert agent.history[0].role == Role.SYSTEM
    assert agent.history[0].content == "Be brief."