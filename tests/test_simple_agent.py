import json

import httpx
import pytest
import respx

from reagent.agent import Agent, AgentBuilder
from reagent.errors import ArgumentParsingError, ExecutionFailedError
from reagent.simple_agent import WEATHER_SCHEMA, build_weather_tool

CHAT_URL = "http://localhost:11434/api/chat"


def _weather_agent():
    return Agent(
        "granite3-moe",
        "http://localhost",
        11434,
        "You make up weather info in JSON.",
        None,
        json.loads(WEATHER_SCHEMA),
    )


def test_weather_tool_definition():
    tool = build_weather_tool(_weather_agent())
    data = tool.to_dict()
    assert tool.name() == "get_current_weather"
    assert data["type"] == "function"
    assert data["function"]["description"] == "Returns a weather forecast for a given location"
    assert data["function"]["arguments"]["properties"] == {
        "location": {"type": "string", "description": "City name"}
    }
    assert data["function"]["arguments"]["required"] == ["location"]


@pytest.mark.asyncio
async def test_weather_schema_requires_all_fields():
    agent = await (
        AgentBuilder()
        .set_model("granite3-moe")
        .set_response_format(WEATHER_SCHEMA)
        .build()
    )
    schema = agent.response_format
    assert schema["type"] == "object"
    assert set(schema["required"]) == {"windy", "temperature", "description"}
    assert set(schema["required"]) == set(schema["properties"])


@pytest.mark.asyncio
async def test_weather_tool_missing_location():
    tool = build_weather_tool(_weather_agent())
    with pytest.raises(ArgumentParsingError) as info:
        await tool.execute({})
    assert "Missing 'location' argument" in str(info.value)


@pytest.mark.asyncio
async def test_weather_tool_asks_the_weather_agent():
    agent = _weather_agent()
    tool = build_weather_tool(agent)
    answer = '{"windy": false, "temperature": 20, "description": "sowing"}'
    with respx.mock() as router:
        route = router.post(CHAT_URL).mock(
            return_value=httpx.Response(
                200,
                json={
                    "model": "granite3-moe",
                    "created_at": "now",
                    "message": {"role": "assistant", "content": answer},
                    "done": True,
                },
            )
        )
        result = await tool.execute({"location": "Koper"})
    assert result == answer
    body = json.loads(route.calls[0].request.content)
    assert body["messages"][-1]["content"] == "/no_think What is the weather in Koper?"
    assert body["format"] == json.loads(WEATHER_SCHEMA)


@pytest.mark.asyncio
async def test_weather_tool_reports_agent_failure():
    tool = build_weather_tool(_weather_agent())
    with respx.mock() as router:
        router.post(CHAT_URL).mock(return_value=httpx.Response(503, text="down"))
        with pytest.raises(ExecutionFailedError) as info:
            await tool.execute({"location": "Koper"})
    assert str(info.value).startswith("Tool execution failed: Ollama API Error:")