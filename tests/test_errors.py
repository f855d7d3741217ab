import pytest

from reagent.errors import (
    AgentBuildError,
    AgentError,
    ArgumentParsingError,
    ExecutionFailedError,
    InvalidJsonSchemaError,
    McpBuildError,
    McpConnectionError,
    McpDiscoveryError,
    McpIntegrationError,
    McpInvalidSchemaError,
    McpSdkError,
    McpToolConversionError,
    MissingExecutorError,
    MissingFunctionDescriptionError,
    MissingFunctionNameError,
    ModelNotSetError,
    OllamaApiError,
    OllamaError,
    OllamaRequestError,
    OllamaSerializationError,
    ToolBuilderError,
    ToolExecutionError,
    ToolNotFoundError,
)


@pytest.mark.parametrize(
    ("cls", "prefix", "base"),
    [
        (OllamaRequestError, "Request Error: ", OllamaError),
        (OllamaApiError, "API Error: ", OllamaError),
        (OllamaSerializationError, "Serialization Error: ", OllamaError),
        (ArgumentParsingError, "Tool argument parsing error: ", ToolExecutionError),
        (ExecutionFailedError, "Tool execution failed: ", ToolExecutionError),
        (ToolNotFoundError, "Tool not found: ", ToolExecutionError),
        (McpConnectionError, "Failed to connect to MCP server: ", McpIntegrationError),
        (McpDiscoveryError, "Failed to discover MCP actions: ", McpIntegrationError),
        (
            McpToolConversionError,
            "Failed to convert MCP action to agent tool: ",
            McpIntegrationError,
        ),
        (
            McpInvalidSchemaError,
            "MCP action input schema is missing or not an object: ",
            McpIntegrationError,
        ),
        (InvalidJsonSchemaError, "Invalid JSON schema provided: ", AgentBuildError),
    ],
)
def test_detail_errors_format_and_hierarchy(cls, prefix, base):
    err = cls("boom")
    assert str(err) == prefix + "boom"
    assert err.detail == "boom"
    assert isinstance(err, base)


@pytest.mark.parametrize(
    ("cls", "message"),
    [
        (MissingFunctionNameError, "Function name is required."),
        (MissingFunctionDescriptionError, "Function description is required."),
        (MissingExecutorError, "Executor function is required for the tool."),
    ],
)
def test_tool_builder_errors(cls, message):
    err = cls()
    assert str(err) == message
    assert isinstance(err, ToolBuilderError)


def test_model_not_set_message():
    err = ModelNotSetError()
    assert str(err) == "Model not set."
    with pytest.raises(AgentBuildError):
        raise err


def test_agent_error_wraps_ollama_error():
    inner = OllamaApiError("down")
    err = AgentError(inner)
    assert str(err) == "Ollama API Error: API Error: down"
    assert err.error is inner
    assert err.__cause__ is inner


def test_mcp_build_error_wraps_integration_error():
    inner = McpConnectionError("refused")
    err = McpBuildError(inner)
    assert str(err) == "Mcp error: Failed to connect to MCP server: refused"
    assert isinstance(err, AgentBuildError)
    assert err.__cause__ is inner


def test_mcp_sdk_error_wraps_any_exception():
    inner = RuntimeError("broken pipe")
    err = McpSdkError(inner)
    assert str(err) == "MCP SDK error: broken pipe"
    assert isinstance(err, McpIntegrationError)
    assert err.error is inner


def test_invalid_schema_is_value_error():
    err = InvalidJsonSchemaError("not json")
    assert isinstance(err, ValueError)
    assert str(err) == "Invalid JSON schema provided: not json"
    assert err.detail == "not json"