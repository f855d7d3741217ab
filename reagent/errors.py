"""Exception hierarchy for the Ollama client, tools, agents and MCP integration."""

from __future__ import annotations


class _DescribedError(Exception):
    """An error whose message is a fixed prefix followed by a detail."""

    _template = "{}"

    def __init__(self, detail: object = "") -> None:
        self.detail = detail
        super().__init__(self._template.format(detail))


class _WrappingError(_DescribedError):
    """An error that carries another exception as its cause."""

    def __init__(self, error: BaseException) -> None:
        self.error = error
        super().__init__(error)
        self.__cause__ = error


# --- Ollama API -------------------------------------------------------------


class OllamaError(_DescribedError):
    """Base class for errors raised while talking to the Ollama API."""


class OllamaRequestError(OllamaError):
    """The HTTP request could not be sent or completed."""

    _template = "Request Error: {}"


class OllamaApiError(OllamaError):
    """The server answered with an error or could not be reached."""

    _template = "API Error: {}"


class OllamaSerializationError(OllamaError):
    """A response body could not be decoded."""

    _template = "Serialization Error: {}"


# --- Tool execution ---------------------------------------------------------


class ToolExecutionError(_DescribedError):
    """Base class for failures raised by tool executors."""


class ArgumentParsingError(ToolExecutionError):
    """The arguments handed to a tool were missing or malformed."""

    _template = "Tool argument parsing error: {}"


class ExecutionFailedError(ToolExecutionError):
    """The tool ran but did not succeed."""

    _template = "Tool execution failed: {}"


class ToolNotFoundError(ToolExecutionError):
    """No tool with the requested name is available."""

    _template = "Tool not found: {}"


# --- Tool building ----------------------------------------------------------


class ToolBuilderError(Exception):
    """Base class for errors raised when a tool definition is incomplete."""

    message = "Tool definition is incomplete."

    def __init__(self) -> None:
        super().__init__(self.message)


class MissingFunctionNameError(ToolBuilderError):
    """The tool has no function name."""

    message = "Function name is required."


class MissingFunctionDescriptionError(ToolBuilderError):
    """The tool has no function description."""

    message = "Function description is required."


class MissingExecutorError(ToolBuilderError):
    """The tool has no executor."""

    message = "Executor function is required for the tool."


# --- MCP integration --------------------------------------------------------


class McpIntegrationError(_DescribedError):
    """Base class for errors raised while integrating an MCP server."""


class McpSdkError(_WrappingError, McpIntegrationError):
    """An error raised by the MCP protocol layer."""

    _template = "MCP SDK error: {}"


class McpConnectionError(McpIntegrationError):
    """The MCP server could not be started or connected to."""

    _template = "Failed to connect to MCP server: {}"


class McpDiscoveryError(McpIntegrationError):
    """The MCP server's tools could not be listed."""

    _template = "Failed to discover MCP actions: {}"


class McpToolConversionError(McpIntegrationError):
    """An MCP tool definition could not be turned into an agent tool."""

    _template = "Failed to convert MCP action to agent tool: {}"


class McpInvalidSchemaError(McpIntegrationError):
    """An MCP tool's input schema is missing or not an object."""

    _template = "MCP action input schema is missing or not an object: {}"


# --- Agents -----------------------------------------------------------------


class AgentError(_WrappingError):
    """An agent failed while talking to the Ollama API."""

    _template = "Ollama API Error: {}"


class AgentBuildError(_DescribedError):
    """Base class for errors raised while building an agent."""


class InvalidJsonSchemaError(AgentBuildError, ValueError):
    """The response format is not valid JSON."""

    _template = "Invalid JSON schema provided: {}"


class ModelNotSetError(AgentBuildError):
    """No model was configured for the agent."""

    def __init__(self) -> None:
        super().__init__()
        self.args = ("Model not set.",)

    def __str__(self) -> str:
        return "Model not set."


class McpBuildError(_WrappingError, AgentBuildError):
    """An MCP server's tools could not be loaded while building an agent."""

    _template = "Mcp error: {}"