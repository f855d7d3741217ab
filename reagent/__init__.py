"""Build Ollama-powered chat agents with custom tools and MCP servers."""

__version__ = "0.1.0"