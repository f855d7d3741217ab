[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "reagent"
version = "0.1.0"
description = "A small asyncio library for building Ollama-powered AI agents with MCP servers and custom tools"
requires-python = ">=3.10"
dependencies = [
    "httpx",
]
keywords = ["llm", "ollama", "agent", "mcp", "tool-calling", "asyncio"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "respx",
]

[project.scripts]
reagent-simple-agent = "reagent.simple_agent:main"

[tool.hatch.build.targets.wheel]
packages = ["reagent"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
