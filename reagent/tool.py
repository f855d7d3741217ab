"""Tool definitions the model can call, and a builder for them."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from .errors import (
    MissingExecutorError,
    MissingFunctionDescriptionError,
    MissingFunctionNameError,
)

AsyncToolFn = Callable[[Any], Union[Awaitable[str], str]]
"""An executor: takes the call's JSON arguments and returns the tool's text output."""


class ToolType(str, Enum):
    """The kind of tool offered to the model. Only functions are supported."""

    FUNCTION = "function"


@dataclass
class Property:
    """A single argument of a function, described JSON-schema style."""

    property_type: str
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.property_type, "description": self.description}


@dataclass
class FunctionArguments:
    """The argument schema of a function."""

    properties: dict[str, Property] = field(default_factory=dict)
    required: list[str] = field(default_factory=list)
    param_type: str = "object"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.param_type,
            "properties": {name: prop.to_dict() for name, prop in self.properties.items()},
            "required": list(self.required),
        }


@dataclass
class Function:
    """A function's name, description and arguments."""

    name: str
    description: str
    arguments: FunctionArguments

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "arguments": self.arguments.to_dict(),
        }


@dataclass
class Tool:
    """A callable tool: its definition for the model and the code that runs it."""

    function: Function
    executor: AsyncToolFn = field(repr=False)
    tool_type: ToolType = ToolType.FUNCTION

    async def execute(self, args: Any) -> str:
        """Run the executor with the given arguments and return its output."""
        result = self.executor(args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def name(self) -> str:
        """The name of the tool's function."""
        return self.function.name

    def to_dict(self) -> dict[str, Any]:
        return {"type": ToolType(self.tool_type).value, "function": self.function.to_dict()}


class ToolBuilder:
    """Fluent builder for a :class:`Tool`."""

    def __init__(self) -> None:
        self._tool_type: ToolType = ToolType.FUNCTION
        self._function_name: Optional[str] = None
        self._function_description: Optional[str] = None
        self._properties: dict[str, Property] = {}
        self._required: list[str] = []
        self._executor: Optional[AsyncToolFn] = None

    def __repr__(self) -> str:
        return (
            f"ToolBuilder(tool_type={self._tool_type!r}, "
            f"function_name={self._function_name!r}, "
            f"function_description={self._function_description!r}, "
            f"function_properties={self._properties!r}, "
            f"function_required={self._required!r}, "
            f"executor={'<async_fn>' if self._executor is not None else None})"
        )

    def tool_type(self, tool_type: ToolType) -> ToolBuilder:
        self._tool_type = ToolType(tool_type)
        return self

    def function_name(self, name: str) -> ToolBuilder:
        self._function_name = name
        return self

    def function_description(self, description: str) -> ToolBuilder:
        self._function_description = description
        return self

    def add_property(self, name: str, property_type: str, description: str) -> ToolBuilder:
        self._properties[name] = Property(property_type, description)
        return self

    def add_required_property(self, name: str) -> ToolBuilder:
        self._required.append(name)
        return self

    def executor(self, executor: AsyncToolFn) -> ToolBuilder:
        self._executor = executor
        return self

    def build(self) -> Tool:
        """Create the tool, raising if a required part is missing."""
        if self._function_name is None:
            raise MissingFunctionNameError()
        if self._function_description is None:
            raise MissingFunctionDescriptionError()
        if self._executor is None:
            raise MissingExecutorError()
        arguments = FunctionArguments(
            properties=dict(self._properties),
            required=list(self._required),
        )
        return Tool(
            function=Function(self._function_name, self._function_description, arguments),
            executor=self._executor,
            tool_type=self._tool_type,
        )