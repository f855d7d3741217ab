"""Wire models for the Ollama chat, generate and embeddings endpoints."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

_FUNCTION_TYPE = "function"

_STAT_FIELDS = (
    "total_duration",
    "load_duration",
    "prompt_eval_count",
    "prompt_eval_duration",
    "eval_count",
    "eval_duration",
)


def _as_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object for {what}")
    return data


def _require(data: Mapping[str, Any], key: str) -> Any:
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    return data[key]


def _check(value: Any, key: str, kind: type) -> Any:
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"field `{key}` must be an integer")
    elif kind is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"field `{key}` must be a number")
        return float(value)
    elif not isinstance(value, kind):
        raise ValueError(f"field `{key}` must be of type {kind.__name__}")
    return value


def _required(data: Mapping[str, Any], key: str, kind: type) -> Any:
    return _check(_require(data, key), key, kind)


def _optional(data: Mapping[str, Any], key: str, kind: type) -> Any:
    value = data.get(key)
    return None if value is None else _check(value, key, kind)


def _optional_list(data: Mapping[str, Any], key: str, kind: type) -> Optional[list]:
    values = _optional(data, key, list)
    if values is None:
        return None
    return [_check(v, key, kind) for v in values]


def _unsigned(data: Mapping[str, Any], key: str) -> Optional[int]:
    value = _optional(data, key, int)
    if value is not None and value < 0:
        raise ValueError(f"field `{key}` must not be negative")
    return value


def _stats(data: Mapping[str, Any]) -> dict[str, Optional[int]]:
    return {name: _unsigned(data, name) for name in _STAT_FIELDS}


def _without_none(pairs: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in pairs.items() if v is not None}


class Role(str, Enum):
    """The sender of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass
class ToolCallFunction:
    """The name and arguments of a function the model wants called."""

    name: str
    arguments: Any

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "arguments": self.arguments}

    @classmethod
    def from_dict(cls, data: Any) -> ToolCallFunction:
        data = _as_mapping(data, "tool call function")
        return cls(name=_required(data, "name", str), arguments=_require(data, "arguments"))


@dataclass
class ToolCall:
    """A tool call requested by the model."""

    function: ToolCallFunction
    id: Optional[str] = None
    type: str = _FUNCTION_TYPE

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.id is not None:
            out["id"] = self.id
        if self.type != _FUNCTION_TYPE:
            out["type"] = self.type
        out["function"] = self.function.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Any) -> ToolCall:
        data = _as_mapping(data, "tool call")
        tool_type = data.get("type")
        if tool_type is None:
            tool_type = _FUNCTION_TYPE
        if tool_type != _FUNCTION_TYPE:
            raise ValueError(f"unknown tool type {tool_type!r}")
        return cls(
            function=ToolCallFunction.from_dict(_require(data, "function")),
            id=_optional(data, "id", str),
            type=tool_type,
        )


@dataclass
class Message:
    """A single chat message."""

    role: Role
    content: Optional[str] = None
    images: Optional[list[str]] = None
    tool_calls: Optional[list[ToolCall]] = None
    tool_call_id: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(Role.ASSISTANT, content)

    @classmethod
    def tool(cls, content: str, tool_call_id: str) -> Message:
        return cls(Role.TOOL, content, tool_call_id=tool_call_id)

    def to_dict(self) -> dict[str, Any]:
        return _without_none(
            {
                "role": Role(self.role).value,
                "content": self.content,
                "images": list(self.images) if self.images is not None else None,
                "tool_calls": (
                    [call.to_dict() for call in self.tool_calls]
                    if self.tool_calls is not None
                    else None
                ),
                "tool_call_id": self.tool_call_id,
            }
        )

    @classmethod
    def from_dict(cls, data: Any) -> Message:
        data = _as_mapping(data, "message")
        role = _required(data, "role", str)
        try:
            parsed_role = Role(role)
        except ValueError:
            raise ValueError(f"unknown role {role!r}") from None
        calls = _optional(data, "tool_calls", list)
        return cls(
            role=parsed_role,
            content=_optional(data, "content", str),
            images=_optional_list(data, "images", str),
            tool_calls=[ToolCall.from_dict(c) for c in calls] if calls is not None else None,
            tool_call_id=_optional(data, "tool_call_id", str),
        )


@dataclass
class BaseRequest:
    """Fields shared by chat and generate requests."""

    model: str
    format: Any = None
    options: Optional[dict[str, Any]] = None
    stream: Optional[bool] = None
    keep_alive: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return _without_none(
            {
                "model": self.model,
                "format": self.format,
                "options": self.options,
                "stream": self.stream,
                "keep_alive": self.keep_alive,
            }
        )


@dataclass
class ChatRequest:
    """Request body for the chat endpoint; tools need a ``to_dict`` method."""

    base: BaseRequest
    messages: list[Message]
    tools: Optional[list[Any]] = None

    def to_dict(self) -> dict[str, Any]:
        out = self.base.to_dict()
        out["messages"] = [m.to_dict() for m in self.messages]
        if self.tools is not None:
            out["tools"] = [t.to_dict() for t in self.tools]
        return out


@dataclass
class ChatResponse:
    """Response from the chat endpoint."""

    model: str
    created_at: str
    message: Message
    done: bool
    done_reason: Optional[str] = None
    total_duration: Optional[int] = None
    load_duration: Optional[int] = None
    prompt_eval_count: Optional[int] = None
    prompt_eval_duration: Optional[int] = None
    eval_count: Optional[int] = None
    eval_duration: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> ChatResponse:
        data = _as_mapping(data, "chat response")
        return cls(
            model=_required(data, "model", str),
            created_at=_required(data, "created_at", str),
            message=Message.from_dict(_require(data, "message")),
            done=_required(data, "done", bool),
            done_reason=_optional(data, "done_reason", str),
            **_stats(data),
        )


@dataclass
class EmbeddingsRequest:
    """Request body for the embeddings endpoint."""

    model: str
    input: str
    options: Optional[dict[str, Any]] = None
    keep_alive: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return _without_none(
            {
                "model": self.model,
                "input": self.input,
                "options": self.options,
                "keep_alive": self.keep_alive,
            }
        )


@dataclass
class EmbeddingsResponse:
    """Response from the embeddings endpoint."""

    embedding: list[float]

    @classmethod
    def from_dict(cls, data: Any) -> EmbeddingsResponse:
        data = _as_mapping(data, "embeddings response")
        values = _required(data, "embedding", list)
        return cls(embedding=[_check(v, "embedding", float) for v in values])


@dataclass
class GenerateRequest:
    """Request body for the generate endpoint."""

    base: BaseRequest
    prompt: str
    system: Optional[str] = None
    template: Optional[str] = None
    context: Optional[list[int]] = None
    raw: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        out = self.base.to_dict()
        out["prompt"] = self.prompt
        out.update(
            _without_none(
                {
                    "system": self.system,
                    "template": self.template,
                    "context": self.context,
                    "raw": self.raw,
                }
            )
        )
        return out


@dataclass
class GenerateResponse:
    """Response from the generate endpoint."""

    model: str
    created_at: str
    response: str
    done: bool
    done_reason: Optional[str] = None
    context: Optional[list[int]] = None
    total_duration: Optional[int] = None
    load_duration: Optional[int] = None
    prompt_eval_count: Optional[int] = None
    prompt_eval_duration: Optional[int] = None
    eval_count: Optional[int] = None
    eval_duration: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> GenerateResponse:
        data = _as_mapping(data, "generate response")
        return cls(
            model=_required(data, "model", str),
            created_at=_required(data, "created_at", str),
            response=_required(data, "response", str),
            done=_required(data, "done", bool),
            done_reason=_optional(data, "done_reason", str),
            context=_optional_list(data, "context", int),
            **_stats(data),
        )