"""Conversation models: what the client sends, and the provider-neutral form the passes use."""

from dataclasses import dataclass, field
import json
import logging
from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class TextPart(BaseModel):
    type: Literal["text"]
    text: str


class ReasoningPart(BaseModel):
    type: Literal["reasoning"]
    reasoning: str


class ToolInvocation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    state: Literal["partial-call", "call", "result"] = "result"
    tool_call_id: str = Field(..., alias="toolCallId")
    tool_name: str = Field(..., alias="toolName")
    args: Dict[str, Any] = Field(default_factory=dict)
    result: Any = None


class ToolInvocationPart(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["tool-invocation"]
    tool_invocation: ToolInvocation = Field(..., alias="toolInvocation")


Part = Annotated[Union[TextPart, ReasoningPart, ToolInvocationPart], Field(discriminator="type")]


class Message(BaseModel):
    role: Literal["user", "assistant"]
    content: str = ""
    parts: List[Part] = Field(default_factory=list)

    def text(self) -> str:
        if self.content:
            return self.content
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))


class ChatRequest(BaseModel):
    messages: List[Message] = Field(..., min_length=1)
    model: str = "travel-default"
    group: str = "web"
    user_id: str = ""
    timezone: str = "UTC"


@dataclass
class ToolCall:
    tool_call_id: str
    tool_name: str
    args: Dict[str, Any]


@dataclass
class ToolResult:
    tool_call_id: str
    tool_name: str
    result: Any
    is_error: bool = False


@dataclass
class CoreMessage:
    role: Literal["user", "assistant", "tool"]
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)


def args_as_dict(args: Any) -> Dict[str, Any]:
    if isinstance(args, dict):
        return args
    if isinstance(args, str) and args.strip():
        try:
            parsed = json.loads(args)
        except json.JSONDecodeError:
            return {"raw": args}
        return parsed if isinstance(parsed, dict) else {"value": parsed}
    return {}


def convert_to_core_messages(messages: List[Message]) -> List[CoreMessage]:
    core: List[CoreMessage] = []
    for message in messages:
        if message.role == "user":
            core.append(CoreMessage(role="user", text=message.text()))
            continue

        text = message.content
        calls: List[ToolCall] = []
        results: List[ToolResult] = []
        for part in message.parts:
            if isinstance(part, TextPart) and not message.content:
                text += part.text
            elif isinstance(part, ToolInvocationPart):
                invocation = part.tool_invocation
                if invocation.state != "result":
                    logging.info("Dropping unfinished tool invocation %s", invocation.tool_call_id)
                    continue
                calls.append(ToolCall(invocation.tool_call_id, invocation.tool_name, invocation.args))
                results.append(ToolResult(invocation.tool_call_id, invocation.tool_name, invocation.result))

        if text or calls:
            core.append(CoreMessage(role="assistant", text=text, tool_calls=calls))
        if results:
            core.append(CoreMessage(role="tool", tool_results=results))
    return core
