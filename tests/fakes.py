import asyncio
import json
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel

from orchestrator.llm import ModelChunk
from travel_tools.registry import ToolDefinition, ToolRegistry


def text(content: str) -> ModelChunk:
    return ModelChunk("text-delta", text=content)


def tool_call(name: str, args: Any, call_id: str = "call_1") -> ModelChunk:
    return ModelChunk("tool-call", tool_call_id=call_id, tool_name=name, args=args)


def finish(reason: str = "stop") -> ModelChunk:
    return ModelChunk("finish", finish_reason=reason, usage={"prompt_tokens": 10, "completion_tokens": 5})


class FakeLanguageModel:
    """Scripted model: one chunk list per ``stream_text`` call, one reply per ``generate_object`` call.

    A script entry that is an exception is raised at that point instead of yielded.
    """

    def __init__(
        self,
        passes: Optional[List[List[Any]]] = None,
        objects: Optional[List[Any]] = None,
    ) -> None:
        self.passes = list(passes or [])
        self.objects = list(objects or [])
        self.stream_calls: List[Dict[str, Any]] = []
        self.object_calls: List[Dict[str, Any]] = []

    async def stream_text(
        self,
        *,
        model: str,
        system: str,
        messages: Sequence[Any],
        tools: Sequence[ToolDefinition] = (),
        tool_choice: str = "auto",
        temperature: Optional[float] = None,
    ):
        self.stream_calls.append(
            {
                "model": model,
                "system": system,
                "messages": list(messages),
                "tools": [t.name for t in tools],
                "tool_choice": tool_choice,
                "temperature": temperature,
            }
        )
        index = len(self.stream_calls) - 1
        script = self.passes[index] if index < len(self.passes) else [finish()]
        for chunk in script:
            await asyncio.sleep(0)
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    async def generate_object(
        self,
        *,
        model: str,
        schema: type[BaseModel],
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        self.object_calls.append(
            {"model": model, "schema": schema, "prompt": prompt, "system": system, "temperature": temperature}
        )
        reply = self.objects.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return schema.model_validate_json(reply if isinstance(reply, str) else json.dumps(reply))


class RecordingTool:
    """Executor that records its calls and returns (or raises) a fixed outcome."""

    def __init__(self, result: Any = None, error: Optional[Exception] = None, delay: float = 0.0) -> None:
        self.result = result if result is not None else {"ok": True}
        self.error = error
        self.delay = delay
        self.calls: List[BaseModel] = []

    async def __call__(self, params: BaseModel, ctx: Any) -> Any:
        self.calls.append(params)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


def make_registry(*definitions: ToolDefinition) -> ToolRegistry:
    return ToolRegistry(definitions)
