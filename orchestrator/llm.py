"""Language model seam used by both passes, repair, translation and suggestions.

The orchestrator only sees ``ModelChunk`` values; ``GeminiLanguageModel`` maps
them onto the google-genai SDK.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Sequence, Type, TypeVar
import uuid

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
import httpx
from pydantic import BaseModel

from travel_tools.registry import ToolDefinition

from .config import CONFIG
from .messages import CoreMessage


T = TypeVar("T", bound=BaseModel)


class LanguageModelError(Exception):
    """The model provider failed or is not configured."""


@dataclass
class ModelChunk:
    # text-delta | reasoning | tool-call | finish
    type: str
    text: str = ""
    tool_call_id: str = ""
    tool_name: str = ""
    args: Any = None
    finish_reason: str = ""
    usage: Dict[str, int] = field(default_factory=dict)


class LanguageModel(Protocol):
    def stream_text(
        self,
        *,
        model: str,
        system: str,
        messages: Sequence[CoreMessage],
        tools: Sequence[ToolDefinition] = (),
        tool_choice: str = "auto",
        temperature: Optional[float] = None,
    ) -> AsyncIterator[ModelChunk]:
        ...

    async def generate_object(
        self,
        *,
        model: str,
        schema: Type[T],
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> T:
        ...


def resolve_model(model_id: str) -> str:
    """Map a public alias to a provider model id; unknown ids pass through."""
    model_id = (model_id or "").strip() or CONFIG.default_model
    return CONFIG.model_aliases.get(model_id, model_id)


_FINISH_REASONS = {
    "STOP": "stop",
    "MAX_TOKENS": "length",
    "SAFETY": "content-filter",
    "RECITATION": "content-filter",
    "BLOCKLIST": "content-filter",
    "PROHIBITED_CONTENT": "content-filter",
    "SPII": "content-filter",
    "MALFORMED_FUNCTION_CALL": "error",
}

_TOOL_MODES = {"required": "ANY", "auto": "AUTO", "none": "NONE"}


def map_finish_reason(reason: Any) -> str:
    name = getattr(reason, "name", None) or str(reason)
    return _FINISH_REASONS.get(name, "other")


def to_gemini_contents(messages: Sequence[CoreMessage]) -> List[types.Content]:
    contents: List[types.Content] = []
    for message in messages:
        if message.role == "user":
            contents.append(types.Content(role="user", parts=[types.Part(text=message.text or " ")]))
        elif message.role == "assistant":
            parts: List[types.Part] = []
            if message.text:
                parts.append(types.Part(text=message.text))
            for call in message.tool_calls:
                parts.append(
                    types.Part(
                        function_call=types.FunctionCall(id=call.tool_call_id, name=call.tool_name, args=call.args)
                    )
                )
            if parts:
                contents.append(types.Content(role="model", parts=parts))
        else:
            parts = [
                types.Part(
                    function_response=types.FunctionResponse(
                        id=r.tool_call_id,
                        name=r.tool_name,
                        response={"error": r.result} if r.is_error else {"output": r.result},
                    )
                )
                for r in message.tool_results
            ]
            if parts:
                contents.append(types.Content(role="user", parts=parts))
    return contents


def to_gemini_tools(tools: Sequence[ToolDefinition]) -> List[types.Tool]:
    if not tools:
        return []
    declarations = [
        types.FunctionDeclaration(
            name=tool.name,
            description=tool.description,
            parameters_json_schema=tool.json_schema() if tool.has_parameters() else None,
        )
        for tool in tools
    ]
    return [types.Tool(function_declarations=declarations)]


class GeminiLanguageModel:
    def __init__(self, api_key: Optional[str] = None, client: Optional[genai.Client] = None) -> None:
        self._api_key = api_key or CONFIG.gemini_api_key
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise LanguageModelError("GEMINI_API_KEY is not configured")
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def stream_text(
        self,
        *,
        model: str,
        system: str,
        messages: Sequence[CoreMessage],
        tools: Sequence[ToolDefinition] = (),
        tool_choice: str = "auto",
        temperature: Optional[float] = None,
    ) -> AsyncIterator[ModelChunk]:
        tool_config = None
        if tools:
            tool_config = types.ToolConfig(
                function_calling_config=types.FunctionCallingConfig(mode=_TOOL_MODES.get(tool_choice, "AUTO"))
            )
        config = types.GenerateContentConfig(
            system_instruction=system or None,
            temperature=temperature,
            tools=to_gemini_tools(tools) or None,
            tool_config=tool_config,
            automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
        )

        finish_reason = "stop"
        usage: Dict[str, int] = {}
        saw_tool_call = False
        try:
            stream = await self.client.aio.models.generate_content_stream(
                model=resolve_model(model),
                contents=to_gemini_contents(messages),
                config=config,
            )
            async for chunk in stream:
                if chunk.usage_metadata is not None:
                    usage = {
                        "prompt_tokens": chunk.usage_metadata.prompt_token_count or 0,
                        "completion_tokens": chunk.usage_metadata.candidates_token_count or 0,
                    }
                if not chunk.candidates:
                    continue
                candidate = chunk.candidates[0]
                parts = candidate.content.parts if candidate.content and candidate.content.parts else []
                for part in parts:
                    if part.function_call is not None:
                        saw_tool_call = True
                        yield ModelChunk(
                            "tool-call",
                            tool_call_id=part.function_call.id or f"call_{uuid.uuid4().hex[:12]}",
                            tool_name=part.function_call.name or "",
                            args=dict(part.function_call.args or {}),
                        )
                    elif part.text:
                        yield ModelChunk("reasoning" if part.thought else "text-delta", text=part.text)
                if candidate.finish_reason is not None:
                    finish_reason = map_finish_reason(candidate.finish_reason)
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise LanguageModelError(f"Gemini stream failed: {e}") from e

        if saw_tool_call and finish_reason == "stop":
            finish_reason = "tool-calls"
        yield ModelChunk("finish", finish_reason=finish_reason, usage=usage)

    async def generate_object(
        self,
        *,
        model: str,
        schema: Type[T],
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> T:
        """Structured output; raises pydantic.ValidationError when the reply does not fit ``schema``."""
        config = types.GenerateContentConfig(
            system_instruction=system,
            temperature=temperature,
            response_mime_type="application/json",
            response_json_schema=schema.model_json_schema(),
        )
        try:
            response = await self.client.aio.models.generate_content(
                model=resolve_model(model),
                contents=prompt,
                config=config,
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise LanguageModelError(f"Gemini request failed: {e}") from e
        logging.debug("Structured reply for %s: %s", schema.__name__, response.text)
        return schema.model_validate_json(response.text or "")
