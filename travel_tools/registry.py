"""Tool definitions and the immutable registry the orchestrator is built with."""

from dataclasses import dataclass
import json
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Sequence, Type

from pydantic import BaseModel, ValidationError

from .context import ToolContext
from .errors import InvalidToolArgumentsError, NoSuchToolError


ToolExecutor = Callable[[Any, ToolContext], Awaitable[Any]]


def _format_validation_error(err: ValidationError) -> str:
    parts = []
    for item in err.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "(root)"
        parts.append(f"{loc}: {item.get('msg', 'invalid')}")
    return "; ".join(parts)


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    parameters: Type[BaseModel]
    execute: ToolExecutor

    def validate(self, args: Any) -> BaseModel:
        """Parse raw model-emitted arguments (dict or JSON text) into the parameter model."""
        if args is None or args == "":
            args = {}
        try:
            if isinstance(args, (str, bytes)):
                return self.parameters.model_validate_json(args)
            return self.parameters.model_validate(args)
        except ValidationError as e:
            raise InvalidToolArgumentsError(self.name, args, _format_validation_error(e)) from e

    def json_schema(self) -> Dict[str, Any]:
        return self.parameters.model_json_schema()

    def has_parameters(self) -> bool:
        return bool(self.parameters.model_fields)

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.json_schema(),
        }


class ToolRegistry:
    def __init__(self, tools: Iterable[ToolDefinition]) -> None:
        by_name: Dict[str, ToolDefinition] = {}
        for tool in tools:
            if tool.name in by_name:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            by_name[tool.name] = tool
        self._tools: Mapping[str, ToolDefinition] = MappingProxyType(by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> List[str]:
        return list(self._tools)

    def get(self, name: str, allowed: Sequence[str] | None = None) -> ToolDefinition:
        if name not in self._tools or (allowed is not None and name not in allowed):
            raise NoSuchToolError(name, allowed if allowed is not None else self._tools)
        return self._tools[name]

    def subset(self, names: Sequence[str]) -> List[ToolDefinition]:
        return [self._tools[name] for name in names if name in self._tools]

    def describe(self) -> List[Dict[str, Any]]:
        return [tool.describe() for tool in self._tools.values()]


def dump_args(args: Any) -> str:
    if isinstance(args, (str, bytes)):
        return args if isinstance(args, str) else args.decode("utf-8", "replace")
    return json.dumps(args, default=str)
