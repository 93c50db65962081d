"""One-shot repair of tool calls whose arguments failed validation."""

from dataclasses import dataclass
import json
import logging
from typing import Any, Dict, Tuple

from pydantic import BaseModel, ValidationError

from travel_tools.context import RequestContext
from travel_tools.errors import InvalidToolArgumentsError
from travel_tools.registry import ToolDefinition, dump_args

from .config import CONFIG
from .llm import LanguageModel, LanguageModelError


REPAIR_HINTS: Tuple[str, ...] = (
    "For the web search make multiple queries to get the best results.",
    "Coordinates are decimal degrees; a location string is written as \"latitude,longitude\".",
    "Radii are in meters and at most 50000.",
)


@dataclass(frozen=True)
class RepairRequest:
    tool_name: str
    args: Any
    parameter_schema: Dict[str, Any]
    error: str
    today: str

    @classmethod
    def from_error(cls, tool: ToolDefinition, error: InvalidToolArgumentsError, request: RequestContext) -> "RepairRequest":
        return cls(
            tool_name=tool.name,
            args=error.args_value,
            parameter_schema=tool.json_schema(),
            error=error.message,
            today=request.today_label(),
        )

    def prompt(self) -> str:
        return "\n".join(
            [
                f'The model tried to call the tool "{self.tool_name}" with the following arguments:',
                dump_args(self.args),
                "The tool accepts the following schema:",
                json.dumps(self.parameter_schema),
                f"Validation failed with: {self.error}",
                "Please fix the arguments.",
                *REPAIR_HINTS,
                f"Today's date is {self.today}",
            ]
        )


class ToolCallRepairer:
    def __init__(self, llm: LanguageModel, model: str = CONFIG.repair_model) -> None:
        self.llm = llm
        self.model = model

    async def repair(self, tool: ToolDefinition, request: RepairRequest) -> BaseModel:
        """Ask the model once for corrected arguments.

        The reply is validated against the tool's own parameter model. Any
        failure raises ``InvalidToolArgumentsError``; there is no second attempt.
        """
        logging.info("Repairing tool call %s: %s", request.tool_name, request.error)
        try:
            repaired = await self.llm.generate_object(
                model=self.model,
                schema=tool.parameters,
                prompt=request.prompt(),
                temperature=0,
            )
        except ValidationError as e:
            logging.warning("Repair for %s returned invalid arguments", request.tool_name)
            raise InvalidToolArgumentsError(request.tool_name, request.args, f"repair produced invalid arguments: {e.error_count()} errors") from e
        except LanguageModelError as e:
            logging.warning("Repair for %s failed: %s", request.tool_name, e)
            raise InvalidToolArgumentsError(request.tool_name, request.args, "repair call failed") from e
        logging.info("Repaired arguments for %s: %s", request.tool_name, repaired.model_dump_json())
        return repaired
