from typing import Any, Dict

from ..context import ToolContext
from ..registry import ToolDefinition
from ..schemas import DateTimeParams


async def current_datetime(params: DateTimeParams, ctx: ToolContext) -> Dict[str, Any]:
    local = ctx.request.local_now()
    return {
        "timestamp": int(ctx.request.now.timestamp() * 1000),
        "iso": local.isoformat(),
        "timezone": ctx.request.timezone,
        "formatted": {
            "date": f"{local:%A, %B} {local.day}, {local.year}",
            "time": local.strftime("%I:%M:%S %p"),
            "dateShort": f"{local:%b} {local.day}, {local.year}",
            "timeShort": local.strftime("%I:%M %p"),
        },
    }


DATETIME = ToolDefinition(
    name="datetime",
    description="Get the current date and time in the user's timezone",
    parameters=DateTimeParams,
    execute=current_datetime,
)
