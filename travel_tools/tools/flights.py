from typing import Any, Dict

from ..config import CONFIG
from ..context import ToolContext
from ..errors import ProviderError
from ..registry import ToolDefinition
from ..schemas import TrackFlightParams
from ..upstream import fetch_json, require_key


async def track_flight(params: TrackFlightParams, ctx: ToolContext) -> Dict[str, Any]:
    query = {
        "access_key": require_key("aviationstack", CONFIG.aviation_stack_api_key),
        "flight_iata": params.flight_number.replace(" ", "").upper(),
    }
    data = await fetch_json(ctx.http, "aviationstack", "flights", f"{CONFIG.aviation_stack_base}/flights", params=query)
    # Errors can come back with a 200 and an error object
    if isinstance(data, dict) and data.get("error"):
        error = data["error"]
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise ProviderError("aviationstack", message or "flight lookup failed")
    return data


TRACK_FLIGHT = ToolDefinition(
    name="track_flight",
    description="Track flight information and status",
    parameters=TrackFlightParams,
    execute=track_flight,
)
