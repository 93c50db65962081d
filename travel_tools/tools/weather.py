from typing import Any, Dict

from ..config import CONFIG
from ..context import ToolContext
from ..errors import ProviderError
from ..registry import ToolDefinition
from ..schemas import WeatherParams
from ..upstream import fetch_json, require_key


async def get_weather_data(params: WeatherParams, ctx: ToolContext) -> Dict[str, Any]:
    query = {
        "lat": params.lat,
        "lon": params.lon,
        "appid": require_key("openweather", CONFIG.openweather_api_key),
    }
    data = await fetch_json(ctx.http, "openweather", "forecast", f"{CONFIG.openweather_base}/forecast", params=query)
    if not isinstance(data, dict) or "list" not in data:
        raise ProviderError("openweather", "forecast response malformed")
    return data


GET_WEATHER_DATA = ToolDefinition(
    name="get_weather_data",
    description="Get the weather data for the given coordinates.",
    parameters=WeatherParams,
    execute=get_weather_data,
)
