from .registry import ToolRegistry
from .tools.clock import DATETIME
from .tools.flights import TRACK_FLIGHT
from .tools.geo import FIND_PLACE, TEXT_SEARCH
from .tools.nearby import NEARBY_SEARCH
from .tools.search import WEB_SEARCH
from .tools.translate import TEXT_TRANSLATE
from .tools.weather import GET_WEATHER_DATA


ALL_TOOLS = (
    WEB_SEARCH,
    GET_WEATHER_DATA,
    NEARBY_SEARCH,
    TRACK_FLIGHT,
    FIND_PLACE,
    TEXT_SEARCH,
    DATETIME,
    TEXT_TRANSLATE,
)


def build_registry() -> ToolRegistry:
    return ToolRegistry(ALL_TOOLS)
