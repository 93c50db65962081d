import pytest

from travel_tools.catalog import ALL_TOOLS, build_registry
from travel_tools.errors import InvalidToolArgumentsError, NoSuchToolError
from travel_tools.registry import ToolDefinition, ToolRegistry
from travel_tools.schemas import NearbySearchParams, WeatherParams, WebSearchParams


def test_registry_lists_every_tool_once():
    registry = build_registry()
    assert len(registry) == len(ALL_TOOLS)
    assert registry.names()[0] == "web_search"
    assert {d["name"] for d in registry.describe()} == set(registry.names())


def test_duplicate_names_are_rejected():
    tool = ToolDefinition("dup", "first", WeatherParams, lambda p, c: None)
    with pytest.raises(ValueError):
        ToolRegistry([tool, tool])


def test_get_respects_allowed_subset():
    registry = build_registry()
    assert registry.get("datetime").name == "datetime"
    with pytest.raises(NoSuchToolError) as exc:
        registry.get("datetime", allowed=("web_search",))
    assert exc.value.tool_name == "datetime"
    with pytest.raises(NoSuchToolError):
        registry.get("stock_chart")


def test_validate_accepts_json_text_and_applies_defaults():
    tool = build_registry().get("web_search")
    params = tool.validate('{"queries": ["tokyo food markets"]}')
    assert isinstance(params, WebSearchParams)
    assert params.max_results == [10]
    assert params.topics == ["general"]
    assert params.search_depth == ["basic"]
    assert params.exclude_domains == []


def test_validate_reports_field_errors():
    tool = build_registry().get("nearby_search")
    with pytest.raises(InvalidToolArgumentsError) as exc:
        tool.validate({"location": "Paris", "latitude": 123, "longitude": 2.35, "type": "restaurant"})
    assert "latitude" in exc.value.message
    assert exc.value.args_value["location"] == "Paris"


def test_radius_bounds():
    with pytest.raises(Exception):
        NearbySearchParams(location="x", latitude=0, longitude=0, type="hotel", radius=60000)
    assert NearbySearchParams(location="x", latitude=0, longitude=0, type="hotel").radius == 30000


def test_empty_arguments_for_parameterless_tool():
    tool = build_registry().get("datetime")
    assert tool.has_parameters() is False
    tool.validate(None)
    tool.validate("")
