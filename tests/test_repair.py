import json

import pytest

from orchestrator.llm import LanguageModelError
from orchestrator.repair import RepairRequest, ToolCallRepairer
from tests.fakes import FakeLanguageModel
from travel_tools.catalog import build_registry
from travel_tools.errors import InvalidToolArgumentsError


def _failed_validation(tool, args):
    with pytest.raises(InvalidToolArgumentsError) as exc:
        tool.validate(args)
    return exc.value


def test_prompt_carries_arguments_schema_error_and_date(request_context):
    tool = build_registry().get("web_search")
    error = _failed_validation(tool, {"query": "lisbon"})
    request = RepairRequest.from_error(tool, error, request_context)

    prompt = request.prompt()
    assert 'tool "web_search"' in prompt
    assert json.dumps({"query": "lisbon"}) in prompt
    assert json.dumps(tool.json_schema()) in prompt
    assert "queries" in request.error
    assert "Today's date is Mon, Oct 19, 2026" in prompt
    assert "multiple queries" in prompt


@pytest.mark.asyncio
async def test_repair_returns_validated_arguments(request_context):
    tool = build_registry().get("web_search")
    llm = FakeLanguageModel(objects=[{"queries": ["lisbon food", "lisbon trams", "lisbon viewpoints"]}])
    repairer = ToolCallRepairer(llm, model="travel-fast")

    repaired = await repairer.repair(tool, RepairRequest.from_error(tool, _failed_validation(tool, {}), request_context))

    assert repaired.queries[0] == "lisbon food"
    assert llm.object_calls[0]["model"] == "travel-fast"
    assert llm.object_calls[0]["temperature"] == 0


@pytest.mark.asyncio
async def test_invalid_repair_raises_without_retry(request_context):
    tool = build_registry().get("get_weather_data")
    llm = FakeLanguageModel(objects=[{"lat": "north"}, {"lat": 1, "lon": 2}])
    request = RepairRequest.from_error(tool, _failed_validation(tool, {"lat": "north"}), request_context)

    with pytest.raises(InvalidToolArgumentsError):
        await ToolCallRepairer(llm).repair(tool, request)
    assert len(llm.object_calls) == 1
    assert len(llm.objects) == 1


@pytest.mark.asyncio
async def test_provider_failure_during_repair_is_final(request_context):
    tool = build_registry().get("track_flight")
    llm = FakeLanguageModel(objects=[LanguageModelError("unavailable")])
    request = RepairRequest.from_error(tool, _failed_validation(tool, {"flight": "BA49"}), request_context)

    with pytest.raises(InvalidToolArgumentsError) as exc:
        await ToolCallRepairer(llm).repair(tool, request)
    assert exc.value.message == "repair call failed"
