import asyncio

import pytest

from orchestrator.llm import LanguageModelError
from orchestrator.messages import Message
from orchestrator.pipeline import GENERIC_ERROR, DualPassOrchestrator
from tests.fakes import FakeLanguageModel, RecordingTool, finish, make_registry, text, tool_call
from travel_tools.errors import ProviderError
from travel_tools.registry import ToolDefinition
from travel_tools.schemas import DateTimeParams, WeatherParams, WebSearchParams
from travel_tools.tools.clock import DATETIME


def _weather(executor):
    return ToolDefinition("get_weather_data", "weather", WeatherParams, executor)


def _search(executor):
    return ToolDefinition("web_search", "search", WebSearchParams, executor)


async def _run(orchestrator, request_context, prompt="Plan a weekend in Kyoto", group="web"):
    messages = [Message(role="user", content=prompt)]
    return [
        e async for e in orchestrator.stream(messages, model="travel-default", group=group, context=request_context)
    ]


@pytest.mark.asyncio
async def test_pass_one_events_precede_pass_two_with_single_finish(http_client, request_context):
    weather = RecordingTool(result={"list": [{"temp": 291.2}]})
    llm = FakeLanguageModel(
        passes=[
            [tool_call("get_weather_data", {"lat": 35.0, "lon": 135.7}), finish("tool-calls")],
            [text("Kyoto will be mild "), text("this weekend."), finish("stop")],
        ]
    )
    orchestrator = DualPassOrchestrator(llm, make_registry(_weather(weather)), http_client, smooth_delay_ms=0)

    events = await _run(orchestrator, request_context)

    passes = [e.pass_number for e in events]
    assert passes == sorted(passes)
    assert [e.type for e in events].count("finish") == 1
    assert events[-1].type == "finish"
    assert events[-1].pass_number == 2
    assert [e.type for e in events if e.pass_number == 1] == [
        "step-start",
        "tool-call",
        "tool-result",
        "step-finish",
    ]
    assert "".join(e.data["content"] for e in events if e.type == "text-delta") == "Kyoto will be mild this weekend."
    assert weather.calls[0].lat == 35.0


@pytest.mark.asyncio
async def test_passes_are_configured_differently(http_client, request_context):
    llm = FakeLanguageModel(passes=[[tool_call("datetime", {}), finish()], [text("ok"), finish()]])
    orchestrator = DualPassOrchestrator(llm, make_registry(DATETIME), http_client, smooth_delay_ms=0)

    await _run(orchestrator, request_context, group="not-a-group")

    first, second = llm.stream_calls
    assert first["tool_choice"] == "required"
    assert first["temperature"] == 0
    assert first["tools"] == ["datetime"]
    assert "Mon, Oct 19, 2026" in first["system"]
    assert second["tools"] == []
    assert "Wayfarer" in second["system"]
    # Pass 2 sees the user turn plus the tool call and its result
    roles = [m.role for m in second["messages"]]
    assert roles == ["user", "assistant", "tool"]
    assert second["messages"][2].tool_results[0].result["timezone"] == "UTC"


@pytest.mark.asyncio
async def test_failing_tool_does_not_abort_siblings(http_client, request_context):
    search = RecordingTool(error=ProviderError("tavily", "search returned an error", 500))
    weather = RecordingTool(result={"list": []}, delay=0.01)
    llm = FakeLanguageModel(
        passes=[
            [
                tool_call("web_search", {"queries": ["kyoto temples"]}, "call_a"),
                tool_call("get_weather_data", {"lat": 35, "lon": 135}, "call_b"),
                finish("tool-calls"),
            ],
            [text("Here is your plan."), finish()],
        ]
    )
    orchestrator = DualPassOrchestrator(
        llm, make_registry(_search(search), _weather(weather)), http_client, smooth_delay_ms=0
    )

    events = await _run(orchestrator, request_context)

    results = {e.data["tool_call_id"]: e.data for e in events if e.type == "tool-result"}
    assert results["call_a"]["is_error"] is True
    assert results["call_a"]["result"] == {"error": "web_search failed: the service is unavailable"}
    assert results["call_b"]["is_error"] is False
    assert events[-1].type == "finish"
    tool_message = llm.stream_calls[1]["messages"][-1]
    assert [r.is_error for r in tool_message.tool_results] == [True, False]


@pytest.mark.asyncio
async def test_unknown_tool_is_reported_without_repair(http_client, request_context):
    llm = FakeLanguageModel(passes=[[tool_call("stock_chart", {"ticker": "AAPL"}), finish()], [text("Sorry."), finish()]])
    orchestrator = DualPassOrchestrator(llm, make_registry(DATETIME), http_client, smooth_delay_ms=0)

    events = await _run(orchestrator, request_context)

    errors = [e for e in events if e.type == "tool-error"]
    assert len(errors) == 1
    assert "stock_chart" in errors[0].data["content"]
    assert llm.object_calls == []
    assert events[-1].type == "finish"


@pytest.mark.asyncio
async def test_tool_outside_group_is_unknown(http_client, request_context):
    outsider = ToolDefinition("secret_tool", "not in any group", DateTimeParams, RecordingTool())
    llm = FakeLanguageModel(passes=[[tool_call("secret_tool", {}), finish()], [finish()]])
    orchestrator = DualPassOrchestrator(llm, make_registry(DATETIME, outsider), http_client, smooth_delay_ms=0)

    events = await _run(orchestrator, request_context)

    assert [e.type for e in events].count("tool-error") == 1
    assert llm.stream_calls[0]["tools"] == ["datetime"]


@pytest.mark.asyncio
async def test_invalid_arguments_are_repaired_once(http_client, request_context):
    weather = RecordingTool()
    llm = FakeLanguageModel(
        passes=[[tool_call("get_weather_data", {"latitude": 35, "longitude": 135}), finish()], [text("done"), finish()]],
        objects=[{"lat": 35, "lon": 135}],
    )
    orchestrator = DualPassOrchestrator(llm, make_registry(_weather(weather)), http_client, smooth_delay_ms=0)

    events = await _run(orchestrator, request_context)

    assert len(llm.object_calls) == 1
    assert llm.object_calls[0]["schema"] is WeatherParams
    call = next(e for e in events if e.type == "tool-call")
    assert call.data["args"] == {"lat": 35.0, "lon": 135.0}
    assert weather.calls[0].lon == 135


@pytest.mark.asyncio
async def test_failed_repair_is_final(http_client, request_context):
    weather = RecordingTool()
    llm = FakeLanguageModel(
        passes=[[tool_call("get_weather_data", {"lat": "north"}), finish()], [text("done"), finish()]],
        objects=[{"lat": 999, "lon": 0}],
    )
    orchestrator = DualPassOrchestrator(llm, make_registry(_weather(weather)), http_client, smooth_delay_ms=0)

    events = await _run(orchestrator, request_context)

    assert len(llm.object_calls) == 1
    assert weather.calls == []
    result = next(e for e in events if e.type == "tool-result")
    assert result.data["is_error"] is True
    assert "get_weather_data" in result.data["result"]["error"]
    assert events[-1].type == "finish"


@pytest.mark.asyncio
async def test_provider_error_in_pass_one_ends_with_error(http_client, request_context):
    llm = FakeLanguageModel(passes=[[text("Let me"), LanguageModelError("quota exceeded")]])
    orchestrator = DualPassOrchestrator(llm, make_registry(DATETIME), http_client, smooth_delay_ms=0)

    events = await _run(orchestrator, request_context)

    assert events[-1].type == "error"
    assert events[-1].data["content"] == GENERIC_ERROR
    assert "finish" not in [e.type for e in events]
    assert len(llm.stream_calls) == 1


@pytest.mark.asyncio
async def test_provider_error_in_pass_two_ends_with_error(http_client, request_context):
    llm = FakeLanguageModel(
        passes=[[tool_call("datetime", {}), finish()], [text("Day one: "), LanguageModelError("stream reset")]]
    )
    orchestrator = DualPassOrchestrator(llm, make_registry(DATETIME), http_client, smooth_delay_ms=0)

    events = await _run(orchestrator, request_context)

    assert [e.type for e in events if e.is_terminal] == ["error"]
    assert events[-1].pass_number == 2


@pytest.mark.asyncio
async def test_closing_the_stream_cancels_running_tools(http_client, request_context):
    slow = RecordingTool(delay=10)
    llm = FakeLanguageModel(passes=[[tool_call("get_weather_data", {"lat": 1, "lon": 2}), finish()]])
    orchestrator = DualPassOrchestrator(llm, make_registry(_weather(slow)), http_client, smooth_delay_ms=0)

    stream = orchestrator.stream(
        [Message(role="user", content="weather?")], model="travel-default", group="web", context=request_context
    )
    seen = []
    async for event in stream:
        seen.append(event.type)
        if event.type == "tool-call":
            break
    await asyncio.wait_for(stream.aclose(), timeout=1)

    assert seen == ["step-start", "tool-call"]
    assert len(slow.calls) == 1
