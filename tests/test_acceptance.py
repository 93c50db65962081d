"""End-to-end checks against a running orchestrator with real provider keys.

Skipped unless ACCEPTANCE_ORCHESTRATOR_URL points at a live deployment.
"""

import os
import json
from typing import Any, Dict, List

import httpx
import pytest


ORCHESTRATOR_URL = os.getenv("ACCEPTANCE_ORCHESTRATOR_URL", "").rstrip("/")
DEFAULT_TIMEOUT = float(os.getenv("TEST_HTTP_TIMEOUT", "120"))

pytestmark = pytest.mark.skipif(not ORCHESTRATOR_URL, reason="ACCEPTANCE_ORCHESTRATOR_URL is not set")


def _collect_events(prompt: str, timezone: str = "UTC") -> List[Dict[str, Any]]:
    body = {"messages": [{"role": "user", "content": prompt}], "timezone": timezone}
    events: List[Dict[str, Any]] = []
    with httpx.Client(timeout=DEFAULT_TIMEOUT) as client:
        with client.stream("POST", f"{ORCHESTRATOR_URL}/api/chat", json=body) as resp:
            resp.raise_for_status()
            for raw_line in resp.iter_lines():
                line = raw_line.strip()
                if not line.startswith("data:"):
                    continue
                data = line[len("data:"):].strip()
                if data == "[DONE]":
                    break
                events.append(json.loads(data))
    return events


def _answer(events: List[Dict[str, Any]]) -> str:
    return "".join(e.get("content", "") for e in events if e["type"] == "text-delta")


def test_weather_question_runs_a_tool_then_answers():
    events = _collect_events("What will the weather be like in Kyoto this weekend?")
    assert any(e["type"] == "tool-call" for e in events)
    assert [e["type"] for e in events].count("finish") == 1
    assert "Kyoto" in _answer(events)


def test_search_reports_query_progress():
    events = _collect_events("Plan 3 days in Lisbon with food markets and viewpoints")
    progress = [e for e in events if e["type"] == "annotation" and e["annotation"]["type"] == "query_completion"]
    assert progress
    results = [e for e in events if e["type"] == "tool-result" and e["tool_name"] == "web_search"]
    for result in results:
        for search in result["result"]["searches"]:
            urls = [r["url"] for r in search["results"]]
            assert len(urls) == len(set(urls))


def test_datetime_respects_timezone():
    events = _collect_events("What time is it right now?", timezone="Asia/Kolkata")
    results = [e for e in events if e["type"] == "tool-result" and e["tool_name"] == "datetime"]
    if results:
        assert results[0]["result"]["timezone"] == "Asia/Kolkata"
    assert events[-1]["type"] in {"finish", "error"}
