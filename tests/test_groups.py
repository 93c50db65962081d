import pytest

from orchestrator.groups import DEFAULT_GROUP, GROUPS, WEB_TOOLS, resolve_group
from travel_tools.catalog import build_registry


@pytest.mark.parametrize("group_id", ["web", "chat", "academic", "", None])
def test_resolution_is_total(group_id):
    config = resolve_group(group_id)
    assert config.group_id in GROUPS


def test_unknown_group_falls_back_to_web():
    assert resolve_group("youtube") is GROUPS[DEFAULT_GROUP]
    assert resolve_group("youtube").tool_names == WEB_TOOLS


def test_web_tools_are_all_registered():
    registry = build_registry()
    assert all(name in registry for name in WEB_TOOLS)
    assert [t.name for t in registry.subset(WEB_TOOLS)] == list(WEB_TOOLS)


def test_prompts_carry_todays_date():
    config = resolve_group("web")
    assert "Mon, Oct 19, 2026" in config.tool_prompt("Mon, Oct 19, 2026")
    assert "Mon, Oct 19, 2026" in config.response_prompt("Mon, Oct 19, 2026")
    assert "{today}" not in config.response_prompt("x")


def test_group_table_is_read_only():
    with pytest.raises(TypeError):
        GROUPS["web"] = GROUPS["web"]  # type: ignore[index]
