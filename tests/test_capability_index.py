"""
Tests for flattening the registry into the capability index.

Run with:
$ pytest -q
"""

from conftest import GET_UNIT

from opdbus.capabilities.index import (
    FALLBACK_PROFILE_LABEL,
    SYSTEM_PROFILE_LABEL,
    CapabilityIndex,
    build_index,
)
from opdbus.core.schema import (
    MCPAgent,
    SourceKind,
)


def test_index_order_and_names(systemd_service, agents, skills, profiles) -> None:
    """DBus methods come first, then agent capabilities, then skills."""

    tools = build_index([systemd_service], agents, skills, profiles)

    assert [t.qualified_name for t in tools] == [
        GET_UNIT,
        "AGENT [Docker]: list_containers",
        "AGENT [Docker]: build_image",
        "SKILL [analysis]: Log Analysis(logSource: string, lines: number)",
        "SKILL [utility]: UUID Generator(count: number)",
    ]
    assert [t.source_kind for t in tools] == [
        SourceKind.DBUS_METHOD,
        SourceKind.AGENT_CAPABILITY,
        SourceKind.AGENT_CAPABILITY,
        SourceKind.SKILL,
        SourceKind.SKILL,
    ]


def test_profile_labels(systemd_service, agents, skills, profiles) -> None:
    tools = build_index([systemd_service], agents, skills, profiles)

    assert [t.profile_label for t in tools] == [
        SYSTEM_PROFILE_LABEL,
        "Fast",
        "Fast",
        "Deep",
        FALLBACK_PROFILE_LABEL,
    ]


def test_dbus_signature_keeps_only_in_args(systemd_service) -> None:
    (tool,) = build_index([systemd_service], [], [], [])

    assert tool.signature == "GetUnit(name: s)"
    assert tool.owner == "org.freedesktop.systemd1"


def test_index_is_deterministic(systemd_service, agents, skills, profiles) -> None:
    """Repeated builds over the same inputs produce identical serialized lists."""

    first = CapabilityIndex.build([systemd_service], agents, skills, profiles)
    second = CapabilityIndex.build([systemd_service], agents, skills, profiles)

    assert [t.model_dump_json() for t in first] == [t.model_dump_json() for t in second]
    assert first.prompt_lines() == second.prompt_lines()


def test_disconnected_agents_contribute_nothing(agents, profiles) -> None:
    tools = build_index([], agents, [], profiles)

    assert all("QA" not in t.qualified_name for t in tools)
    assert {t.owner for t in tools} == {"Docker"}


def test_only_disconnected_agents_yield_empty_index() -> None:
    offline = [
        MCPAgent(id=f"a{i}", name=f"A{i}", url="http://x", status="disconnected", capabilities=["x"])
        for i in range(3)
    ]

    assert len(CapabilityIndex.build([], offline, [], [])) == 0


def test_prompt_line_includes_description(skills, profiles) -> None:
    index = CapabilityIndex.build([], [], skills, profiles)

    assert index.prompt_lines() == [
        "[Deep] SKILL [analysis]: Log Analysis(logSource: string, lines: number)"
        " - Analyzes system logs for errors.",
        "[Standard] SKILL [utility]: UUID Generator(count: number)",
    ]


def test_resolve_accepts_prompt_renderings(systemd_service, skills, profiles) -> None:
    index = CapabilityIndex.build([systemd_service], [], skills, profiles)
    log_tool = index.tools[1]

    assert index.resolve(GET_UNIT) is index.tools[0]
    assert index.resolve(f"  [System] {GET_UNIT}") is index.tools[0]
    assert index.resolve(index.prompt_lines()[1]) is log_tool
    assert index.resolve("DBUS: org.example.Missing Foo()") is None


def test_duplicate_names_keep_first(systemd_service) -> None:
    index = CapabilityIndex.build([systemd_service, systemd_service], [], [], [])

    assert len(index) == 2
    assert index.resolve(GET_UNIT) is index.tools[0]
