"""Tests for agent type -> AI vendor routing."""

import pytest

from agent_manager.domain.providers import (
    DEFAULT_PROVIDER,
    PROVIDER_BY_AGENT_TYPE,
    AgentType,
    AIProvider,
    select_provider,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "agent_type,expected",
    [
        ("planning", AIProvider.CLAUDE),
        ("orchestration", AIProvider.CLAUDE),
        ("testing", AIProvider.CLAUDE),
        ("deployment", AIProvider.CLAUDE),
        ("frontend", AIProvider.OPENAI),
        ("backend", AIProvider.OPENAI),
        ("architect", AIProvider.GEMINI),
        ("custom", AIProvider.GEMINI),
    ],
)
def test_known_agent_types_route_to_table_vendor(agent_type, expected):
    assert select_provider(agent_type) == expected


def test_every_agent_type_has_a_route():
    assert set(PROVIDER_BY_AGENT_TYPE) == set(AgentType)


@pytest.mark.parametrize("agent_type", ["marketing", "", "PLANNING", None])
def test_unknown_agent_type_falls_back_to_default(agent_type):
    assert select_provider(agent_type) == DEFAULT_PROVIDER == AIProvider.GEMINI


def test_enum_member_accepted():
    assert select_provider(AgentType.FRONTEND) == AIProvider.OPENAI


def test_routing_table_is_read_only():
    with pytest.raises(TypeError):
        PROVIDER_BY_AGENT_TYPE[AgentType.CUSTOM] = AIProvider.CLAUDE  # type: ignore[index]
