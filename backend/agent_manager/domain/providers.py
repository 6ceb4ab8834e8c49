"""AI provider routing.

Pure domain functions: agent type tag -> vendor. No I/O, fully deterministic.
"""

from enum import StrEnum
from types import MappingProxyType


class AIProvider(StrEnum):
    """External generative-AI vendors."""

    GEMINI = "gemini"
    CLAUDE = "claude"
    OPENAI = "openai"


class AgentType(StrEnum):
    """Closed set of agent templates the frontend offers."""

    PLANNING = "planning"
    ARCHITECT = "architect"
    FRONTEND = "frontend"
    BACKEND = "backend"
    TESTING = "testing"
    DEPLOYMENT = "deployment"
    ORCHESTRATION = "orchestration"
    CUSTOM = "custom"


DEFAULT_PROVIDER: AIProvider = AIProvider.GEMINI

# Claude for planning/reasoning and systematic testing/deployment work,
# OpenAI for code-centric agents, Gemini (search grounding) for architecture research.
PROVIDER_BY_AGENT_TYPE: MappingProxyType[AgentType, AIProvider] = MappingProxyType({
    AgentType.PLANNING: AIProvider.CLAUDE,
    AgentType.ORCHESTRATION: AIProvider.CLAUDE,
    AgentType.TESTING: AIProvider.CLAUDE,
    AgentType.DEPLOYMENT: AIProvider.CLAUDE,
    AgentType.FRONTEND: AIProvider.OPENAI,
    AgentType.BACKEND: AIProvider.OPENAI,
    AgentType.ARCHITECT: AIProvider.GEMINI,
    AgentType.CUSTOM: DEFAULT_PROVIDER,
})


def select_provider(agent_type: AgentType | str | None) -> AIProvider:
    """Return the vendor for an agent type tag.

    Total over its input: unknown or missing tags resolve to DEFAULT_PROVIDER.
    """
    try:
        return PROVIDER_BY_AGENT_TYPE[AgentType(agent_type)]
    except (KeyError, ValueError):
        return DEFAULT_PROVIDER
