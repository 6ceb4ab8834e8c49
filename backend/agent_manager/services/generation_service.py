"""GenerationOrchestrator: provider routing with one-shot fallback.

Flow for generate():
    1. Validate the description (>= MIN_DESCRIPTION_LENGTH chars) before any vendor call
    2. select_provider(agent_type) picks the vendor
    3. The vendor's adapter returns a normalized AgentConfig
    4. On ProviderError (GenerationParseError included) from a non-default vendor,
       retry exactly once against the default vendor; otherwise re-raise

Persistence of the resulting GenerationRecord is the caller's job.
"""

from collections.abc import Mapping
from dataclasses import dataclass

import structlog

from agent_manager.core.exceptions import InvalidRequestError, ProviderError
from agent_manager.domain.providers import DEFAULT_PROVIDER, AgentType, AIProvider, select_provider
from agent_manager.llm.base import VendorAdapter
from agent_manager.llm.gemini_adapter import GeminiAdapter
from agent_manager.schemas.agents import AgentConfig

logger = structlog.get_logger(__name__)

MIN_DESCRIPTION_LENGTH: int = 10


@dataclass(frozen=True)
class GenerationResult:
    agent: AgentConfig
    provider: AIProvider  # vendor that produced the config
    selected_provider: AIProvider  # vendor chosen by routing

    @property
    def fell_back(self) -> bool:
        return self.provider != self.selected_provider


class GenerationOrchestrator:
    """Routes agent generation to the right vendor and normalizes the result.

    Public API:
        generate(description, agent_type) -> GenerationResult
        get_grounded_advice(prompt) -> str
    """

    def __init__(
        self,
        adapters: Mapping[AIProvider, VendorAdapter],
        advisor: GeminiAdapter | None = None,
        default_provider: AIProvider = DEFAULT_PROVIDER,
    ):
        if default_provider not in adapters:
            raise ValueError(f"No adapter configured for default provider '{default_provider}'")
        self.adapters = adapters
        self.default_provider = default_provider
        self.advisor = advisor

    def _adapter_for(self, provider: AIProvider) -> VendorAdapter:
        adapter = self.adapters.get(provider)
        if adapter is None:
            raise ProviderError(provider, "no adapter configured")
        return adapter

    async def generate(
        self,
        description: str,
        agent_type: AgentType | str = AgentType.CUSTOM,
    ) -> GenerationResult:
        """Generate an agent configuration for ``description``.

        Raises:
            InvalidRequestError: description shorter than MIN_DESCRIPTION_LENGTH
            ProviderError: selected vendor failed and fallback was unavailable or failed
        """
        description = (description or "").strip()
        if len(description) < MIN_DESCRIPTION_LENGTH:
            raise InvalidRequestError(
                f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters"
            )

        selected = select_provider(agent_type)

        try:
            agent = await self._adapter_for(selected).generate_agent_config(description)
            return GenerationResult(agent=agent, provider=selected, selected_provider=selected)
        except ProviderError as exc:
            if selected == self.default_provider:
                logger.error(
                    "generation_failed",
                    provider=selected.value,
                    agent_type=str(agent_type),
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise
            logger.warning(
                "generation_falling_back",
                provider=selected.value,
                fallback_provider=self.default_provider.value,
                agent_type=str(agent_type),
                error=str(exc),
                error_type=type(exc).__name__,
            )

        agent = await self._adapter_for(self.default_provider).generate_agent_config(description)
        return GenerationResult(agent=agent, provider=self.default_provider, selected_provider=selected)

    async def get_grounded_advice(self, prompt: str) -> str:
        """Free-text architecture advice from the search-grounded vendor. No fallback."""
        prompt = (prompt or "").strip()
        if not prompt:
            raise InvalidRequestError("Prompt is required")
        if self.advisor is None:
            raise ProviderError(AIProvider.GEMINI, "no advice provider configured")
        return await self.advisor.get_grounded_advice(prompt)
