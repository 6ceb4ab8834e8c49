"""Shared vendor adapter contract, prompt template and response parsing.

This module provides:
- AGENT_CONFIG_PROMPT / build_agent_prompt: the one prompt every vendor receives
- strip_json_fences / parse_agent_config: turn raw vendor text into AgentConfig
- VendorAdapter: base class each vendor implements via _complete()
"""

import json
from abc import ABC, abstractmethod

import structlog
from pydantic import ValidationError

from agent_manager.core.exceptions import GenerationParseError, ProviderError
from agent_manager.domain.providers import AIProvider
from agent_manager.schemas.agents import AgentConfig

logger = structlog.get_logger(__name__)

AGENT_CONFIG_PROMPT: str = (
    "Create an AI agent configuration based on this description: {description}\n\n"
    "Return a JSON object with:\n"
    "- name: A concise name for the agent\n"
    "- description: A clear description of what the agent does\n"
    "- variables: An array of configuration variables the user should provide\n\n"
    "Each variable should have:\n"
    "- name: camelCase variable name\n"
    "- label: Human-readable label\n"
    '- type: "text", "textarea", "select", or "radio"\n'
    "- description: What this variable is for\n"
    "- defaultValue: Optional default value\n"
    "- options: Array of options (required for select/radio types)"
)

JSON_ONLY_SUFFIX: str = "\n\nReturn ONLY the JSON object, no other text."


def build_agent_prompt(description: str, json_only: bool = False) -> str:
    prompt = AGENT_CONFIG_PROMPT.format(description=description)
    return prompt + JSON_ONLY_SUFFIX if json_only else prompt


def strip_json_fences(content: str) -> str:
    """Remove markdown code fences wrapping JSON output."""
    content = content.strip()
    if content.startswith("```"):
        first_newline = content.find("\n")
        if first_newline != -1:
            content = content[first_newline + 1 :]
        if content.endswith("```"):
            content = content[:-3].rstrip()
    return content


def parse_agent_config(content: str, provider: AIProvider) -> AgentConfig:
    """Parse and validate vendor output into an AgentConfig.

    Raises:
        GenerationParseError: if the text is not JSON or fails schema validation
    """
    try:
        data = json.loads(strip_json_fences(content))
    except json.JSONDecodeError as exc:
        raise GenerationParseError(provider, f"response is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise GenerationParseError(provider, f"expected a JSON object, got {type(data).__name__}")

    try:
        return AgentConfig.model_validate(data)
    except ValidationError as exc:
        raise GenerationParseError(
            provider, f"response failed validation ({exc.error_count()} errors)"
        ) from exc


class VendorAdapter(ABC):
    """Wraps one vendor SDK and produces normalized AgentConfig results.

    Subclasses implement _complete() and translate their SDK's exceptions into
    ProviderError; anything else escaping _complete() (an unexpected response
    shape, a transport error the SDK did not wrap) is wrapped here, so every
    vendor failure reaches the orchestrator as ProviderError. Parsing and
    validation are shared.
    """

    provider: AIProvider

    @abstractmethod
    async def _complete(self, description: str) -> str:
        """Send the agent prompt for ``description`` and return the raw response text."""

    async def generate_agent_config(self, description: str) -> AgentConfig:
        try:
            content = await self._complete(description)
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(self.provider, f"unexpected {type(exc).__name__}: {exc}") from exc

        config = parse_agent_config(content, self.provider)
        logger.info(
            "agent_config_generated",
            provider=self.provider.value,
            variable_count=len(config.variables),
        )
        return config
