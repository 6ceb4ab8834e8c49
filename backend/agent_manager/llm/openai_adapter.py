"""OpenAI adapter: chat completions in JSON-object response mode."""

import openai

from agent_manager.core.exceptions import GenerationParseError, ProviderError
from agent_manager.domain.providers import AIProvider
from agent_manager.llm.base import VendorAdapter, build_agent_prompt

OPENAI_SYSTEM_PROMPT: str = (
    "You are an AI agent configuration generator. Return only valid JSON, no other text."
)


class OpenAIAdapter(VendorAdapter):
    provider = AIProvider.OPENAI

    def __init__(self, client: openai.AsyncOpenAI, model: str):
        self.client = client
        self.model = model

    async def _complete(self, description: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": OPENAI_SYSTEM_PROMPT},
                    {"role": "user", "content": build_agent_prompt(description)},
                ],
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as exc:
            raise ProviderError(self.provider, str(exc)) from exc

        if not response.choices:
            raise GenerationParseError(self.provider, "response contained no choices")
        # An empty message parses to {} and fails validation downstream
        return response.choices[0].message.content or "{}"
