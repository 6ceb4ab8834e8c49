"""Claude adapter: direct anthropic.AsyncAnthropic messages call."""

import anthropic

from agent_manager.core.exceptions import GenerationParseError, ProviderError
from agent_manager.domain.providers import AIProvider
from agent_manager.llm.base import VendorAdapter, build_agent_prompt

CLAUDE_MAX_TOKENS: int = 2048


class ClaudeAdapter(VendorAdapter):
    provider = AIProvider.CLAUDE

    def __init__(self, client: anthropic.AsyncAnthropic, model: str, max_tokens: int = CLAUDE_MAX_TOKENS):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    async def _complete(self, description: str) -> str:
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[
                    {"role": "user", "content": build_agent_prompt(description, json_only=True)},
                ],
            )
        except anthropic.APIError as exc:
            raise ProviderError(self.provider, str(exc)) from exc

        block = response.content[0] if response.content else None
        if block is None or block.type != "text":
            raise GenerationParseError(self.provider, "unexpected response type from Claude")
        return block.text
