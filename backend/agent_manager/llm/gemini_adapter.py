"""Gemini adapter: structured agent generation and search-grounded advice.

Uses google-genai's async surface (client.aio). Agent configs are requested with
response_mime_type="application/json" plus a response schema, so Gemini returns
bare JSON; advice requests enable the Google Search tool.
"""

import httpx
import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from agent_manager.core.exceptions import GenerationParseError, ProviderError
from agent_manager.domain.providers import AIProvider
from agent_manager.llm.base import VendorAdapter, build_agent_prompt

logger = structlog.get_logger(__name__)

AGENT_CONFIG_RESPONSE_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "name": {"type": "STRING"},
        "description": {"type": "STRING"},
        "variables": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "label": {"type": "STRING"},
                    "type": {"type": "STRING"},
                    "description": {"type": "STRING"},
                    "defaultValue": {"type": "STRING"},
                    "options": {"type": "ARRAY", "items": {"type": "STRING"}},
                },
                "required": ["name", "label", "type", "description"],
            },
        },
    },
    "required": ["name", "description", "variables"],
}


class GeminiAdapter(VendorAdapter):
    provider = AIProvider.GEMINI

    def __init__(self, client: genai.Client, model: str, advice_model: str):
        self.client = client
        self.model = model
        self.advice_model = advice_model

    async def _complete(self, description: str) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=build_agent_prompt(description),
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=AGENT_CONFIG_RESPONSE_SCHEMA,
                ),
            )
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            raise ProviderError(self.provider, str(exc)) from exc

        if not response.text:
            raise GenerationParseError(self.provider, "empty response")
        return response.text

    async def get_grounded_advice(self, prompt: str) -> str:
        """Free-text answer grounded with Google Search results."""
        try:
            response = await self.client.aio.models.generate_content(
                model=self.advice_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    tools=[types.Tool(google_search=types.GoogleSearch())],
                ),
            )
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            raise ProviderError(self.provider, str(exc)) from exc

        if not response.text:
            raise ProviderError(self.provider, "empty advice response")
        logger.info("grounded_advice_generated", provider=self.provider.value, chars=len(response.text))
        return response.text
