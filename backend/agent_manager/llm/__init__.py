"""Vendor adapters for the three generative-AI backends."""

import anthropic
import openai
from google import genai

from agent_manager.core.config import Settings
from agent_manager.domain.providers import AIProvider
from agent_manager.llm.base import VendorAdapter
from agent_manager.llm.claude_adapter import ClaudeAdapter
from agent_manager.llm.gemini_adapter import GeminiAdapter
from agent_manager.llm.openai_adapter import OpenAIAdapter


def build_vendor_adapters(settings: Settings) -> dict[AIProvider, VendorAdapter]:
    """Construct one adapter per vendor from configured API keys and model names."""
    return {
        AIProvider.GEMINI: GeminiAdapter(
            genai.Client(api_key=settings.gemini_api_key),
            model=settings.gemini_model,
            advice_model=settings.gemini_advice_model,
        ),
        AIProvider.CLAUDE: ClaudeAdapter(
            anthropic.AsyncAnthropic(api_key=settings.claude_api_key),
            model=settings.claude_model,
        ),
        AIProvider.OPENAI: OpenAIAdapter(
            openai.AsyncOpenAI(api_key=settings.openai_api_key),
            model=settings.openai_model,
        ),
    }


__all__ = [
    "ClaudeAdapter",
    "GeminiAdapter",
    "OpenAIAdapter",
    "VendorAdapter",
    "build_vendor_adapters",
]
