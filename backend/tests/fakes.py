"""In-memory stand-ins for vendor adapters, plus Stripe webhook signing, used across test groups."""

import hashlib
import hmac
import time

from agent_manager.core.exceptions import ProviderError
from agent_manager.domain.providers import AIProvider
from agent_manager.llm.base import VendorAdapter

VALID_AGENT_JSON = (
    '{"name": "Research Planner", "description": "Plans research sprints", '
    '"variables": [{"name": "topic", "label": "Topic", "type": "text", "description": "What to research"}, '
    '{"name": "depth", "label": "Depth", "type": "select", "description": "How deep", '
    '"options": ["shallow", "deep"], "defaultValue": "deep"}]}'
)


class FakeAdapter(VendorAdapter):
    """VendorAdapter returning canned text, or raising ProviderError when ``fail`` is set."""

    def __init__(self, provider: AIProvider, content: str = VALID_AGENT_JSON, fail: bool = False):
        self.provider = provider
        self.content = content
        self.fail = fail
        self.calls: list[str] = []

    async def _complete(self, description: str) -> str:
        self.calls.append(description)
        if self.fail:
            raise ProviderError(self.provider, "simulated outage")
        return self.content


class FakeAdvisor:
    def __init__(self, advice: str = "Use a modular monolith.", fail: bool = False):
        self.advice = advice
        self.fail = fail
        self.calls: list[str] = []

    async def get_grounded_advice(self, prompt: str) -> str:
        self.calls.append(prompt)
        if self.fail:
            raise ProviderError(AIProvider.GEMINI, "simulated outage")
        return self.advice


def sign_stripe_payload(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header the way Stripe signs webhook deliveries."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"
