"""Re-export all models so Base.metadata sees them."""

from agent_manager.db.models.generation import GenerationRecord
from agent_manager.db.models.subscription import Subscription
from agent_manager.db.models.usage_alert import UsageAlert
from agent_manager.db.models.user import User

__all__ = [
    "GenerationRecord",
    "Subscription",
    "UsageAlert",
    "User",
]
