class AgentManagerError(Exception):
    """Base exception for the Agent Manager backend."""

    pass


class InvalidRequestError(AgentManagerError):
    """Raised when caller-supplied input fails validation."""

    pass


class ProviderError(AgentManagerError):
    """Raised when an AI vendor call fails (transport, auth, rate limit, API error)."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class GenerationParseError(ProviderError):
    """Raised when a vendor response is not a valid agent configuration."""

    pass


class NotificationError(AgentManagerError):
    """Raised when a usage-alert notification cannot be delivered."""

    pass


class OAuthError(AgentManagerError):
    """Raised when the Google OAuth code exchange or ID token check fails."""

    pass
