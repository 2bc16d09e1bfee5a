"""
Custom exceptions for content generators.
"""

from typing import Optional


class ContentGeneratorError(Exception):
    """Base class for every error raised by the provider layer."""

    pass


class ConfigurationError(ContentGeneratorError, ValueError):
    """Raised when a generator cannot be built because a credential is missing."""

    def __init__(self, message: str, credential: Optional[str] = None):
        self.credential = credential
        super().__init__(message)


class UnsupportedAuthType(ContentGeneratorError, ValueError):
    """Raised when the requested auth mode maps to no generator."""

    def __init__(self, auth_type):
        self.auth_type = auth_type
        value = getattr(auth_type, "value", auth_type)
        super().__init__(
            f"Error creating content generator: Unsupported authType: {value}"
        )


class UnsupportedCapability(ContentGeneratorError, NotImplementedError):
    """Raised when a provider has no equivalent for the requested operation."""

    def __init__(self, provider: str, capability: str):
        self.provider = provider
        self.capability = capability
        super().__init__(
            f"{provider} does not support {capability}. "
            f"Please use a different provider for {capability} tasks."
        )


class ProviderError(ContentGeneratorError):
    """Raised when the underlying provider call fails."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider} API error: {message}")


class QuotaExhaustedError(ProviderError):
    """Raised when the native provider reports an exhausted quota (429)."""

    def __init__(self, provider: str, model: str, message: Optional[str] = None):
        self.model = model
        super().__init__(
            provider,
            message
            or f"quota exhausted for model {model}. Try again later or switch models.",
        )
