"""AI module exceptions.

Custom exceptions for AI-related errors. Callers of the analysis
functions catch ``AIError`` and substitute a deterministic fallback.
"""

from typing import Optional


class AIError(Exception):
    """Base exception for AI-related errors."""

    def __init__(self, message: str, code: str = "AI_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class AIProviderError(AIError):
    """Error from the AI provider.

    Raised when the provider rejects the request, is unreachable, or
    returns an empty candidate list.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
    ):
        self.provider = provider
        self.status_code = status_code
        super().__init__(
            message=f"[{provider}] {message}",
            code="AI_PROVIDER_ERROR",
        )


class AIRateLimitError(AIError):
    """Rate limit or quota exceeded with the AI provider."""

    def __init__(
        self,
        provider: str,
        message: str,
        retry_after: Optional[int] = None,
    ):
        self.provider = provider
        self.retry_after = retry_after
        super().__init__(
            message=f"[{provider}] Rate limited: {message}",
            code="AI_RATE_LIMITED",
        )


class AIConfigurationError(AIError):
    """The provider cannot be used because it is not configured."""

    def __init__(self, setting: str):
        self.setting = setting
        super().__init__(
            message=f"{setting} environment variable is not configured",
            code="AI_NOT_CONFIGURED",
        )


class AIFeatureDisabledError(AIError):
    """AI features are switched off for this deployment."""

    def __init__(self, feature_name: str):
        self.feature_name = feature_name
        super().__init__(
            message=f"AI feature '{feature_name}' is not enabled",
            code="AI_FEATURE_DISABLED",
        )


class AIResponseParseError(AIError):
    """The model replied, but not with the JSON object we asked for."""

    def __init__(self, message: str = "No valid JSON found in model response"):
        super().__init__(message=message, code="AI_RESPONSE_UNPARSEABLE")
