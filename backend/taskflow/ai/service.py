"""Runs prompt templates against the configured AI provider."""

from typing import Any, Optional

import structlog

from taskflow.ai.exceptions import AIFeatureDisabledError
from taskflow.ai.providers.base import AIMessage, AIProvider, AIResponse, GenerationOptions
from taskflow.ai.providers.gemini import GeminiProvider
from taskflow.ai.templates import get_template, render_template
from taskflow.config import Settings, get_settings

logger = structlog.get_logger()


class AIService:
    """Template rendering plus a single provider call per request.

    The provider is created lazily; a missing API key surfaces as an
    ``AIConfigurationError`` from the call so callers fall back uniformly.
    """

    def __init__(self, settings: Optional[Settings] = None, provider: Optional[AIProvider] = None):
        self.settings = settings or get_settings()
        self._provider = provider

    @property
    def provider(self) -> AIProvider:
        if self._provider is None:
            self._provider = GeminiProvider(
                api_key=self.settings.gemini_api_key.get_secret_value(),
                default_model=self.settings.gemini_model,
                timeout=self.settings.gemini_timeout,
            )
        return self._provider

    async def run_template(
        self,
        template_key: str,
        variables: dict[str, Any],
        temperature: float,
        model: Optional[str] = None,
    ) -> AIResponse:
        """Render ``template_key`` with ``variables`` and complete it.

        Raises:
            AIFeatureDisabledError: If AI features are switched off
            AIError: Any provider failure
        """
        if not self.settings.feature_ai_enabled:
            raise AIFeatureDisabledError(template_key)

        template = get_template(template_key)
        messages = [
            AIMessage(role="system", content=template["system_prompt"]),
            AIMessage(role="user", content=render_template(template["user_prompt_template"], variables)),
        ]
        response = await self.provider.complete(
            messages,
            model=model,
            options=GenerationOptions(
                temperature=temperature,
                max_tokens=self.settings.ai_max_output_tokens,
            ),
        )
        logger.info(
            "ai_template_completed",
            template_key=template_key,
            model=response.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            latency_ms=response.latency_ms,
        )
        return response


def get_ai_service() -> AIService:
    """Dependency provider for the AI service."""
    return AIService()
