"""AI provider implementations."""

from taskflow.ai.providers.base import AIMessage, AIProvider, AIResponse, GenerationOptions
from taskflow.ai.providers.gemini import GeminiProvider

__all__ = ["AIMessage", "AIProvider", "AIResponse", "GeminiProvider", "GenerationOptions"]
