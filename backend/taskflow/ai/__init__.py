"""AI integration: provider, prompt templates, and scoring rules."""

from taskflow.ai.exceptions import AIError
from taskflow.ai.service import AIService, get_ai_service

__all__ = ["AIError", "AIService", "get_ai_service"]
